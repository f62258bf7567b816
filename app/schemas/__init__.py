# Pydantic schemas package
from app.schemas.conversation import (
    ConversationCreate, ConversationResponse, MessageResponse, MessageRole, MessageStatus,
    LatestImageResponse
)
from app.schemas.job import JobResponse, JobStatus, ProcessImageRequest, ProcessImageResponse
from app.schemas.model_config import ModelConfigUpdate, ModelConfigResponse
from app.schemas.saved_image import SavedImageCreate, SavedImageResponse
from app.schemas.upload import UploadResponse

__all__ = [
    "ConversationCreate", "ConversationResponse", "MessageResponse", "MessageRole", "MessageStatus",
    "LatestImageResponse",
    "JobResponse", "JobStatus", "ProcessImageRequest", "ProcessImageResponse",
    "ModelConfigUpdate", "ModelConfigResponse",
    "SavedImageCreate", "SavedImageResponse",
    "UploadResponse",
]
