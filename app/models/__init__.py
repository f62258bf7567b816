# Database models package
from app.models.user import User
from app.models.conversation import Conversation, Message
from app.models.job import ImageProcessingJob
from app.models.model_config import ModelConfiguration
from app.models.saved_image import SavedImage

__all__ = [
    "User",
    "Conversation",
    "Message",
    "ImageProcessingJob",
    "ModelConfiguration",
    "SavedImage",
]
