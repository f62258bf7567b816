"""
Job Schemas
Pydantic models for image processing requests and job responses.
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum

from app.schemas.base import CamelModel
from app.schemas.conversation import MessageResponse


class JobStatus(str, Enum):
    """Job status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


class ProcessImageRequest(CamelModel):
    """
    Schema for a processing request.
    Fields are optional here so a missing one is reported as a 400, not a 422.
    """
    conversation_id: Optional[str] = None
    image_url: Optional[str] = None
    prompt: Optional[str] = None


class JobResponse(CamelModel):
    """Schema for job response."""
    id: str
    message_id: str
    original_image_url: str
    processed_image_url: Optional[str] = None
    prompt: str
    model: str
    status: str
    processing_time: Optional[int] = None
    error_message: Optional[str] = None
    enhancements_applied: Optional[List[str]] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class ProcessImageResponse(CamelModel):
    """Immediate response to a processing request, before the provider is called."""
    user_message: MessageResponse
    ai_message: MessageResponse
    processing_job: JobResponse
