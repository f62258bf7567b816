"""
Conversation Schemas
Pydantic models for conversation and message API requests and responses.
"""

from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import Field

from app.schemas.base import CamelModel


class MessageRole(str, Enum):
    """Message author."""
    USER = "user"
    ASSISTANT = "assistant"


class MessageStatus(str, Enum):
    """Processing status carried by a message."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ConversationCreate(CamelModel):
    """Schema for creating a conversation."""
    title: str = Field(..., min_length=1)


class ConversationResponse(CamelModel):
    """Schema for conversation response."""
    id: str
    user_id: Optional[str] = None
    title: str
    created_at: datetime


class MessageResponse(CamelModel):
    """Schema for message response."""
    id: str
    conversation_id: str
    role: str
    content: str
    image_url: Optional[str] = None
    processing_status: Optional[str] = None
    created_at: datetime


class LatestImageResponse(CamelModel):
    image_url: str
