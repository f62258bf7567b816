"""
Saved Image Schemas
Pydantic models for the personal image library.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import Field

from app.schemas.base import CamelModel


class SavedImageCreate(CamelModel):
    """Schema for saving an already produced image to the library."""
    title: str = Field(..., min_length=1)
    object_path: str = Field(..., min_length=1)
    original_image_path: Optional[str] = None
    prompt: Optional[str] = Field(None, max_length=1000)
    tags: List[str] = []


class SavedImageResponse(CamelModel):
    """Schema for saved image response."""
    id: str
    user_id: str
    title: str
    object_path: str
    original_image_path: Optional[str] = None
    prompt: Optional[str] = None
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime
