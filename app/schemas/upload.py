"""
Upload Schemas
"""

from app.schemas.base import CamelModel


class UploadResponse(CamelModel):
    """Schema for upload response."""
    image_url: str
    original_name: str
    size: int
    mime_type: str
