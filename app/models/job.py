"""
Image Processing Job Model
Database model tracking one enhancement request from placeholder to terminal state.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.core.database import Base


class ImageProcessingJob(Base):
    """Image processing job model."""

    __tablename__ = "image_processing_jobs"

    id = Column(String, primary_key=True, default=lambda: f"job_{uuid.uuid4().hex[:12]}")
    # The assistant placeholder message created in the same request
    message_id = Column(String, ForeignKey("messages.id"), nullable=False, index=True)

    # Request
    original_image_url = Column(Text, nullable=False)
    prompt = Column(Text, nullable=False)
    model = Column(String, nullable=False)

    # Status: pending, processing, completed, error
    status = Column(String, default="pending", nullable=False, index=True)
    error_message = Column(Text, nullable=True)

    # Result
    processed_image_url = Column(Text, nullable=True)
    processing_time = Column(Integer, nullable=True)  # seconds
    enhancements_applied = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    message = relationship("Message", back_populates="processing_jobs")
