"""
Saved Image Model
Entries in a user's personal image library.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.core.database import Base


class SavedImage(Base):
    """Library entry created by an explicit "save to library" action."""

    __tablename__ = "saved_images"

    id = Column(String, primary_key=True, default=lambda: f"img_{uuid.uuid4().hex[:12]}")
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String, nullable=False)
    object_path = Column(String, nullable=False)
    original_image_path = Column(String, nullable=True)
    prompt = Column(String(1000), nullable=True)
    tags = Column(JSON, default=list)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="saved_images")
