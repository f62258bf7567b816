"""
User Model
Minimal owner row for conversations, model configurations and saved images.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from app.core.database import Base


class User(Base):
    """Owner of library entries. Authentication lives outside this service."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)  # caller supplied, "default" when anonymous
    username = Column(String, unique=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    saved_images = relationship(
        "SavedImage",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
