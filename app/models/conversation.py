"""
Conversation Models
Database models for conversation threads and their messages.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.database import Base


class Conversation(Base):
    """A titled thread of messages. Never renamed after creation."""

    __tablename__ = "conversations"

    id = Column(String, primary_key=True, default=lambda: f"conv_{uuid.uuid4().hex[:12]}")
    user_id = Column(String, nullable=True, index=True)
    title = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    messages = relationship("Message", back_populates="conversation", order_by="Message.created_at")


class Message(Base):
    """One turn in a conversation, optionally carrying an image."""

    __tablename__ = "messages"

    id = Column(String, primary_key=True, default=lambda: f"msg_{uuid.uuid4().hex[:12]}")
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False, index=True)

    role = Column(String, nullable=False)  # user, assistant
    content = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)

    # processing, completed, error
    processing_status = Column(String, default="completed")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")
    processing_jobs = relationship("ImageProcessingJob", back_populates="message")
