"""
Model Configuration
Per-user provider preferences: selected model, output quality, limits and API key.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer

from app.core.config import settings
from app.core.database import Base


class ModelConfiguration(Base):
    """Model configuration row, one per user."""

    __tablename__ = "model_configurations"

    id = Column(String, primary_key=True, default=lambda: f"cfg_{uuid.uuid4().hex[:12]}")
    user_id = Column(String, unique=True, nullable=False)

    selected_model = Column(String, nullable=False, default=settings.OPENROUTER_DEFAULT_MODEL)
    output_quality = Column(String, nullable=False, default=settings.DEFAULT_OUTPUT_QUALITY)  # standard, high, ultra
    max_resolution = Column(Integer, nullable=False, default=settings.DEFAULT_MAX_RESOLUTION)
    timeout = Column(Integer, nullable=False, default=settings.DEFAULT_TIMEOUT)  # seconds

    # Per-user provider key, overrides the process-wide key
    api_key = Column(Text, nullable=True)
    # Stored as "true"/"false" strings for wire compatibility
    api_key_configured = Column(String, nullable=False, default="false")
    is_global_default = Column(String, nullable=False, default="false")

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
