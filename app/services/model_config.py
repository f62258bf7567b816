"""
Model Configuration Service
Looks up the active provider preferences for a user.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import commit_or_raise
from app.models.model_config import ModelConfiguration
from app.schemas.model_config import ModelConfigUpdate

logger = logging.getLogger(__name__)


@dataclass
class EffectiveModelConfig:
    """What a processing request actually runs with."""
    model: str
    api_key: Optional[str]
    timeout: int
    max_resolution: Optional[int] = None


def get_model_configuration(db: Session, user_id: str) -> Optional[ModelConfiguration]:
    """The user's own configuration, else the global default, else None."""
    config = db.query(ModelConfiguration).filter(ModelConfiguration.user_id == user_id).first()
    if config:
        return config
    return db.query(ModelConfiguration).filter(ModelConfiguration.is_global_default == "true").first()


def resolve_effective_config(db: Session, user_id: str) -> EffectiveModelConfig:
    """Pick model, per-user key and timeout, falling back to settings."""
    config = get_model_configuration(db, user_id)
    if config is None:
        return EffectiveModelConfig(
            model=settings.OPENROUTER_DEFAULT_MODEL,
            api_key=None,
            timeout=settings.DEFAULT_TIMEOUT,
            max_resolution=settings.DEFAULT_MAX_RESOLUTION,
        )
    return EffectiveModelConfig(
        model=config.selected_model or settings.OPENROUTER_DEFAULT_MODEL,
        api_key=config.api_key or None,
        timeout=config.timeout or settings.DEFAULT_TIMEOUT,
        max_resolution=config.max_resolution or settings.DEFAULT_MAX_RESOLUTION,
    )


def default_config_view() -> dict:
    """Defaults reported when no configuration has been saved."""
    return {
        "selected_model": settings.OPENROUTER_DEFAULT_MODEL,
        "output_quality": settings.DEFAULT_OUTPUT_QUALITY,
        "max_resolution": settings.DEFAULT_MAX_RESOLUTION,
        "timeout": settings.DEFAULT_TIMEOUT,
        "api_key_configured": "true" if settings.provider_api_key else "false",
        "is_global_default": "false",
        "updated_at": None,
    }


def upsert_model_configuration(db: Session, user_id: str, update: ModelConfigUpdate) -> ModelConfiguration:
    """Create or replace the user's configuration."""
    config = db.query(ModelConfiguration).filter(ModelConfiguration.user_id == user_id).first()
    if config is None:
        config = ModelConfiguration(user_id=user_id)
        db.add(config)

    config.selected_model = update.selected_model
    config.output_quality = update.output_quality
    config.max_resolution = update.max_resolution
    config.timeout = update.timeout
    config.is_global_default = update.is_global_default
    # An omitted key keeps the stored one; an empty string clears it
    if update.api_key is not None:
        config.api_key = update.api_key.strip() or None
    config.api_key_configured = "true" if (config.api_key or settings.provider_api_key) else "false"
    config.updated_at = datetime.utcnow()

    commit_or_raise(db, "save model configuration")
    db.refresh(config)
    logger.info(f"Model configuration saved for {user_id}: {config.selected_model}")
    return config
