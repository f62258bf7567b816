"""
Model Configuration API Routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db
from app.schemas.model_config import ModelConfigResponse, ModelConfigUpdate
from app.services.model_config import (
    default_config_view, get_model_configuration, upsert_model_configuration
)

router = APIRouter()


@router.get("/model-config", response_model=ModelConfigResponse)
async def get_model_config(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Active configuration for the caller, or the defaults."""
    config = get_model_configuration(db, user_id)
    if not config:
        return default_config_view()
    return config


@router.post("/model-config", response_model=ModelConfigResponse)
async def update_model_config(
    request: ModelConfigUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Create or replace the caller's configuration."""
    return upsert_model_configuration(db, user_id, request)
