"""
Model Configuration Schemas
"""

from datetime import datetime
from typing import Optional, Literal
from pydantic import Field

from app.schemas.base import CamelModel


class ModelConfigUpdate(CamelModel):
    """Schema for updating the caller's model configuration."""
    selected_model: str = Field(..., min_length=1)
    output_quality: Literal["standard", "high", "ultra"] = "high"
    max_resolution: int = Field(2048, gt=0, le=8192)
    timeout: int = Field(120, gt=0, le=3600)
    api_key: Optional[str] = None
    is_global_default: Literal["true", "false"] = "false"


class ModelConfigResponse(CamelModel):
    """Active configuration. The API key itself is never returned."""
    selected_model: str
    output_quality: str
    max_resolution: int
    timeout: int
    api_key_configured: Literal["true", "false"]
    is_global_default: str = "false"
    updated_at: Optional[datetime] = None
