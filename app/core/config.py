"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "AI Image Editor"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    # Public base URL used to turn relative image paths into URLs the provider can fetch
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Database - SQLite for local dev, PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./image_editor.db"

    # Image processing provider (OpenRouter chat completions)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_KEY: str = ""  # legacy name, checked after OPENROUTER_API_KEY
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_DEFAULT_MODEL: str = "google/gemini-2.5-flash-image"
    OPENROUTER_MAX_TOKENS: int = 1000

    # Model configuration defaults
    DEFAULT_OUTPUT_QUALITY: str = "high"
    DEFAULT_MAX_RESOLUTION: int = 2048
    DEFAULT_TIMEOUT: int = 120  # seconds, enforced on the provider call

    # Caller identity when no X-User-Id header is sent
    DEFAULT_USER_ID: str = "default"

    # Local storage
    LOCAL_STORAGE_PATH: str = "./uploads"

    # Google Cloud Storage
    USE_GCS: bool = False
    GCS_BUCKET: str = "ai-image-editor-uploads"
    GCP_PROJECT_ID: str = ""

    # Uploads
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator('OPENROUTER_API_KEY', 'OPENROUTER_KEY', mode='before')
    @classmethod
    def strip_api_keys(cls, v):
        """Strip whitespace and newlines from API keys loaded from secrets."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('PUBLIC_BASE_URL', 'OPENROUTER_BASE_URL')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def provider_api_key(self) -> str:
        """Process-wide provider credential, empty when none is configured."""
        return self.OPENROUTER_API_KEY or self.OPENROUTER_KEY

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
