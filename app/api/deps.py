"""
API Dependencies
Common dependencies for FastAPI routes (database sessions, services, caller identity).
"""

from typing import Generator, Optional
from fastapi import Header, Request

from app.core.config import settings
from app.core.database import SessionLocal
from app.services.image_store import ImageStore
from app.services.processing import ImageProcessingOrchestrator


def get_db() -> Generator:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity hint. Authentication happens in front of this service."""
    return (x_user_id or "").strip() or settings.DEFAULT_USER_ID


def get_image_store(request: Request) -> ImageStore:
    """Image store created at application startup."""
    return request.app.state.image_store


def get_orchestrator(request: Request) -> ImageProcessingOrchestrator:
    """Processing orchestrator created at application startup."""
    return request.app.state.orchestrator
