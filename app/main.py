"""
AI Image Editor API
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import SessionLocal, init_db
from app.core.logging import setup_logging
from app.api import conversations, library, model_config, processing, uploads
from app.services.image_store import create_image_store
from app.services.openrouter import OpenRouterImageService
from app.services.processing import ImageProcessingOrchestrator, reconcile_interrupted_jobs
from app.workers.events import JobEventBus
from app.workers.executor import BackgroundExecutor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME}...")
    init_db()

    image_store = create_image_store()
    image_store.start()

    executor = BackgroundExecutor()
    events = JobEventBus()
    app.state.image_store = image_store
    app.state.executor = executor
    app.state.events = events
    app.state.orchestrator = ImageProcessingOrchestrator(
        adapter=OpenRouterImageService(image_store),
        executor=executor,
        events=events,
    )

    # Background work from a previous process is gone; close out its rows
    db = SessionLocal()
    try:
        reconcile_interrupted_jobs(db)
    finally:
        db.close()

    if not settings.provider_api_key:
        logger.warning("No OpenRouter API key configured; jobs will fail unless users set their own key")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await executor.shutdown()
    image_store.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Conversational AI image editing with asynchronous processing jobs",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(conversations.router, prefix="/api/conversations", tags=["Conversations"])
app.include_router(processing.router, prefix="/api", tags=["Image Processing"])
app.include_router(uploads.router, prefix="/api", tags=["Uploads"])
app.include_router(model_config.router, prefix="/api", tags=["Model Configuration"])
app.include_router(library.router, prefix="/api/library", tags=["Library"])


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for deployment monitoring.
    Returns detailed status of critical services.
    """
    status = {
        "status": "healthy",
        "version": "0.1.0",
        "openRouterConfigured": bool(settings.provider_api_key),
        "services": {},
    }

    # Check database connection
    try:
        from sqlalchemy import text
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        status["services"]["database"] = "ok"
    except Exception as e:
        status["services"]["database"] = f"error: {str(e)}"
        status["status"] = "degraded"

    # Check storage availability
    image_store = getattr(app.state, "image_store", None)
    storage_status = image_store.health() if image_store else "error: not started"
    status["services"]["storage"] = storage_status
    if storage_status != "ok":
        status["status"] = "degraded"

    executor = getattr(app.state, "executor", None)
    status["services"]["backgroundTasks"] = executor.pending if executor else 0

    return status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} API",
        "docs": "/docs",
        "health": "/health",
    }
