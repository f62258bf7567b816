# Services package - business logic and external integrations
from app.services.image_store import ImageStore, LocalImageStore, GCSImageStore, create_image_store
from app.services.openrouter import OpenRouterImageService, ProcessingResult
from app.services.processing import ImageProcessingOrchestrator, SubmitResult

__all__ = [
    "ImageStore",
    "LocalImageStore",
    "GCSImageStore",
    "create_image_store",
    "OpenRouterImageService",
    "ProcessingResult",
    "ImageProcessingOrchestrator",
    "SubmitResult",
]
