"""
Upload API Routes
Stores uploaded source images and serves stored images back.
"""

import logging
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from app.api.deps import get_image_store
from app.core.config import settings
from app.schemas.upload import UploadResponse
from app.services.image_store import ImageNotFoundError, ImageStore, content_type_for, random_filename

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    store: ImageStore = Depends(get_image_store),
):
    """Upload a JPEG, PNG or WebP image of at most 10MB."""
    if image.content_type not in settings.ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only JPG, PNG, and WebP are allowed."
        )

    # Read one byte past the limit to detect oversize files without loading more
    content = await image.read(settings.MAX_UPLOAD_SIZE + 1)
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB."
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No image file provided"
        )

    filename = random_filename(image.content_type)
    image_url = await store.save(content, filename, image.content_type)
    logger.info(f"Stored upload {image.filename} ({len(content)} bytes) as {filename}")

    return {
        "image_url": image_url,
        "original_name": image.filename or filename,
        "size": len(content),
        "mime_type": image.content_type,
    }


@router.get("/images/{filename}")
async def serve_image(
    filename: str,
    store: ImageStore = Depends(get_image_store),
):
    """Serve a stored image."""
    try:
        data = await store.resolve(filename)
    except ImageNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    return Response(
        content=data,
        media_type=content_type_for(filename),
        headers={"Cache-Control": "public, max-age=3600"},
    )
