"""
Image Utilities
Checks generated images and keeps them within the configured maximum resolution.
"""

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from app.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

# Pillow format name for each stored content type
PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
}


def open_image(image_bytes: bytes) -> Image.Image:
    """Decode bytes with Pillow, raising ProviderError when they are not an image."""
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ProviderError(f"Provider returned data that is not a readable image: {e}") from e
    return image


def fit_to_resolution(image_bytes: bytes, content_type: str, max_resolution: Optional[int]) -> bytes:
    """
    Downscale an image so its longest side is at most max_resolution.

    Images already within the limit are returned byte for byte. Larger ones are
    resized with LANCZOS, keeping the aspect ratio and the original format.
    """
    image = open_image(image_bytes)
    if not max_resolution or max(image.size) <= max_resolution:
        return image_bytes

    original_size = image.size
    image.thumbnail((max_resolution, max_resolution), Image.Resampling.LANCZOS)

    image_format = PIL_FORMATS.get(content_type, image.format or "PNG")
    if image_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format=image_format, quality=95)
    logger.info(f"[Imaging] Downscaled {original_size[0]}x{original_size[1]} -> {image.size[0]}x{image.size[1]}")
    return buffer.getvalue()
