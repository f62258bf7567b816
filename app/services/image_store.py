"""
Image Store
Persists uploaded and generated image bytes and serves them back by URL.
Supports the local filesystem and Google Cloud Storage.
"""

import logging
import mimetypes
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

# Stored images are served by the API under this prefix
IMAGE_URL_PREFIX = "/api/images/"

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class ImageNotFoundError(LookupError):
    """Raised when a stored image does not exist."""


def extension_for(content_type: Optional[str], default: str = "png") -> str:
    """Map a MIME type to the file extension used for stored images."""
    return EXTENSIONS.get((content_type or "").lower(), default)


def content_type_for(filename: str) -> str:
    """Guess the content type to serve a stored file with."""
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def random_filename(content_type: Optional[str]) -> str:
    """Random name for an upload, keeping the extension of its MIME type."""
    return f"{uuid.uuid4().hex}.{extension_for(content_type, default='bin')}"


def _check_filename(filename: str):
    if not filename or "/" in filename or "\\" in filename or filename.startswith("."):
        raise ImageNotFoundError(f"Invalid image name: {filename}")


class ImageStore(ABC):
    """Storage for image bytes, addressed by flat filenames."""

    def url_for(self, filename: str) -> str:
        """Get the API URL a stored file is served from."""
        return f"{IMAGE_URL_PREFIX}{filename}"

    @abstractmethod
    async def save(self, data: bytes, filename: str, content_type: str = "image/png") -> str:
        """Store bytes under filename and return the URL path."""

    @abstractmethod
    async def resolve(self, filename: str) -> bytes:
        """Return stored bytes, raising ImageNotFoundError when absent."""

    @abstractmethod
    async def exists(self, filename: str) -> bool:
        """Check whether a file is stored."""

    def start(self):
        """Prepare the backend at application startup."""

    def close(self):
        """Release backend resources at application shutdown."""

    def health(self) -> str:
        return "ok"


class LocalImageStore(ImageStore):
    """Images kept in a directory on the local filesystem."""

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH)

    def start(self):
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"[Storage] Using local storage: {self.base_path}")

    async def save(self, data: bytes, filename: str, content_type: str = "image/png") -> str:
        _check_filename(filename)
        self.base_path.mkdir(parents=True, exist_ok=True)
        file_path = self.base_path / filename

        with open(file_path, "wb") as f:
            f.write(data)

        logger.debug(f"[Storage] Saved {len(data)} bytes to {file_path}")
        return self.url_for(filename)

    async def resolve(self, filename: str) -> bytes:
        _check_filename(filename)
        file_path = self.base_path / filename
        if not file_path.is_file():
            raise ImageNotFoundError(f"Image not found: {filename}")

        with open(file_path, "rb") as f:
            return f.read()

    async def exists(self, filename: str) -> bool:
        try:
            _check_filename(filename)
        except ImageNotFoundError:
            return False
        return (self.base_path / filename).is_file()

    def health(self) -> str:
        return "ok" if self.base_path.is_dir() else "error: storage directory missing"


class GCSImageStore(ImageStore):
    """Images kept in a Google Cloud Storage bucket."""

    def __init__(self, bucket_name: Optional[str] = None, project_id: Optional[str] = None, client=None):
        self.bucket_name = bucket_name or settings.GCS_BUCKET
        self.project_id = project_id or settings.GCP_PROJECT_ID
        self._client = client
        self._bucket = None

    def start(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=self.project_id or None)
        self._bucket = self._client.bucket(self.bucket_name)
        logger.info(f"[Storage] Using Google Cloud Storage: {self.bucket_name}")

    @property
    def bucket(self):
        if self._bucket is None:
            self.start()
        return self._bucket

    async def save(self, data: bytes, filename: str, content_type: str = "image/png") -> str:
        _check_filename(filename)
        blob = self.bucket.blob(filename)
        blob.upload_from_string(data, content_type=content_type)
        return self.url_for(filename)

    async def resolve(self, filename: str) -> bytes:
        _check_filename(filename)
        blob = self.bucket.blob(filename)
        if not blob.exists():
            raise ImageNotFoundError(f"Image not found: {filename}")
        return blob.download_as_bytes()

    async def exists(self, filename: str) -> bool:
        try:
            _check_filename(filename)
        except ImageNotFoundError:
            return False
        return self.bucket.blob(filename).exists()

    def close(self):
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()

    def health(self) -> str:
        try:
            return "ok" if self.bucket.exists() else "error: bucket not found"
        except Exception as e:
            return f"error: {e}"


def create_image_store() -> ImageStore:
    """Build the store selected by settings."""
    if settings.USE_GCS:
        return GCSImageStore()
    return LocalImageStore()
