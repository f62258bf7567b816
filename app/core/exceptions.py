"""
Error Taxonomy
Domain errors raised by the processing pipeline and translated by the API layer.
"""

from typing import Optional


class ImageEditorError(Exception):
    """Base exception for image editor errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ImageEditorError):
    """A request is missing required fields."""


class NotFoundError(ImageEditorError):
    """A referenced row does not exist."""


class ConfigurationError(ImageEditorError):
    """No provider credential is available for a processing request."""


class ProviderError(ImageEditorError):
    """The image provider failed, timed out, or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, details={"status_code": status_code, "body": body})
        self.status_code = status_code
        self.body = body


class PersistenceError(ImageEditorError):
    """The database rejected a write."""


__all__ = [
    "ImageEditorError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "ProviderError",
    "PersistenceError",
]
