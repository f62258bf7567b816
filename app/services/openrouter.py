"""
OpenRouter Image Processing Service
Sends a source image and an edit instruction to a multimodal chat-completion model
and turns the reply into a stored image plus a list of applied enhancements.
Documentation: https://openrouter.ai/docs/features/multimodal/image-generation
"""

import asyncio
import base64
import binascii
import hashlib
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from app.core.config import settings
from app.core.exceptions import ConfigurationError, ProviderError
from app.services.image_store import ImageStore, extension_for
from app.services.imaging import fit_to_resolution

logger = logging.getLogger(__name__)


EDIT_PROMPT_TEMPLATE = """Edit the attached image according to this request: {prompt}

Make the requested changes bold and clearly visible. A viewer comparing the result with the original should notice the difference immediately, so prefer dramatic adjustments over subtle ones.

Return the edited image, then a short list of the changes you made."""

TEXT_ONLY_NOTE = "Textual analysis only: the model did not return an edited image"

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.+-]+)*;base64,(?P<data>.*)$", re.DOTALL)


@dataclass
class ProcessingResult:
    """Outcome of one provider call."""
    processed_image_url: str
    enhancements_applied: List[str]
    processing_time: int


# Provider reply variants, in the order they are matched

@dataclass(frozen=True)
class ImageFromContentArray:
    """Image element inside the assistant message content (or its images list)."""
    descriptor: str
    text: str = ""


@dataclass(frozen=True)
class ImageFromDataArray:
    """Image descriptor in the top-level data array."""
    descriptor: str
    is_remote: bool = False
    text: str = ""


@dataclass(frozen=True)
class TextOnly:
    """No image anywhere in the reply, only the model's text."""
    text: str = ""


ProviderOutput = Union[ImageFromContentArray, ImageFromDataArray, TextOnly]


def _first_message(payload: Dict[str, Any]) -> Dict[str, Any]:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict):
            return message
    return {}


def _image_reference(element: Any) -> Optional[str]:
    """URL of an image-typed content element, or None."""
    if not isinstance(element, dict) or element.get("type") not in ("image_url", "image"):
        return None
    ref = element.get("image_url") or element.get("image")
    if isinstance(ref, dict):
        ref = ref.get("url")
    if isinstance(ref, str) and ref:
        return ref
    return None


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = [
            element.get("text", "").strip()
            for element in content
            if isinstance(element, dict) and element.get("type") == "text" and element.get("text")
        ]
        return "\n".join(p for p in parts if p)
    return ""


def parse_provider_response(payload: Any) -> ProviderOutput:
    """
    Decode a chat-completion reply into one of the provider output variants.

    Checked in order:
    1. an image element in the message content array (or message.images)
    2. an image descriptor (url or b64_json) in the top-level data array
    3. otherwise the reply is text only

    Raises:
        ProviderError: the payload is an error object or has neither choices nor data
    """
    if not isinstance(payload, dict):
        raise ProviderError(f"Unexpected response from OpenRouter: {str(payload)[:200]}")

    error = payload.get("error")
    if error:
        if isinstance(error, dict):
            raise ProviderError(
                f"OpenRouter API error: {error.get('message') or error}",
                status_code=error.get("code") if isinstance(error.get("code"), int) else None,
            )
        raise ProviderError(f"OpenRouter API error: {error}")

    choices = payload.get("choices")
    data = payload.get("data")
    if not choices and not isinstance(data, list):
        raise ProviderError("OpenRouter response contained neither choices nor data")

    message = _first_message(payload)
    content = message.get("content")
    text = _message_text(content)

    elements: List[Any] = list(content) if isinstance(content, list) else []
    if isinstance(message.get("images"), list):
        elements.extend(message["images"])

    for element in elements:
        ref = _image_reference(element)
        if ref:
            return ImageFromContentArray(descriptor=ref, text=text)

    if isinstance(data, list):
        for item in data:
            if not isinstance(item, dict):
                continue
            if item.get("b64_json"):
                return ImageFromDataArray(descriptor=item["b64_json"], text=text)
            if item.get("url"):
                url = item["url"]
                return ImageFromDataArray(
                    descriptor=url,
                    is_remote=url.startswith(("http://", "https://")),
                    text=text,
                )

    return TextOnly(text=text)


def decode_image_payload(descriptor: str) -> tuple:
    """
    Split a data URL or bare base64 payload.

    Returns:
        (image bytes, mime type, base64 text)
    """
    mime_type = "image/png"
    b64_text = descriptor.strip()

    match = DATA_URL_RE.match(b64_text)
    if match:
        mime_type = match.group("mime") or mime_type
        b64_text = match.group("data").strip()

    try:
        image_bytes = base64.b64decode(b64_text, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ProviderError(f"Provider returned an image that could not be decoded: {e}")

    if not image_bytes:
        raise ProviderError("Provider returned an empty image")

    return image_bytes, mime_type, b64_text


def processed_image_filename(source_text: str, prompt: str, content_type: str = "image/png") -> str:
    """Deterministic name: identical payload and prompt always map to the same file."""
    digest = hashlib.sha256(f"{source_text}{prompt}".encode("utf-8")).hexdigest()[:16]
    return f"processed-{digest}.{extension_for(content_type)}"


class OpenRouterImageService:
    """Service for image editing through OpenRouter multimodal models."""

    def __init__(
        self,
        image_store: ImageStore,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.image_store = image_store
        self.base_url = (base_url or settings.OPENROUTER_BASE_URL).rstrip("/")
        # Tests pass an httpx.MockTransport here
        self.transport = transport

    def resolve_image_url(self, image_url: str) -> str:
        """Turn a relative stored-image path into a URL the provider can fetch."""
        if image_url.startswith(("http://", "https://", "data:")):
            return image_url
        path = image_url if image_url.startswith("/") else f"/{image_url}"
        return f"{settings.PUBLIC_BASE_URL}{path}"

    def resolve_api_key(self, api_key: Optional[str] = None) -> str:
        """Explicit key first, then the process-wide key."""
        key = (api_key or "").strip() or settings.provider_api_key
        if not key:
            raise ConfigurationError("OpenRouter API key not configured")
        return key

    def build_request(self, image_url: str, prompt: str, model: str) -> Dict[str, Any]:
        """Chat-completion body asking for both text and image output."""
        return {
            "model": model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": EDIT_PROMPT_TEMPLATE.format(prompt=prompt)},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            "modalities": ["image", "text"],
            "max_tokens": settings.OPENROUTER_MAX_TOKENS,
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=httpx.Timeout(timeout))

    async def _post(self, body: Dict[str, Any], api_key: str, timeout: float) -> Any:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": settings.PUBLIC_BASE_URL,
            "X-Title": settings.APP_NAME,
        }

        try:
            async with self._client(timeout) as client:
                response = await client.post(f"{self.base_url}/chat/completions", json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to reach OpenRouter: {e}") from e

        if response.status_code >= 400:
            raise ProviderError(
                f"OpenRouter API error {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"OpenRouter returned a response that is not JSON: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def persist_image(
        self,
        descriptor: str,
        prompt: str,
        is_remote: bool = False,
        timeout: float = 60.0,
        max_resolution: Optional[int] = None,
    ) -> str:
        """Store a generated image, downscaled to max_resolution, and return its URL path."""
        if is_remote:
            try:
                async with self._client(timeout) as client:
                    response = await client.get(descriptor)
                    response.raise_for_status()
            except httpx.HTTPError as e:
                raise ProviderError(f"Failed to download generated image: {e}") from e

            content_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
            filename = processed_image_filename(descriptor, prompt, content_type)
            image_bytes = response.content
        else:
            image_bytes, content_type, b64_text = decode_image_payload(descriptor)
            filename = processed_image_filename(b64_text, prompt, content_type)

        # Same payload and prompt means the same file, already checked and resized
        if await self.image_store.exists(filename):
            logger.info(f"[OpenRouter] Reusing stored image {filename}")
            return self.image_store.url_for(filename)

        # Pillow decoding and resizing are CPU bound, keep them off the event loop
        loop = asyncio.get_running_loop()
        image_bytes = await loop.run_in_executor(None, fit_to_resolution, image_bytes, content_type, max_resolution)
        return await self.image_store.save(image_bytes, filename, content_type)

    async def process(
        self,
        image_url: str,
        prompt: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_resolution: Optional[int] = None,
    ) -> ProcessingResult:
        """
        Run one edit through the provider.

        Args:
            image_url: Source image, absolute or a stored-image path
            prompt: Free-form edit instruction
            model: Provider model id
            api_key: Per-user key overriding the process-wide key
            timeout: Seconds allowed for each HTTP exchange
            max_resolution: Longest side allowed for the stored result

        Returns:
            ProcessingResult. When the model answers with text only, the original
            image_url is returned unchanged with the analysis as the enhancement list.
        """
        start = time.monotonic()
        key = self.resolve_api_key(api_key)
        timeout = float(timeout or settings.DEFAULT_TIMEOUT)

        public_url = self.resolve_image_url(image_url)
        logger.info(f"[OpenRouter] Processing {public_url[:120]} with {model}")

        payload = await self._post(self.build_request(public_url, prompt, model), key, timeout)
        output = parse_provider_response(payload)

        if isinstance(output, TextOnly):
            logger.info("[OpenRouter] No image in response, returning textual analysis")
            processed_url = image_url
            enhancements = [TEXT_ONLY_NOTE]
            if output.text:
                enhancements.append(output.text)
        else:
            is_remote = isinstance(output, ImageFromDataArray) and output.is_remote
            if isinstance(output, ImageFromContentArray) and output.descriptor.startswith(("http://", "https://")):
                is_remote = True
            processed_url = await self.persist_image(
                output.descriptor, prompt, is_remote=is_remote, timeout=timeout, max_resolution=max_resolution
            )
            logger.info(f"[OpenRouter] [OK] Edited image stored at {processed_url}")
            enhancements = [f"Generated an edited image with {model}", f"Applied edit: {prompt}"]
            if output.text:
                enhancements.append(output.text)

        # Halves round up
        processing_time = int(time.monotonic() - start + 0.5)
        return ProcessingResult(
            processed_image_url=processed_url,
            enhancements_applied=enhancements,
            processing_time=processing_time,
        )
