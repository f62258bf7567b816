import base64
import io
import json
import os
import tempfile
import time

# Settings are read at import time, so the test environment goes in first
os.environ["DATABASE_URL"] = "sqlite:///./test_image_editor.db"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="image-editor-uploads-")
os.environ["PUBLIC_BASE_URL"] = "https://editor.example.com"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["OPENROUTER_KEY"] = ""
os.environ["USE_GCS"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.api.deps import get_image_store, get_orchestrator
from app.core.config import settings
from app.core.database import Base, SessionLocal, engine
from app.main import app
from app.models import Conversation
from app.services.image_store import LocalImageStore
from app.services.openrouter import OpenRouterImageService
from app.services.processing import ImageProcessingOrchestrator
from app.workers.events import JobEventBus
from app.workers.executor import BackgroundExecutor


def make_png(width: int = 4, height: int = 4, color=(200, 80, 40)) -> bytes:
    """Small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


PNG_BYTES = make_png()
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")
PNG_DATA_URL = f"data:image/png;base64,{PNG_B64}"


def image_content_reply(data_url: str = PNG_DATA_URL, text: str = "Boosted saturation and contrast") -> dict:
    """Chat reply whose message content array carries the edited image."""
    return {
        "id": "gen-1",
        "choices": [{
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": text},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            }
        }],
    }


def text_reply(text: str) -> dict:
    """Chat reply with analysis text and no image."""
    return {"id": "gen-2", "choices": [{"message": {"role": "assistant", "content": text}}]}


def data_array_reply(b64: str = PNG_B64) -> dict:
    """Reply with the image in the top-level data array."""
    return {
        "id": "gen-3",
        "choices": [{"message": {"role": "assistant", "content": "Here is your image."}}],
        "data": [{"b64_json": b64}],
    }


class FakeProvider:
    """Stands in for OpenRouter behind an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.reply = (200, image_content_reply())
        self.remote_image = PNG_BYTES

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.reply, Exception):
            raise self.reply
        if request.method == "GET":
            return httpx.Response(200, content=self.remote_image, headers={"content-type": "image/png"})
        status_code, body = self.reply
        if isinstance(body, (dict, list)):
            return httpx.Response(status_code, json=body)
        return httpx.Response(status_code, text=body)

    @property
    def chat_requests(self):
        return [r for r in self.requests if r.method == "POST"]

    def last_body(self) -> dict:
        return json.loads(self.chat_requests[-1].content)


def wait_for_job(client, message_id: str, timeout: float = 5.0) -> dict:
    """Poll the job endpoint until the job settles."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        response = client.get(f"/api/processing-jobs/{message_id}")
        if response.status_code == 200 and response.json()["status"] in ("completed", "error"):
            return response.json()
        time.sleep(0.02)
    raise AssertionError(f"Job for {message_id} did not finish within {timeout}s")


@pytest.fixture(scope="function")
def db_session():
    """Fresh tables for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def provider_key(monkeypatch):
    """Configure a process-wide provider key."""
    monkeypatch.setattr(settings, "OPENROUTER_API_KEY", "sk-or-test-key")
    return "sk-or-test-key"


@pytest.fixture
def image_store(tmp_path):
    store = LocalImageStore(str(tmp_path / "images"))
    store.start()
    return store


@pytest.fixture
def adapter(image_store, provider):
    return OpenRouterImageService(image_store, transport=httpx.MockTransport(provider))


@pytest.fixture
def events():
    return JobEventBus()


@pytest.fixture
def orchestrator(adapter, events):
    return ImageProcessingOrchestrator(adapter=adapter, executor=BackgroundExecutor(), events=events)


@pytest.fixture
def client(db_session, orchestrator, image_store):
    """TestClient wired to the fake provider and a temporary image store."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_image_store] = lambda: image_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def conversation(db_session):
    """Conversation with the id used in the request examples."""
    conv = Conversation(id="c1", title="Holiday photos", user_id=settings.DEFAULT_USER_ID)
    db_session.add(conv)
    db_session.commit()
    db_session.refresh(conv)
    return conv
