from io import BytesIO

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from ebay_lister.app.api.deps import get_session_controller
from ebay_lister.app.core.config import Settings
from ebay_lister.app.main import create_app
from ebay_lister.app.services.export.local import LocalExportSink
from ebay_lister.app.services.gemini_client import GeminiClient
from ebay_lister.app.services.session_controller import SessionController


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeGemini:
    def __init__(self):
        self.requests = []
        self.responses = []

    def queue_text(self, text: str) -> None:
        self.responses.append(httpx.Response(200, json=gemini_body(text)))

    def queue(self, response: httpx.Response) -> None:
        self.responses.append(response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(200, json=gemini_body("{}"))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="test-key",
        GEMINI_MODEL="gemini-1.5-flash",
        LISTING_EXPORT_ROOT=tmp_path / "exports",
        LISTING_MAX_DIMENSION=1600,
    )


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def exporter(settings):
    return LocalExportSink(settings.export_root)


@pytest.fixture
def controller(settings, fake_gemini, exporter):
    def client_factory(api_key, model):
        return GeminiClient.from_settings(settings, api_key=api_key, model=model, transport=fake_gemini.transport)

    return SessionController(settings, exporter, client_factory=client_factory)


@pytest.fixture
def app(controller):
    app = create_app()
    app.dependency_overrides[get_session_controller] = lambda: controller
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_image():
    def _make(size=(64, 32), mode="RGB", fmt="JPEG", color=(200, 10, 10)):
        img = Image.new(mode, size, color)
        buf = BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()

    return _make
