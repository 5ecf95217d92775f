"""Unit tests for the v1 API routes."""

import base64

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from utp.api.v1.router import api_router
from utp.core.enums import SourceType
from utp.infrastructure.storage.content_store import InMemoryContentStore
from utp.services.detectors import AccessibilityDetector, OcrDetector, WebDetector
from utp.services.normalizer import TextNormalizer
from utp.services.orchestrator import DetectionOrchestrator
from utp.services.pipeline import TextPipelineService

from conftest import FakeRecognitionBackend, make_png, make_text, word


@pytest.fixture
def recognition():
    return FakeRecognitionBackend([word("Scanned"), word("page", 50), word("text", 100)])


@pytest.fixture
def test_app(recognition):
    """Create a test FastAPI app with the v1 routes and in-memory state."""
    app = FastAPI()
    app.include_router(api_router)
    app.state.pipeline = TextPipelineService(
        orchestrator=DetectionOrchestrator([
            AccessibilityDetector(),
            OcrDetector(recognition),
            WebDetector(),
        ]),
        normalizer=TextNormalizer(),
        recognition_backend=recognition,
    )
    app.state.content_store = InMemoryContentStore()
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture
def image_b64():
    return base64.b64encode(make_png()).decode()


NODES = [{"text": "Hello world", "bounds": {"left": 0, "top": 0, "right": 220, "bottom": 40}}]


class TestDetectEndpoint:
    """Tests for POST /api/v1/text/detect."""

    def test_accessibility_only(self, client):
        response = client.post("/api/v1/text/detect", json={"accessibility_nodes": NODES})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["text"]["raw_text"] == "Hello world"
        assert data["text"]["source_type"] == SourceType.ACCESSIBILITY.value

    def test_parallel_merge_of_two_sources(self, client, image_b64, recognition):
        response = client.post(
            "/api/v1/text/detect",
            json={"accessibility_nodes": NODES, "image": image_b64, "merge_strategy": "parallel"},
        )

        assert response.status_code == 200
        text = response.json()["text"]
        assert text["raw_text"] == "Hello world\n\nScanned page text"
        assert text["source_type"] == SourceType.HYBRID.value
        assert len(text["tokens"]) == 5
        assert len(recognition.calls) == 1

    def test_data_uri_image(self, client, image_b64):
        response = client.post(
            "/api/v1/text/detect",
            json={"image": f"data:image/png;base64,{image_b64}"},
        )

        assert response.status_code == 200
        assert response.json()["text"]["raw_text"] == "Scanned page text"

    def test_sequential_stops_at_first_source(self, client, image_b64, recognition):
        response = client.post(
            "/api/v1/text/detect",
            json={"accessibility_nodes": NODES, "image": image_b64, "sequential": True},
        )

        assert response.status_code == 200
        assert response.json()["text"]["raw_text"] == "Hello world"
        assert recognition.calls == []

    def test_disabled_source_is_skipped(self, client, image_b64):
        response = client.post(
            "/api/v1/text/detect",
            json={"accessibility_nodes": NODES, "image": image_b64, "enable_ocr": False},
        )

        assert response.status_code == 200
        assert response.json()["text"]["raw_text"] == "Hello world"

    def test_invalid_base64_image(self, client):
        response = client.post("/api/v1/text/detect", json={"image": "not base64!!"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Image validation failed"

    def test_no_text_detected(self, client):
        response = client.post("/api/v1/text/detect", json={})

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "No text detected"

    def test_failed_sources_are_reported(self, client, image_b64, recognition):
        recognition.words = []

        response = client.post("/api/v1/text/detect", json={"image": image_b64})

        assert response.status_code == 422
        assert response.json()["detail"]["details"] == {"ocr": "empty"}

    def test_file_url_is_rejected(self, client):
        response = client.post("/api/v1/text/detect", json={"url": "file:///etc/hostname"})

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "local file access is disabled"

    def test_local_path_is_not_read(self, client, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text("do not leak this")

        response = client.post("/api/v1/text/detect", json={"url": str(secret)})

        assert response.status_code == 400
        assert "do not leak this" not in response.text


class TestNormalizeEndpoint:
    """Tests for POST /api/v1/text/normalize."""

    def test_merge_results(self, client):
        results = [
            make_text(["from", "web"], SourceType.WEB).model_dump(mode="json"),
            make_text(["from", "screen"], SourceType.ACCESSIBILITY).model_dump(mode="json"),
        ]

        response = client.post(
            "/api/v1/text/normalize",
            json={"results": results, "strategy": "parallel"},
        )

        assert response.status_code == 200
        assert response.json()["text"]["raw_text"] == "from screen\n\nfrom web"

    def test_filter_noise_option(self, client):
        results = [make_text(["Sponsored", "story"], SourceType.WEB).model_dump(mode="json")]

        response = client.post(
            "/api/v1/text/normalize",
            json={"results": results, "normalization": {"filter_noise": True}},
        )

        assert response.status_code == 200
        assert response.json()["text"]["raw_text"] == "story"

    def test_empty_results(self, client):
        response = client.post("/api/v1/text/normalize", json={"results": []})

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "Invalid merge input"


class TestContentEndpoints:
    """Tests for /api/v1/contents."""

    def save(self, client, words, **fields):
        body = {"text": make_text(words).model_dump(mode="json"), **fields}
        response = client.post("/api/v1/contents", json=body)
        assert response.status_code == 201
        return response.json()

    def test_save_and_get(self, client):
        saved = self.save(client, ["saved", "text"], title="Notes", tags=["work"])

        response = client.get(f"/api/v1/contents/{saved['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Notes"
        assert data["tags"] == ["work"]
        assert data["text"]["raw_text"] == "saved text"

    def test_list_and_limit(self, client):
        self.save(client, ["one"])
        self.save(client, ["two"])

        assert client.get("/api/v1/contents").json()["total"] == 2
        assert client.get("/api/v1/contents", params={"limit": 1}).json()["total"] == 1
        assert client.get("/api/v1/contents", params={"limit": 0}).status_code == 422

    def test_search(self, client):
        self.save(client, ["quarterly", "report"], title="Finance")
        self.save(client, ["groceries"], title="Errands")

        data = client.get("/api/v1/contents/search", params={"q": "report"}).json()

        assert data["total"] == 1
        assert data["items"][0]["title"] == "Finance"

    def test_mark_read(self, client):
        saved = self.save(client, ["x"])

        client.post(f"/api/v1/contents/{saved['id']}/read")
        response = client.post(f"/api/v1/contents/{saved['id']}/read")

        assert response.status_code == 200
        assert response.json()["read_count"] == 2

    def test_delete(self, client):
        saved = self.save(client, ["x"])

        assert client.delete(f"/api/v1/contents/{saved['id']}").status_code == 204
        assert client.delete(f"/api/v1/contents/{saved['id']}").status_code == 404
        assert client.get(f"/api/v1/contents/{saved['id']}").status_code == 404

    def test_missing_content(self, client):
        response = client.get("/api/v1/contents/missing")

        assert response.status_code == 404
        assert response.json()["detail"]["details"] == {"id": "missing"}


class TestHealthEndpoints:
    """Tests for /api/v1/health."""

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["recognition_available"] is True

    def test_ready(self, client):
        response = client.get("/api/v1/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"
