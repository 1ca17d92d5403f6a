"""
Unit tests for api/routes/ai.py: direct outline, chapter and cover calls.
"""
import base64

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.services.ebook_service import EbookService, set_ebook_service
from config.settings import Settings
from core.ebook_generator import FallbackOrchestrator, GeneratorConfig, MockProvider
from core.ebook_generator.exceptions import ProviderError


OPTIONS = {"topic": "urban gardening", "chapter_count": 4}

CHAPTER_REQUEST = {
    "options": OPTIONS,
    "book_title": "The Urban Gardening Handbook",
    "chapter": {"title": "Soil", "description": "What plants eat"},
    "index": 0,
    "total": 4,
}


class BrokenProvider(MockProvider):
    name = "broken"

    async def _request_outline(self, options):
        raise ProviderError(self.name, "service unavailable", 503)

    async def _request_chapter(self, options, book_info, chapter, index, total):
        raise ProviderError(self.name, "service unavailable", 503)


def make_client(tmp_path, text_providers, image_providers):
    settings = Settings(data_dir=tmp_path, run_store_enabled=False, _env_file=None)
    config = GeneratorConfig(chapter_delay=0)
    service = EbookService(
        settings=settings,
        orchestrator=FallbackOrchestrator(text_providers, image_providers),
        config=config,
    )
    set_ebook_service(service)
    return TestClient(app)


@pytest.fixture
def client(tmp_path):
    with make_client(tmp_path, [MockProvider()], [MockProvider()]) as client:
        yield client
    set_ebook_service(None)


@pytest.fixture
def broken_client(tmp_path):
    with make_client(tmp_path, [BrokenProvider()], []) as client:
        yield client
    set_ebook_service(None)


class TestOutline:
    """Test POST /api/ai/outline."""

    def test_outline(self, client):
        resp = client.post("/api/ai/outline", json=OPTIONS)
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "The Urban Gardening Handbook"
        assert len(data["chapters"]) == 4
        assert data["backCoverCopy"]

    def test_chapter_count_limits(self, client):
        assert client.post("/api/ai/outline", json={**OPTIONS, "chapter_count": 31}).status_code == 422

    def test_all_providers_failed(self, broken_client):
        resp = broken_client.post("/api/ai/outline", json=OPTIONS)
        assert resp.status_code == 502
        data = resp.json()
        assert "service unavailable" in data["error"]
        assert data["failures"][0]["provider"] == "broken"


class TestChapter:
    """Test POST /api/ai/chapter."""

    def test_chapter(self, client):
        resp = client.post("/api/ai/chapter", json=CHAPTER_REQUEST)
        assert resp.status_code == 200
        data = resp.json()
        assert data["index"] == 0
        assert data["title"] == "Soil"
        assert data["content"].startswith("# Soil")
        assert data["word_count"] > 0

    def test_index_out_of_range(self, client):
        resp = client.post("/api/ai/chapter", json={**CHAPTER_REQUEST, "index": 4})
        assert resp.status_code == 422

    def test_negative_index(self, client):
        resp = client.post("/api/ai/chapter", json={**CHAPTER_REQUEST, "index": -1})
        assert resp.status_code == 422

    def test_provider_failure(self, broken_client):
        resp = broken_client.post("/api/ai/chapter", json=CHAPTER_REQUEST)
        assert resp.status_code == 502
        assert "chapter 1" in resp.json()["error"]


class TestCover:
    """Test POST /api/ai/cover and /api/ai/cover/edit."""

    def test_cover(self, client):
        resp = client.post("/api/ai/cover", json={"prompt": "a rooftop garden", "size": "2K"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["mime_type"] == "image/png"
        assert data["image"].startswith("data:image/png;base64,")

    def test_invalid_size(self, client):
        resp = client.post("/api/ai/cover", json={"prompt": "x", "size": "8K"})
        assert resp.status_code == 422

    def test_unknown_run(self, client):
        resp = client.post("/api/ai/cover", json={"prompt": "x", "run_id": "missing"})
        assert resp.status_code == 404

    def test_no_image_providers(self, broken_client):
        resp = broken_client.post("/api/ai/cover", json={"prompt": "x"})
        assert resp.status_code == 503

    def test_edit_returns_image(self, client):
        original = "data:image/png;base64," + base64.b64encode(b"original").decode()
        resp = client.post("/api/ai/cover/edit", json={"image": original, "prompt": "warmer"})
        assert resp.status_code == 200
        assert resp.json()["image"] == original

    def test_edit_bare_base64(self, client):
        bare = base64.b64encode(b"original").decode()
        resp = client.post("/api/ai/cover/edit", json={"image": bare, "prompt": "warmer"})
        assert resp.status_code == 200

    def test_edit_invalid_image(self, client):
        resp = client.post("/api/ai/cover/edit", json={"image": "abcde", "prompt": "warmer"})
        assert resp.status_code == 422
