"""
Unit tests for api/routes/runs.py: run lifecycle endpoints.

Generation runs in background tasks on the TestClient's event loop, so
every test keeps one client open (``with TestClient(app)``) and polls.
"""
import io
import time
import zipfile

import pytest
from docx import Document
from fastapi.testclient import TestClient

from api.main import app
from api.services.ebook_service import EbookService, set_ebook_service
from config.settings import Settings
from core.ebook_generator import FallbackOrchestrator, GeneratorConfig, MockProvider
from core.ebook_generator.exceptions import ProviderError


OPTIONS = {
    "topic": "urban gardening",
    "audience": "Apartment dwellers",
    "tone": "Friendly",
    "chapter_count": 3,
    "author_name": "Jordan Lee",
}


class FlakyProvider(MockProvider):
    """Mock provider whose first call for one chapter fails"""

    name = "flaky"

    def __init__(self, fail_at: int = 1, **kwargs):
        super().__init__(**kwargs)
        self.fail_at = fail_at
        self.failed = False

    async def _request_chapter(self, options, book_info, chapter, index, total):
        if index == self.fail_at and not self.failed:
            self.failed = True
            raise ProviderError(self.name, "overloaded", 503)
        return await super()._request_chapter(options, book_info, chapter, index, total)


def make_service(tmp_path, text_providers=None, image_providers=None):
    settings = Settings(data_dir=tmp_path, run_store_enabled=False, _env_file=None)
    config = GeneratorConfig(chapter_delay=0)
    orchestrator = FallbackOrchestrator(
        text_providers if text_providers is not None else [MockProvider(config=config)],
        image_providers if image_providers is not None else [MockProvider(config=config)],
    )
    return EbookService(settings=settings, orchestrator=orchestrator, config=config)


def wait_for_state(client, run_id, states, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        data = client.get(f"/api/runs/{run_id}").json()
        if data["state"] in states and not data["is_running"]:
            return data
        time.sleep(0.02)
    raise AssertionError(f"run {run_id} never reached {states}")


@pytest.fixture
def service(tmp_path):
    service = make_service(tmp_path)
    set_ebook_service(service)
    yield service
    set_ebook_service(None)


@pytest.fixture
def client(service):
    with TestClient(app) as client:
        yield client


def create_complete_run(client):
    run_id = client.post("/api/runs", json=OPTIONS).json()["id"]
    client.post(f"/api/runs/{run_id}/generate")
    wait_for_state(client, run_id, {"complete"})
    return run_id


class TestCreateRun:
    """Test POST /api/runs."""

    def test_create_returns_outline(self, client):
        resp = client.post("/api/runs", json=OPTIONS)
        assert resp.status_code == 201

        data = resp.json()
        assert data["state"] == "outline_ready"
        assert data["total_chapters"] == 3
        assert data["chapters_done"] == 0
        assert data["outline"]["title"] == "The Urban Gardening Handbook"
        assert "backCoverCopy" in data["outline"]

    def test_validation_error(self, client):
        resp = client.post("/api/runs", json={"topic": "", "chapter_count": 0})
        assert resp.status_code == 422

    def test_blank_topic_rejected(self, client):
        resp = client.post("/api/runs", json={**OPTIONS, "topic": "   "})
        assert resp.status_code == 422
        assert client.get("/api/runs").json() == []

    def test_topic_is_trimmed(self, client):
        resp = client.post("/api/runs", json={**OPTIONS, "topic": "  urban gardening  "})
        assert resp.status_code == 201
        assert resp.json()["outline"]["title"] == "The Urban Gardening Handbook"

    def test_no_configured_providers(self, tmp_path):
        service = make_service(tmp_path, text_providers=[], image_providers=[])
        set_ebook_service(service)
        try:
            with TestClient(app) as client:
                resp = client.post("/api/runs", json=OPTIONS)
                assert resp.status_code == 503
                assert "no configured providers" in resp.json()["error"]

                runs = client.get("/api/runs").json()
                assert len(runs) == 1
                assert runs[0]["state"] == "errored"
        finally:
            set_ebook_service(None)


class TestGenerate:
    """Test POST /api/runs/{id}/generate and GET /api/runs/{id}."""

    def test_generate_to_completion(self, client):
        run_id = client.post("/api/runs", json=OPTIONS).json()["id"]

        resp = client.post(f"/api/runs/{run_id}/generate")
        assert resp.status_code == 202

        data = wait_for_state(client, run_id, {"complete"})
        assert data["chapters_done"] == 3
        assert data["progress_percentage"] == 100.0
        assert data["progress"]["message"] == "Book complete"

    def test_include_content(self, client):
        run_id = create_complete_run(client)
        data = client.get(f"/api/runs/{run_id}", params={"include_content": True}).json()

        assert [c["title"] for c in data["chapters"]] == [
            "Part 1 of Urban Gardening",
            "Part 2 of Urban Gardening",
            "Part 3 of Urban Gardening",
        ]
        assert all(c["word_count"] > 0 for c in data["chapters"])

    def test_generate_twice_conflicts(self, client):
        run_id = create_complete_run(client)
        resp = client.post(f"/api/runs/{run_id}/generate")
        assert resp.status_code == 409
        assert "error" in resp.json()

    def test_unknown_run(self, client):
        assert client.get("/api/runs/missing").status_code == 404
        assert client.post("/api/runs/missing/generate").status_code == 404
        assert client.post("/api/runs/missing/resume").status_code == 404
        assert client.post("/api/runs/missing/restart").status_code == 404
        assert client.delete("/api/runs/missing").status_code == 404
        assert client.get("/api/runs/missing/export/docx").json() == {"error": "Run not found"}


class TestResumeAndRestart:
    """Test POST /api/runs/{id}/resume and /restart."""

    @pytest.fixture
    def flaky(self):
        return FlakyProvider(fail_at=1, config=GeneratorConfig(chapter_delay=0))

    @pytest.fixture
    def client(self, tmp_path, flaky):
        service = make_service(tmp_path, text_providers=[flaky])
        set_ebook_service(service)
        with TestClient(app) as client:
            yield client
        set_ebook_service(None)

    def test_failure_then_resume(self, client, flaky):
        run_id = client.post("/api/runs", json=OPTIONS).json()["id"]
        client.post(f"/api/runs/{run_id}/generate")

        failed = wait_for_state(client, run_id, {"errored"})
        assert failed["chapters_done"] == 1
        assert "overloaded" in failed["error"]

        calls_before = flaky.call_count
        resp = client.post(f"/api/runs/{run_id}/resume")
        assert resp.status_code == 202

        done = wait_for_state(client, run_id, {"complete"})
        assert done["chapters_done"] == 3
        assert done["error"] is None
        # Chapter 1 was not regenerated
        assert flaky.call_count - calls_before == 2

    def test_resume_complete_run_conflicts(self, client, flaky):
        flaky.failed = True
        run_id = create_complete_run(client)
        assert client.post(f"/api/runs/{run_id}/resume").status_code == 409

    def test_restart_discards_chapters(self, client, flaky):
        flaky.failed = True
        run_id = create_complete_run(client)

        resp = client.post(f"/api/runs/{run_id}/restart")
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == run_id
        assert data["state"] == "outline_ready"
        assert data["chapters_done"] == 0


class TestExport:
    """Test GET /api/runs/{id}/export/{fmt}."""

    def test_export_before_complete(self, client):
        run_id = client.post("/api/runs", json=OPTIONS).json()["id"]
        resp = client.get(f"/api/runs/{run_id}/export/docx")
        assert resp.status_code == 409

    def test_export_docx(self, client):
        run_id = create_complete_run(client)
        resp = client.get(f"/api/runs/{run_id}/export/docx")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )
        assert resp.headers["content-disposition"] == (
            'attachment; filename="the_urban_gardening_handbook.docx"'
        )
        doc = Document(io.BytesIO(resp.content))
        assert "The Urban Gardening Handbook" in [p.text for p in doc.paragraphs]

    def test_export_epub(self, client):
        run_id = create_complete_run(client)
        resp = client.get(f"/api/runs/{run_id}/export/epub")

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/epub+zip"
        with zipfile.ZipFile(io.BytesIO(resp.content)) as epub:
            assert epub.namelist()[0] == "mimetype"
            assert "OEBPS/Text/chapter3.xhtml" in epub.namelist()

    def test_export_html_inline(self, client):
        run_id = create_complete_run(client)
        resp = client.get(f"/api/runs/{run_id}/export/html")

        assert resp.status_code == 200
        assert resp.headers["content-disposition"].startswith("inline;")
        assert "Jordan Lee" in resp.text

    def test_unknown_format(self, client):
        run_id = create_complete_run(client)
        assert client.get(f"/api/runs/{run_id}/export/pdf").status_code == 422

    def test_cover_attached_to_exports(self, client):
        run_id = create_complete_run(client)
        cover = client.post("/api/ai/cover", json={"prompt": "a rooftop garden", "run_id": run_id})
        assert cover.status_code == 200
        assert client.get(f"/api/runs/{run_id}").json()["has_cover"] is True

        resp = client.get(f"/api/runs/{run_id}/export/epub")
        with zipfile.ZipFile(io.BytesIO(resp.content)) as epub:
            assert "OEBPS/Images/cover.png" in epub.namelist()


class TestListAndDelete:
    """Test GET /api/runs and DELETE /api/runs/{id}."""

    def test_list(self, client):
        client.post("/api/runs", json=OPTIONS)
        client.post("/api/runs", json={**OPTIONS, "topic": "beekeeping"})
        runs = client.get("/api/runs").json()
        assert len(runs) == 2
        assert runs[0]["outline"]["title"] == "The Beekeeping Handbook"

    def test_delete_removes_snapshot(self, client, service):
        run_id = client.post("/api/runs", json=OPTIONS).json()["id"]
        assert service.snapshot_store.load(run_id) is not None

        resp = client.delete(f"/api/runs/{run_id}")
        assert resp.status_code == 200
        assert client.get(f"/api/runs/{run_id}").status_code == 404
        assert service.snapshot_store.load(run_id) is None
