"""
Tests for the run store and snapshot store
"""

import json

import pytest

from core.ebook_generator.models import ChapterContent, GenerationRun
from core.ebook_generator.persistence import (
    BookStatus,
    JsonSnapshotStore,
    NullRunStore,
    SQLiteRunStore,
)
from core.ebook_generator.progress import ProgressTracker


@pytest.fixture
def sqlite_store(tmp_path):
    return SQLiteRunStore(tmp_path / "db" / "ebooks.db")


class TestSQLiteRunStore:

    def test_full_lifecycle(self, sqlite_store, options, outline):
        run_id = sqlite_store.create_run(options)
        assert sqlite_store.get_status(run_id) == BookStatus.DRAFT

        sqlite_store.attach_outline(run_id, outline)
        assert sqlite_store.get_status(run_id) == BookStatus.GENERATING

        # Out of insertion order; reads come back by order_index
        for index in (1, 0):
            chapter = outline.chapters[index]
            sqlite_store.append_chapter(
                run_id, ChapterContent(chapter.title, f"body {index}"), index, chapter.description
            )
        sqlite_store.mark_complete(run_id)

        book = sqlite_store.get_book(run_id)
        assert book.title == "Test Book"
        assert book.back_cover_copy == "Back cover"
        assert [c.title for c in book.chapters] == ["Chapter Title 1", "Chapter Title 2"]
        assert book.outline.chapters[0].description == "About part 1"
        assert sqlite_store.get_status(run_id) == BookStatus.COMPLETED

    def test_mark_failed(self, sqlite_store, options):
        run_id = sqlite_store.create_run(options)
        sqlite_store.mark_failed(run_id)
        assert sqlite_store.get_status(run_id) == BookStatus.ERROR

    def test_missing_book(self, sqlite_store):
        assert sqlite_store.get_book("nope") is None
        assert sqlite_store.get_status("nope") is None

    def test_delete_cascades(self, sqlite_store, options, outline):
        run_id = sqlite_store.create_run(options)
        sqlite_store.append_chapter(run_id, ChapterContent("A", "x"), 0, "")

        assert sqlite_store.delete_run(run_id) is True
        assert sqlite_store.get_book(run_id) is None
        assert sqlite_store.delete_run(run_id) is False


class TestNullRunStore:

    def test_records_nothing(self, options, outline):
        store = NullRunStore()
        assert store.create_run(options) is None
        store.attach_outline("x", outline)
        assert store.get_book("x") is None


class TestJsonSnapshotStore:

    def test_save_and_load(self, tmp_path, options, outline):
        store = JsonSnapshotStore(tmp_path / "snapshots")
        run = GenerationRun(options=options, outline=outline)

        store.save(run.to_snapshot())

        assert store.load(run.id)["id"] == run.id
        assert [s["id"] for s in store.load_all()] == [run.id]
        assert not list((tmp_path / "snapshots").glob("*.tmp"))

    def test_overwrite(self, tmp_path, options):
        store = JsonSnapshotStore(tmp_path)
        run = GenerationRun(options=options)
        store.save(run.to_snapshot())
        run.error = "boom"
        store.save(run.to_snapshot())

        assert store.load(run.id)["error"] == "boom"
        assert len(store.load_all()) == 1

    def test_corrupt_file_is_skipped(self, tmp_path, options):
        store = JsonSnapshotStore(tmp_path)
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        run = GenerationRun(options=options)
        store.save(run.to_snapshot())

        snapshots = store.load_all()
        assert [s["id"] for s in snapshots] == [run.id]

    def test_delete(self, tmp_path, options):
        store = JsonSnapshotStore(tmp_path)
        run = GenerationRun(options=options)
        store.save(run.to_snapshot())

        assert store.delete(run.id) is True
        assert store.load(run.id) is None
        assert store.delete(run.id) is False

    def test_unicode_preserved(self, tmp_path, options):
        store = JsonSnapshotStore(tmp_path)
        run = GenerationRun(options=options, error="Lỗi: café")
        store.save(run.to_snapshot())

        raw = (tmp_path / f"{run.id}.json").read_text(encoding="utf-8")
        assert "café" in raw
        assert json.loads(raw)["error"] == "Lỗi: café"


class TestProgressTracker:

    @pytest.mark.asyncio
    async def test_history_and_callback(self):
        tracker = ProgressTracker(max_history=2)
        received = []
        tracker.register_callback("run-1", received.append)

        await tracker.update("run-1", "one", 10)
        await tracker.update("run-1", "two", 20)
        await tracker.update("run-1", "three", 30)

        assert [u["message"] for u in tracker.get_history("run-1")] == ["two", "three"]
        assert tracker.get_latest("run-1")["percentage"] == 30
        assert len(received) == 3

        tracker.clear_history("run-1")
        assert tracker.get_latest("run-1") is None

    @pytest.mark.asyncio
    async def test_callback_error_is_swallowed(self):
        tracker = ProgressTracker()

        def broken(update):
            raise RuntimeError("socket closed")

        tracker.register_callback("run-1", broken)
        await tracker.update("run-1", "still recorded", 50)
        assert tracker.get_latest("run-1")["message"] == "still recorded"
