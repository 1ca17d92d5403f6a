"""
Persistence collaborators

- RunStore: durable mirror of runs and their chapters (SQLite or null).
- JsonSnapshotStore: one JSON snapshot per run, restored on startup.

The sequencer treats every call here as best-effort.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import os
import sqlite3
import uuid

from .models import BookOutline, ChapterContent, ChapterOutline, GeneratedBook, GenerationOptions


logger = logging.getLogger("EbookGenerator.Persistence")


class BookStatus:
    """Run store status values"""
    DRAFT = "draft"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class RunStore(ABC):
    """Durable record of a run, its outline and generated chapters."""

    @abstractmethod
    def create_run(self, options: GenerationOptions) -> Optional[str]:
        """Create a run record and return its id (None when unavailable)"""
        pass

    @abstractmethod
    def attach_outline(self, run_id: str, outline: BookOutline) -> None:
        pass

    @abstractmethod
    def append_chapter(self, run_id: str, chapter: ChapterContent, index: int, description: str) -> None:
        pass

    @abstractmethod
    def mark_complete(self, run_id: str) -> None:
        pass

    @abstractmethod
    def mark_failed(self, run_id: str) -> None:
        pass

    @abstractmethod
    def get_book(self, run_id: str) -> Optional[GeneratedBook]:
        pass


class NullRunStore(RunStore):
    """Run store that records nothing"""

    def create_run(self, options: GenerationOptions) -> Optional[str]:
        return None

    def attach_outline(self, run_id: str, outline: BookOutline) -> None:
        pass

    def append_chapter(self, run_id: str, chapter: ChapterContent, index: int, description: str) -> None:
        pass

    def mark_complete(self, run_id: str) -> None:
        pass

    def mark_failed(self, run_id: str) -> None:
        pass

    def get_book(self, run_id: str) -> Optional[GeneratedBook]:
        return None


class SQLiteRunStore(RunStore):
    """SQLite-based run store with books and chapters tables."""

    def __init__(self, db_path: Union[str, Path] = "data/ebooks.db"):
        db_path = str(db_path)
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_db(self):
        """Create tables if not exist."""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS books (
                    id TEXT PRIMARY KEY,
                    title TEXT,
                    subtitle TEXT,
                    description TEXT,
                    back_cover_copy TEXT,
                    topic TEXT NOT NULL,
                    target_audience TEXT,
                    english_style TEXT,
                    page_count TEXT,
                    target_chapter_count INTEGER,
                    tone TEXT,
                    author_name TEXT,
                    objective TEXT,
                    user_book_description TEXT,
                    extras JSON DEFAULT '[]',
                    status TEXT NOT NULL DEFAULT 'draft',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chapters (
                    id TEXT PRIMARY KEY,
                    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    description TEXT,
                    content TEXT,
                    order_index INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_chapters_book
                ON chapters(book_id, order_index)
            """)
            conn.commit()

    def create_run(self, options: GenerationOptions) -> Optional[str]:
        run_id = str(uuid.uuid4())
        now = datetime.now().isoformat()
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO books (id, topic, target_audience, english_style, page_count,
                                   target_chapter_count, tone, author_name, objective,
                                   user_book_description, extras, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                run_id,
                options.topic,
                options.audience,
                options.english_style,
                options.length,
                options.chapter_count,
                options.tone,
                options.author_name,
                options.objective,
                options.description,
                json.dumps(list(options.extras)),
                BookStatus.DRAFT,
                now,
                now,
            ))
            conn.commit()
        logger.debug(f"Created run record {run_id}")
        return run_id

    def attach_outline(self, run_id: str, outline: BookOutline) -> None:
        with self._connect() as conn:
            conn.execute("""
                UPDATE books
                SET title = ?, subtitle = ?, description = ?, back_cover_copy = ?,
                    status = ?, updated_at = ?
                WHERE id = ?
            """, (
                outline.title,
                outline.subtitle,
                outline.description,
                outline.back_cover_copy,
                BookStatus.GENERATING,
                datetime.now().isoformat(),
                run_id,
            ))
            conn.commit()

    def append_chapter(self, run_id: str, chapter: ChapterContent, index: int, description: str) -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO chapters (id, book_id, title, description, content, order_index, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                str(uuid.uuid4()),
                run_id,
                chapter.title,
                description,
                chapter.content,
                index,
                datetime.now().isoformat(),
            ))
            conn.commit()

    def _set_status(self, run_id: str, status: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE books SET status = ?, updated_at = ? WHERE id = ?",
                (status, datetime.now().isoformat(), run_id),
            )
            conn.commit()

    def mark_complete(self, run_id: str) -> None:
        self._set_status(run_id, BookStatus.COMPLETED)

    def mark_failed(self, run_id: str) -> None:
        self._set_status(run_id, BookStatus.ERROR)

    def get_status(self, run_id: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT status FROM books WHERE id = ?", (run_id,)).fetchone()
        return row[0] if row else None

    def get_book(self, run_id: str) -> Optional[GeneratedBook]:
        """Load a book and its chapters in order. Missing book returns None."""
        with self._connect() as conn:
            book = conn.execute("""
                SELECT title, subtitle, description, back_cover_copy
                FROM books WHERE id = ?
            """, (run_id,)).fetchone()
            if not book:
                return None
            rows = conn.execute("""
                SELECT title, description, content
                FROM chapters WHERE book_id = ?
                ORDER BY order_index ASC
            """, (run_id,)).fetchall()

        outline = BookOutline(
            title=book[0] or "Untitled",
            subtitle=book[1] or "",
            description=book[2] or "",
            back_cover_copy=book[3] or "",
            chapters=[ChapterOutline(title=r[0], description=r[1] or "") for r in rows],
        )
        return GeneratedBook(
            outline=outline,
            chapters=[ChapterContent(title=r[0], content=r[2] or "") for r in rows],
        )

    def delete_run(self, run_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM books WHERE id = ?", (run_id,))
            conn.commit()
            return cursor.rowcount > 0


class JsonSnapshotStore:
    """One JSON file per run, keyed by run id."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, run_id: str) -> Path:
        return self.directory / f"{run_id}.json"

    def save(self, snapshot: Dict[str, Any]) -> None:
        path = self._path(snapshot["id"])
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)

    def load(self, run_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(run_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def load_all(self) -> List[Dict[str, Any]]:
        """Load every readable snapshot. Corrupt files are logged and skipped."""
        snapshots = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    snapshots.append(json.load(f))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable snapshot {path.name}: {e}")
        return snapshots

    def delete(self, run_id: str) -> bool:
        path = self._path(run_id)
        if path.exists():
            path.unlink()
            return True
        return False
