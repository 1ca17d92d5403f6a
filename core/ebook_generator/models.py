"""
eBook Generator Data Models

Core data structures for outline/chapter generation and export.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum
from datetime import datetime
import base64
import re
import uuid
import json


class RunState(str, Enum):
    """Generation run lifecycle state"""
    IDLE = "idle"
    OUTLINE_PENDING = "outline_pending"
    OUTLINE_READY = "outline_ready"
    CHAPTER_IN_PROGRESS = "chapter_in_progress"
    COMPLETE = "complete"
    ERRORED = "errored"


class LengthBucket(str, Enum):
    """Target length buckets offered by the wizard"""
    SHORT = "Short (20-30 pages)"
    MEDIUM = "Medium (30-50 pages)"
    LONG = "Long (50+ pages)"


class SizeTier(str, Enum):
    """Requested cover image resolution tier"""
    SMALL = "1K"
    MEDIUM = "2K"
    LARGE = "4K"


@dataclass(frozen=True)
class GenerationOptions:
    """
    Wizard submission. Immutable for the lifetime of a run.
    """
    topic: str
    audience: str = "General readers"
    tone: str = "Professional"
    objective: str = ""
    chapter_count: int = 10
    length: str = LengthBucket.MEDIUM.value
    description: str = ""
    extras: tuple = ()
    author_name: str = "Anonymous"
    english_style: str = "Standard American English"

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "audience": self.audience,
            "tone": self.tone,
            "objective": self.objective,
            "chapter_count": self.chapter_count,
            "length": self.length,
            "description": self.description,
            "extras": list(self.extras),
            "author_name": self.author_name,
            "english_style": self.english_style,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationOptions":
        return cls(
            topic=data["topic"],
            audience=data.get("audience", "General readers"),
            tone=data.get("tone", "Professional"),
            objective=data.get("objective", ""),
            chapter_count=int(data.get("chapter_count", 10)),
            length=data.get("length", LengthBucket.MEDIUM.value),
            description=data.get("description", ""),
            extras=tuple(data.get("extras") or ()),
            author_name=data.get("author_name", "Anonymous"),
            english_style=data.get("english_style", "Standard American English"),
        )


@dataclass
class ChapterOutline:
    """A planned chapter: title plus a short description"""
    title: str
    description: str = ""

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChapterOutline":
        return cls(title=data["title"], description=data.get("description", ""))


@dataclass
class BookOutline:
    """
    Structured summary of the book produced before any chapter content.

    Chapter order is significant and maps directly to book structure.
    """
    title: str
    subtitle: str = ""
    description: str = ""
    back_cover_copy: str = ""
    chapters: List[ChapterOutline] = field(default_factory=list)

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "description": self.description,
            "backCoverCopy": self.back_cover_copy,
            "chapters": [c.to_dict() for c in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookOutline":
        return cls(
            title=data["title"],
            subtitle=data.get("subtitle", ""),
            description=data.get("description", ""),
            back_cover_copy=data.get("backCoverCopy", data.get("back_cover_copy", "")),
            chapters=[ChapterOutline.from_dict(c) for c in data.get("chapters", [])],
        )


@dataclass
class ChapterContent:
    """Generated chapter body (Markdown)"""
    title: str
    content: str

    @property
    def word_count(self) -> int:
        return len(self.content.split()) if self.content else 0

    def to_dict(self) -> dict:
        return {"title": self.title, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChapterContent":
        return cls(title=data["title"], content=data.get("content", ""))


@dataclass
class GeneratedBook:
    """Outline fields plus the ordered chapter contents"""
    outline: BookOutline
    chapters: List[ChapterContent] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.outline.title

    @property
    def subtitle(self) -> str:
        return self.outline.subtitle

    @property
    def description(self) -> str:
        return self.outline.description

    @property
    def back_cover_copy(self) -> str:
        return self.outline.back_cover_copy

    @property
    def is_complete(self) -> bool:
        return (
            self.outline.chapter_count > 0
            and len(self.chapters) == self.outline.chapter_count
        )

    @property
    def word_count(self) -> int:
        return sum(c.word_count for c in self.chapters)

    def to_dict(self) -> dict:
        data = self.outline.to_dict()
        data["fullChapters"] = [c.to_dict() for c in self.chapters]
        return data


_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


@dataclass
class CoverImage:
    """Provider-independent in-memory image"""
    data: bytes
    mime_type: str = "image/png"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_base64(cls, b64: str, mime_type: str = "image/png") -> "CoverImage":
        return cls(data=base64.b64decode(b64), mime_type=mime_type)

    @classmethod
    def from_data_url(cls, value: str) -> "CoverImage":
        """Accept a data URL or bare base64 payload"""
        match = _DATA_URL_RE.match(value.strip())
        if match:
            return cls.from_base64(match.group("data"), match.group("mime"))
        return cls.from_base64(value.strip())


@dataclass
class GenerationRun:
    """
    Explicit state of one end-to-end generation attempt.

    Invariant: ``chapters`` is always a prefix of ``outline.chapters``.
    """
    options: GenerationOptions
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: RunState = RunState.IDLE
    outline: Optional[BookOutline] = None
    chapters: List[ChapterContent] = field(default_factory=list)
    store_id: Optional[str] = None
    error: Optional[str] = None
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def total_chapters(self) -> int:
        return self.outline.chapter_count if self.outline else 0

    @property
    def next_index(self) -> int:
        """Index of the next chapter to generate"""
        return len(self.chapters)

    @property
    def is_complete(self) -> bool:
        return self.total_chapters > 0 and self.next_index == self.total_chapters

    @property
    def progress_percentage(self) -> float:
        if self.total_chapters == 0:
            return 0.0
        return (self.next_index / self.total_chapters) * 100

    def to_book(self) -> GeneratedBook:
        if self.outline is None:
            raise ValueError("run has no outline")
        return GeneratedBook(outline=self.outline, chapters=list(self.chapters))

    def to_snapshot(self) -> dict:
        """Serializable snapshot, restored on startup"""
        return {
            "id": self.id,
            "state": self.state.value,
            "options": self.options.to_dict(),
            "outline": self.outline.to_dict() if self.outline else None,
            "chapters": [c.to_dict() for c in self.chapters],
            "runId": self.store_id,
            "error": self.error,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "GenerationRun":
        run = cls(
            options=GenerationOptions.from_dict(data["options"]),
            id=data.get("id") or str(uuid.uuid4()),
            state=RunState(data.get("state", RunState.IDLE.value)),
            outline=BookOutline.from_dict(data["outline"]) if data.get("outline") else None,
            chapters=[ChapterContent.from_dict(c) for c in data.get("chapters", [])],
            store_id=data.get("runId"),
            error=data.get("error"),
        )
        if data.get("updated_at"):
            run.updated_at = datetime.fromisoformat(data["updated_at"])
        return run

    def to_json(self) -> str:
        return json.dumps(self.to_snapshot(), indent=2, ensure_ascii=False)
