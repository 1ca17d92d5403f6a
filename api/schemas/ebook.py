"""
eBook Generator API Schemas

Pydantic models for request/response validation.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from core.ebook_generator.models import (
    BookOutline,
    ChapterOutline,
    GenerationOptions,
    GenerationRun,
    LengthBucket,
    SizeTier,
)


# === REQUEST SCHEMAS ===

class GenerationOptionsRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500, description="Book topic")
    audience: str = Field("General readers", max_length=500)
    tone: str = Field("Professional", max_length=100)
    objective: str = Field("", max_length=2000)
    chapter_count: int = Field(10, ge=1, le=30, description="Target number of chapters")
    length: str = Field(LengthBucket.MEDIUM.value, description="Target length bucket")
    description: str = Field("", max_length=5000, description="Free-text book description")
    extras: List[str] = Field(default_factory=list, description="Optional feature tags")
    author_name: str = Field("Anonymous", max_length=200)
    english_style: str = Field("Standard American English", max_length=100)

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Topic must not be blank")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "topic": "Urban gardening for beginners",
                "audience": "Apartment dwellers",
                "tone": "Friendly",
                "objective": "Grow food in small spaces",
                "chapter_count": 8,
                "length": "Medium (30-50 pages)",
                "extras": ["Checklists", "Case studies"],
                "author_name": "Jordan Lee",
            }
        }

    def to_options(self) -> GenerationOptions:
        return GenerationOptions(
            topic=self.topic,
            audience=self.audience,
            tone=self.tone,
            objective=self.objective,
            chapter_count=self.chapter_count,
            length=self.length,
            description=self.description,
            extras=tuple(self.extras),
            author_name=self.author_name or "Anonymous",
            english_style=self.english_style,
        )


class ChapterOutlineSchema(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""

    @classmethod
    def from_model(cls, chapter: ChapterOutline) -> "ChapterOutlineSchema":
        return cls(title=chapter.title, description=chapter.description)

    def to_model(self) -> ChapterOutline:
        return ChapterOutline(title=self.title, description=self.description)


class BookOutlineSchema(BaseModel):
    title: str
    subtitle: str = ""
    description: str = ""
    back_cover_copy: str = Field("", alias="backCoverCopy")
    chapters: List[ChapterOutlineSchema] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @classmethod
    def from_model(cls, outline: BookOutline) -> "BookOutlineSchema":
        return cls(
            title=outline.title,
            subtitle=outline.subtitle,
            description=outline.description,
            back_cover_copy=outline.back_cover_copy,
            chapters=[ChapterOutlineSchema.from_model(c) for c in outline.chapters],
        )


class ChapterRequest(BaseModel):
    options: GenerationOptionsRequest
    book_title: str = Field(..., min_length=1)
    book_subtitle: str = ""
    chapter: ChapterOutlineSchema
    index: int = Field(..., ge=0, description="Zero-based chapter index")
    total: int = Field(..., ge=1)


class CoverRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    size: SizeTier = Field(SizeTier.SMALL)
    run_id: Optional[str] = Field(None, description="Attach the cover to a run's exports")


class CoverEditRequest(BaseModel):
    image: str = Field(..., min_length=1, description="Data URL or bare base64 image")
    prompt: str = Field(..., min_length=1, max_length=4000)
    run_id: Optional[str] = None


# === RESPONSE SCHEMAS ===

class ChapterResponse(BaseModel):
    index: int
    title: str
    content: str
    word_count: int


class CoverResponse(BaseModel):
    image: str  # data URL
    mime_type: str


class ChapterContentSchema(BaseModel):
    title: str
    content: str
    word_count: int


class RunResponse(BaseModel):
    id: str
    state: str
    options: Dict[str, Any]
    outline: Optional[BookOutlineSchema] = None
    chapters_done: int = 0
    total_chapters: int = 0
    progress_percentage: float = 0.0
    chapters: Optional[List[ChapterContentSchema]] = None
    error: Optional[str] = None
    run_store_id: Optional[str] = None
    is_running: bool = False
    has_cover: bool = False
    progress: Optional[Dict[str, Any]] = None
    updated_at: datetime

    @classmethod
    def from_run(
        cls,
        run: GenerationRun,
        include_content: bool = False,
        is_running: bool = False,
        has_cover: bool = False,
        progress: Optional[Dict[str, Any]] = None,
    ) -> "RunResponse":
        chapters = None
        if include_content:
            chapters = [
                ChapterContentSchema(title=c.title, content=c.content, word_count=c.word_count)
                for c in run.chapters
            ]
        return cls(
            id=run.id,
            state=run.state.value,
            options=run.options.to_dict(),
            outline=BookOutlineSchema.from_model(run.outline) if run.outline else None,
            chapters_done=len(run.chapters),
            total_chapters=run.total_chapters,
            progress_percentage=round(run.progress_percentage, 1),
            chapters=chapters,
            error=run.error,
            run_store_id=run.store_id,
            is_running=is_running,
            has_cover=has_cover,
            progress=progress,
            updated_at=run.updated_at,
        )
