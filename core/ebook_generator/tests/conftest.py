"""
Pytest Configuration and Fixtures
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from core.ebook_generator.config import GeneratorConfig
from core.ebook_generator.models import (
    BookOutline,
    ChapterOutline,
    GenerationOptions,
)


def make_outline(count: int = 3) -> BookOutline:
    return BookOutline(
        title="Test Book",
        subtitle="A Subtitle",
        description="Store description",
        back_cover_copy="Back cover",
        chapters=[
            ChapterOutline(title=f"Chapter Title {i + 1}", description=f"About part {i + 1}")
            for i in range(count)
        ],
    )


def make_provider(name: str, configured: bool = True):
    """Mock provider adapter with async call methods"""
    provider = MagicMock()
    provider.name = name
    provider.is_configured.return_value = configured
    provider.generate_outline = AsyncMock()
    provider.generate_chapter = AsyncMock()
    provider.generate_cover_image = AsyncMock()
    provider.edit_cover_image = AsyncMock()
    return provider


@pytest.fixture
def provider_factory():
    return make_provider


@pytest.fixture
def outline_factory():
    return make_outline


@pytest.fixture
def options():
    return GenerationOptions(
        topic="Urban Gardening",
        audience="Beginners",
        tone="Friendly",
        objective="Grow food at home",
        chapter_count=3,
        extras=("Checklists",),
        author_name="Jordan Lee",
    )


@pytest.fixture
def outline():
    return make_outline(3)


@pytest.fixture
def config():
    """Fast test configuration (no pacing delay, short backoff)"""
    return GeneratorConfig(
        chapter_delay=0.5,
        retry_base_delay=1.0,
        max_retries=2,
        outline_timeout=5.0,
        chapter_timeout=5.0,
        image_timeout=5.0,
    )


@pytest.fixture
def recorded_sleeps():
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    """Injected sleep that records delays instead of waiting"""
    async def _sleep(delay):
        recorded_sleeps.append(delay)
    return _sleep


@pytest.fixture
def mock_orchestrator(outline):
    """Orchestrator whose chapter calls return '# <title>' bodies"""
    orchestrator = MagicMock()
    orchestrator.generate_outline = AsyncMock(return_value=outline)

    async def _chapter(options, book_info, chapter, index, total):
        return f"# {chapter.title}\n\nBody of chapter {index + 1}."

    orchestrator.generate_chapter = AsyncMock(side_effect=_chapter)
    return orchestrator
