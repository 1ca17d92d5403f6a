"""
eBook Generator Configuration

Central configuration for provider calls, fallback order and pacing.
"""

from dataclasses import dataclass, field
from typing import Any, List
from enum import Enum


class AIProvider(Enum):
    """Supported AI providers"""
    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    DEEPSEEK = "deepseek"
    MOCK = "mock"


class ExportFormat(Enum):
    """Supported export formats"""
    DOCX = "docx"
    EPUB = "epub"
    HTML = "html"


@dataclass
class GeneratorConfig:
    """
    Configuration for the generation pipeline.

    All settings that control provider calls and chapter sequencing.
    """

    # === DEADLINES (seconds) ===

    outline_timeout: float = 120.0
    """Deadline for a full outline call, retries included"""

    chapter_timeout: float = 180.0
    """Deadline for a single chapter call, retries included"""

    image_timeout: float = 120.0
    """Deadline for cover generation or edit"""

    # === RETRIES ===

    max_retries: int = 2
    """Retries after the first attempt for 5xx/429 responses"""

    retry_base_delay: float = 1.0
    """First backoff delay; doubles on each retry"""

    # === SEQUENCING ===

    chapter_delay: float = 0.5
    """Pause between chapter calls to stay under rate limits"""

    text_providers: List[str] = field(
        default_factory=lambda: ["openai", "gemini", "anthropic", "deepseek"]
    )
    """Fallback order for outline and chapter generation"""

    image_providers: List[str] = field(
        default_factory=lambda: ["gemini", "openai"]
    )
    """Fallback order for cover generation and edits"""

    # === SAMPLING ===

    temperature: float = 0.7
    max_tokens: int = 8192

    @classmethod
    def from_settings(cls, settings: Any) -> "GeneratorConfig":
        """Build from the application settings object"""
        return cls(
            outline_timeout=settings.outline_timeout,
            chapter_timeout=settings.chapter_timeout,
            image_timeout=settings.image_timeout,
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
            chapter_delay=settings.chapter_delay,
            text_providers=settings.get_text_provider_order(),
            image_providers=settings.get_image_provider_order(),
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
