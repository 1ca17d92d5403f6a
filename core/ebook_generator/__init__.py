"""
eBook Generator - outline, chapters and cover through a provider fallback chain

Key Features:
- Ordered fallback over OpenAI, Gemini, Anthropic and DeepSeek
- Chapter-by-chapter generation, persisted after every chapter
- Resume after failure without regenerating finished chapters

Usage:
    from core.ebook_generator import (
        FallbackOrchestrator, GenerationSequencer, GenerationOptions, build_providers,
    )

    orchestrator = FallbackOrchestrator(build_providers(["openai", "gemini"], settings))
    sequencer = GenerationSequencer(orchestrator)

    await sequencer.start(GenerationOptions(topic="Urban Gardening"))
    book = await sequencer.run_to_completion()
"""

from .config import AIProvider, ExportFormat, GeneratorConfig
from .models import (
    RunState,
    LengthBucket,
    SizeTier,
    GenerationOptions,
    ChapterOutline,
    BookOutline,
    ChapterContent,
    GeneratedBook,
    CoverImage,
    GenerationRun,
)
from .exceptions import (
    EbookGeneratorError,
    CredentialMissingError,
    ProviderTimeoutError,
    ProviderError,
    MalformedResponseError,
    EmptyResponseError,
    ProviderFailure,
    AllProvidersFailedError,
    ConversionError,
    InvalidStateError,
    PersistenceWarning,
)
from .providers import MockProvider, ProviderAdapter, build_provider, build_providers
from .orchestrator import FallbackOrchestrator
from .sequencer import GenerationSequencer
from .persistence import RunStore, NullRunStore, SQLiteRunStore, JsonSnapshotStore
from .progress import ProgressTracker, ProgressUpdate

__version__ = "1.0.0"
__all__ = [
    # Config
    "AIProvider",
    "ExportFormat",
    "GeneratorConfig",
    # Models
    "RunState",
    "LengthBucket",
    "SizeTier",
    "GenerationOptions",
    "ChapterOutline",
    "BookOutline",
    "ChapterContent",
    "GeneratedBook",
    "CoverImage",
    "GenerationRun",
    # Exceptions
    "EbookGeneratorError",
    "CredentialMissingError",
    "ProviderTimeoutError",
    "ProviderError",
    "MalformedResponseError",
    "EmptyResponseError",
    "ProviderFailure",
    "AllProvidersFailedError",
    "ConversionError",
    "InvalidStateError",
    "PersistenceWarning",
    # Providers
    "ProviderAdapter",
    "MockProvider",
    "build_provider",
    "build_providers",
    # Generation
    "FallbackOrchestrator",
    "GenerationSequencer",
    # Persistence
    "RunStore",
    "NullRunStore",
    "SQLiteRunStore",
    "JsonSnapshotStore",
    "ProgressTracker",
    "ProgressUpdate",
]
