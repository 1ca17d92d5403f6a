"""
Fallback Orchestrator

Tries providers in priority order for one logical operation and returns the
first success. Providers are never raced.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from .exceptions import AllProvidersFailedError, ProviderFailure
from .models import BookOutline, ChapterOutline, CoverImage, GenerationOptions, SizeTier
from .providers.base import ProviderAdapter


class FallbackOrchestrator:
    """
    Ordered fallback over provider adapters.

    Text operations (outline, chapter) and image operations (cover, cover
    edit) use separate priority lists. Providers without credentials are
    skipped and do not count as attempts.
    """

    def __init__(
        self,
        text_providers: List[ProviderAdapter],
        image_providers: Optional[List[ProviderAdapter]] = None,
    ):
        self.text_providers = list(text_providers)
        self.image_providers = list(image_providers or [])
        self.logger = logging.getLogger("EbookGenerator.Orchestrator")

    async def generate_outline(self, options: GenerationOptions) -> BookOutline:
        return await self._run(
            "outline", self.text_providers, lambda p: p.generate_outline(options)
        )

    async def generate_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        return await self._run(
            f"chapter {index + 1}",
            self.text_providers,
            lambda p: p.generate_chapter(options, book_info, chapter, index, total),
        )

    async def generate_cover_image(self, prompt: str, size: SizeTier = SizeTier.SMALL) -> CoverImage:
        return await self._run(
            "cover image", self.image_providers, lambda p: p.generate_cover_image(prompt, size)
        )

    async def edit_cover_image(self, image: CoverImage, prompt: str) -> CoverImage:
        return await self._run(
            "cover edit", self.image_providers, lambda p: p.edit_cover_image(image, prompt)
        )

    async def _run(
        self,
        operation: str,
        providers: List[ProviderAdapter],
        call: Callable[[ProviderAdapter], Awaitable[Any]],
    ) -> Any:
        failures: List[ProviderFailure] = []

        for provider in providers:
            if not provider.is_configured():
                self.logger.debug(f"{operation}: skipping {provider.name} (no credentials)")
                continue

            try:
                result = await call(provider)
            except Exception as e:
                self.logger.warning(f"{operation}: {provider.name} failed: {e}")
                failures.append(ProviderFailure(provider=provider.name, message=str(e)))
                continue

            if failures:
                self.logger.info(
                    f"{operation}: succeeded with {provider.name} after {len(failures)} failure(s)"
                )
            return result

        self.logger.error(f"{operation}: all providers failed ({len(failures)} attempt(s))")
        raise AllProvidersFailedError(operation, failures)
