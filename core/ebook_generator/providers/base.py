"""
Base Provider Adapter

All text/image backends inherit from this base class. It owns the parts of
the call contract that do not depend on the backend: credential check,
deadlines, retry with backoff and outline parsing.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import json
import logging
import re

import httpx

from ..config import GeneratorConfig
from ..exceptions import (
    CredentialMissingError,
    EmptyResponseError,
    MalformedResponseError,
    ProviderError,
    ProviderTimeoutError,
)
from ..models import (
    BookOutline,
    ChapterOutline,
    CoverImage,
    GenerationOptions,
    SizeTier,
)


SleepFunc = Callable[[float], Awaitable[Any]]

RETRYABLE_STATUS = {429}

_FENCE_RE = re.compile(r"```(?:[a-zA-Z]+)?[ \t]*\n?(.*?)\n?[ \t]*```", re.S)


def strip_code_fences(text: str) -> str:
    """Return the first ```json ... ``` block, or the whole text when unfenced"""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_outline(raw: str, provider: str) -> BookOutline:
    """
    Parse an outline response into a BookOutline.

    Raises MalformedResponseError when the payload is not a JSON object, has
    no title, or has a missing/empty chapter list.
    """
    if not raw or not raw.strip():
        raise EmptyResponseError(provider, "outline")

    try:
        data = json.loads(strip_code_fences(raw))
    except ValueError as e:
        raise MalformedResponseError(provider, f"invalid JSON ({e})")

    if not isinstance(data, dict):
        raise MalformedResponseError(provider, "outline is not a JSON object")

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedResponseError(provider, "outline has no title")

    raw_chapters = data.get("chapters")
    if not isinstance(raw_chapters, list) or not raw_chapters:
        raise MalformedResponseError(provider, "outline has no chapters")

    chapters = []
    for i, item in enumerate(raw_chapters):
        if not isinstance(item, dict) or not str(item.get("title") or "").strip():
            raise MalformedResponseError(provider, f"chapter {i + 1} has no title")
        chapters.append(ChapterOutline(
            title=str(item["title"]).strip(),
            description=str(item.get("description") or "").strip(),
        ))

    return BookOutline(
        title=title.strip(),
        subtitle=str(data.get("subtitle") or ""),
        description=str(data.get("description") or ""),
        back_cover_copy=str(data.get("backCoverCopy") or data.get("back_cover_copy") or ""),
        chapters=chapters,
    )


class ProviderAdapter(ABC):
    """
    Uniform call interface over one generation backend.

    Subclasses implement the raw request methods; the public methods add the
    credential check, deadline and response validation. Adapters are
    stateless across calls.
    """

    name: str = "base"
    supports_images: bool = False

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        base_url: str = "",
        image_model: str = "",
        config: Optional[GeneratorConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.image_model = image_model
        self.config = config or GeneratorConfig()
        self._client = client
        self._sleep = sleep or asyncio.sleep
        self.logger = logging.getLogger(f"EbookGenerator.Provider.{self.name}")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.model!r}>"

    # ------------------------------------------------------------------
    # Public call shape
    # ------------------------------------------------------------------

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_outline(self, options: GenerationOptions) -> BookOutline:
        self._require_credentials()
        raw = await self._with_deadline(
            self._request_outline(options), self.config.outline_timeout, "outline"
        )
        return parse_outline(raw, self.name)

    async def generate_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        """Generate one chapter body as Markdown. ``index`` is zero-based."""
        self._require_credentials()
        text = await self._with_deadline(
            self._request_chapter(options, book_info, chapter, index, total),
            self.config.chapter_timeout,
            f"chapter {index + 1}",
        )
        if not text or not text.strip():
            raise EmptyResponseError(self.name, "chapter")
        return text

    async def generate_cover_image(self, prompt: str, size: SizeTier = SizeTier.SMALL) -> CoverImage:
        self._require_image_support()
        self._require_credentials()
        return await self._with_deadline(
            self._request_cover(prompt, SizeTier(size)), self.config.image_timeout, "cover image"
        )

    async def edit_cover_image(self, image: CoverImage, prompt: str) -> CoverImage:
        self._require_image_support()
        self._require_credentials()
        return await self._with_deadline(
            self._request_cover_edit(image, prompt), self.config.image_timeout, "cover edit"
        )

    # ------------------------------------------------------------------
    # Backend-specific requests
    # ------------------------------------------------------------------

    @abstractmethod
    async def _request_outline(self, options: GenerationOptions) -> str:
        """Return the raw outline text (JSON, possibly fenced)"""
        pass

    @abstractmethod
    async def _request_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        pass

    async def _request_cover(self, prompt: str, size: SizeTier) -> CoverImage:
        raise ProviderError(self.name, "image generation not supported")

    async def _request_cover_edit(self, image: CoverImage, prompt: str) -> CoverImage:
        # No native edit: regenerate from the refined prompt
        return await self._request_cover(prompt, SizeTier.SMALL)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_credentials(self) -> None:
        if not self.is_configured():
            raise CredentialMissingError(self.name)

    def _require_image_support(self) -> None:
        if not self.supports_images:
            raise ProviderError(self.name, "image generation not supported")

    async def _with_deadline(self, coro: Awaitable[Any], timeout: float, operation: str) -> Any:
        """Await ``coro``, cancelling it once ``timeout`` seconds pass."""
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"{operation} exceeded {timeout:g}s deadline")
            raise ProviderTimeoutError(self.name, operation, timeout)

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        # Deadlines are enforced by _with_deadline
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.request(method, url, **kwargs)

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        POST a JSON payload and return the decoded JSON body.

        429, 5xx and transport failures are retried up to ``max_retries``
        times with delays of ``retry_base_delay * 2**attempt``. Any other
        non-2xx status or an undecodable body raises ProviderError at once.
        """
        max_retries = self.config.max_retries
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})

        for attempt in range(max_retries + 1):
            try:
                response = await self._send("POST", url, json=payload, headers=request_headers)
            except httpx.TransportError as e:
                if attempt < max_retries:
                    await self._backoff(attempt, f"network error: {e}")
                    continue
                raise ProviderError(self.name, f"network error: {e}")

            if response.status_code in RETRYABLE_STATUS or response.status_code >= 500:
                if attempt < max_retries:
                    await self._backoff(attempt, f"HTTP {response.status_code}")
                    continue
                raise ProviderError(self.name, _error_message(response), response.status_code)

            if not response.is_success:
                raise ProviderError(self.name, _error_message(response), response.status_code)

            try:
                return response.json()
            except ValueError:
                raise ProviderError(self.name, "response body is not valid JSON", response.status_code)

        # Loop always returns or raises
        raise ProviderError(self.name, "retries exhausted")

    async def _get_bytes(self, url: str) -> bytes:
        response = await self._send("GET", url)
        if not response.is_success:
            raise ProviderError(self.name, "image download failed", response.status_code)
        return response.content

    async def _backoff(self, attempt: int, reason: str) -> None:
        delay = self.config.retry_base_delay * (2 ** attempt)
        self.logger.warning(f"Attempt {attempt + 1} failed ({reason}), retrying in {delay}s")
        await self._sleep(delay)


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a failed response"""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.reason_phrase or "request failed"
