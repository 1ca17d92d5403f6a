"""
Anthropic provider (Messages API, text only).
"""

from typing import Dict

from ..exceptions import MalformedResponseError
from ..models import ChapterOutline, GenerationOptions
from ..prompts import SYSTEM_INSTRUCTION, build_chapter_prompt, build_outline_prompt
from .base import ProviderAdapter


ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(ProviderAdapter):

    name = "anthropic"
    supports_images = False

    async def _message(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": SYSTEM_INSTRUCTION,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}
        data = await self._post_json(f"{self.base_url}/messages", payload, headers)

        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise MalformedResponseError(self.name, "no content blocks in message")
        return "".join(b.get("text", "") for b in blocks if b.get("type") == "text")

    async def _request_outline(self, options: GenerationOptions) -> str:
        prompt = build_outline_prompt(options) + "\n\nRespond with the JSON object only."
        return await self._message(prompt)

    async def _request_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        return await self._message(build_chapter_prompt(options, book_info, chapter, index, total))
