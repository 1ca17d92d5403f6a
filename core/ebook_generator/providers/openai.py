"""
OpenAI provider: chat completions for text, DALL-E for covers.
"""

from typing import Any, Dict, List

from ..exceptions import EmptyResponseError, MalformedResponseError
from ..models import ChapterOutline, CoverImage, GenerationOptions, SizeTier
from ..prompts import SYSTEM_INSTRUCTION, build_chapter_prompt, build_outline_prompt
from .base import ProviderAdapter


# dall-e-3 accepts 1024x1024, 1024x1792 and 1792x1024 only
IMAGE_SIZES = {
    SizeTier.SMALL: "1024x1024",
    SizeTier.MEDIUM: "1024x1792",
    SizeTier.LARGE: "1024x1792",
}


class OpenAIProvider(ProviderAdapter):
    """OpenAI-compatible chat completions backend"""

    name = "openai"
    supports_images = True
    json_mode = True

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": prompt},
        ]

    async def _chat(self, prompt: str, json_output: bool = False) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._messages(prompt),
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if json_output and self.json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post_json(f"{self.base_url}/chat/completions", payload, self._headers())
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            raise MalformedResponseError(self.name, "no choices in completion")

    async def _request_outline(self, options: GenerationOptions) -> str:
        return await self._chat(build_outline_prompt(options), json_output=True)

    async def _request_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        return await self._chat(build_chapter_prompt(options, book_info, chapter, index, total))

    async def _request_cover(self, prompt: str, size: SizeTier) -> CoverImage:
        payload = {
            "model": self.image_model,
            "prompt": prompt,
            "n": 1,
            "size": IMAGE_SIZES[size],
            "response_format": "b64_json",
        }
        data = await self._post_json(f"{self.base_url}/images/generations", payload, self._headers())

        try:
            item = data["data"][0]
        except (KeyError, IndexError, TypeError):
            raise EmptyResponseError(self.name, "image")

        if item.get("b64_json"):
            return CoverImage.from_base64(item["b64_json"], "image/png")
        if item.get("url"):
            return CoverImage(data=await self._get_bytes(item["url"]), mime_type="image/png")
        raise EmptyResponseError(self.name, "image")
