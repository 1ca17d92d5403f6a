"""
Google Gemini provider (REST generateContent).

Text calls use the text model with a response schema for outlines; covers
use the image model at a 3:4 book-cover aspect ratio. Edits send the
existing image inline with the refinement prompt.
"""

from typing import Any, Dict, List

from ..exceptions import EmptyResponseError, MalformedResponseError
from ..models import ChapterOutline, CoverImage, GenerationOptions, SizeTier
from ..prompts import OUTLINE_SCHEMA, SYSTEM_INSTRUCTION, build_chapter_prompt, build_outline_prompt
from .base import ProviderAdapter


COVER_ASPECT_RATIO = "3:4"


class GeminiProvider(ProviderAdapter):

    name = "gemini"
    supports_images = True

    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key}

    def _url(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    async def _generate_text(self, prompt: str, generation_config: Dict[str, Any]) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
                **generation_config,
            },
        }
        data = await self._post_json(self._url(self.model), payload, self._headers())
        return "".join(part.get("text", "") for part in self._parts(data))

    async def _request_outline(self, options: GenerationOptions) -> str:
        return await self._generate_text(
            build_outline_prompt(options),
            {"responseMimeType": "application/json", "responseSchema": OUTLINE_SCHEMA},
        )

    async def _request_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        return await self._generate_text(
            build_chapter_prompt(options, book_info, chapter, index, total), {}
        )

    async def _request_cover(self, prompt: str, size: SizeTier) -> CoverImage:
        return await self._generate_image([{"text": prompt}], size)

    async def _request_cover_edit(self, image: CoverImage, prompt: str) -> CoverImage:
        parts = [
            {"inlineData": {"mimeType": image.mime_type, "data": image.to_base64()}},
            {"text": prompt},
        ]
        return await self._generate_image(parts, SizeTier.SMALL)

    async def _generate_image(self, parts: List[Dict[str, Any]], size: SizeTier) -> CoverImage:
        image_config: Dict[str, Any] = {"aspectRatio": COVER_ASPECT_RATIO}
        # flash-image models reject imageSize
        if "flash-image" not in self.image_model:
            image_config["imageSize"] = size.value

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": image_config,
            },
        }
        data = await self._post_json(self._url(self.image_model), payload, self._headers())

        for part in self._parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return CoverImage.from_base64(inline["data"], mime)
        raise EmptyResponseError(self.name, "image")

    def _parts(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            candidate = data["candidates"][0]
        except (KeyError, IndexError, TypeError):
            feedback = data.get("promptFeedback", {}) if isinstance(data, dict) else {}
            reason = feedback.get("blockReason")
            if reason:
                raise MalformedResponseError(self.name, f"prompt blocked ({reason})")
            raise EmptyResponseError(self.name)
        return (candidate.get("content") or {}).get("parts") or []
