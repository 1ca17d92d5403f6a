"""
Mock provider for development and tests.

Generates placeholder content offline. Only used when "mock" is listed in
a provider order.
"""

from typing import Dict
import json

from ..models import ChapterOutline, CoverImage, GenerationOptions, SizeTier
from .base import ProviderAdapter


# 1x1 transparent PNG
PLACEHOLDER_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class MockProvider(ProviderAdapter):

    name = "mock"
    supports_images = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.call_count = 0

    def is_configured(self) -> bool:
        return True

    async def _request_outline(self, options: GenerationOptions) -> str:
        self.call_count += 1
        count = max(1, options.chapter_count)
        outline = {
            "title": f"The {options.topic.title()} Handbook",
            "subtitle": f"A {options.tone.lower()} guide for {options.audience.lower()}",
            "description": f"This book provides a comprehensive exploration of {options.topic}.",
            "backCoverCopy": f"Everything you need to master {options.topic}, one chapter at a time.",
            "chapters": [
                {
                    "title": f"Part {i + 1} of {options.topic.title()}",
                    "description": f"Key ideas and practical steps for stage {i + 1}.",
                }
                for i in range(count)
            ],
        }
        return "```json\n" + json.dumps(outline, indent=2) + "\n```"

    async def _request_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        self.call_count += 1
        return f"""# {chapter.title}

{chapter.description}

## Core Concepts

This chapter builds on the foundations of _{book_info.get("title", "this book")}_ and focuses on __practical application__.

- Understand the fundamentals
- Apply the framework step by step
- Measure the results

### Worked Example

A short scenario shows how the ideas in chapter {index + 1} of {total} fit together.

## Key Takeaways

- Start small and iterate
- Review progress regularly
"""

    async def _request_cover(self, prompt: str, size: SizeTier) -> CoverImage:
        self.call_count += 1
        return CoverImage.from_base64(PLACEHOLDER_PNG, "image/png")

    async def _request_cover_edit(self, image: CoverImage, prompt: str) -> CoverImage:
        self.call_count += 1
        return CoverImage(data=image.data, mime_type=image.mime_type)
