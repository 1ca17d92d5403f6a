"""
DeepSeek provider (OpenAI-compatible API, text only).
"""

from .openai import OpenAIProvider


class DeepSeekProvider(OpenAIProvider):
    name = "deepseek"
    supports_images = False
