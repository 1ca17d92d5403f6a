"""
Provider adapters and registry.
"""

from typing import Any, Dict, List, Optional, Type
import logging

import httpx

from ..config import AIProvider, GeneratorConfig
from .base import ProviderAdapter, SleepFunc, parse_outline, strip_code_fences
from .openai import OpenAIProvider
from .gemini import GeminiProvider
from .anthropic import AnthropicProvider
from .deepseek import DeepSeekProvider
from .mock import MockProvider


logger = logging.getLogger("EbookGenerator.Providers")


PROVIDER_CLASSES: Dict[str, Type[ProviderAdapter]] = {
    AIProvider.OPENAI.value: OpenAIProvider,
    AIProvider.GEMINI.value: GeminiProvider,
    AIProvider.ANTHROPIC.value: AnthropicProvider,
    AIProvider.DEEPSEEK.value: DeepSeekProvider,
    AIProvider.MOCK.value: MockProvider,
}


def build_provider(
    name: str,
    settings: Any,
    config: Optional[GeneratorConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Optional[SleepFunc] = None,
) -> ProviderAdapter:
    """Instantiate one provider from application settings"""
    cls = PROVIDER_CLASSES[name]
    return cls(
        api_key=settings.get_api_key(name),
        model=getattr(settings, f"{name}_model", ""),
        base_url=getattr(settings, f"{name}_base_url", ""),
        image_model=getattr(settings, f"{name}_image_model", ""),
        config=config,
        client=client,
        sleep=sleep,
    )


def build_providers(
    names: List[str],
    settings: Any,
    config: Optional[GeneratorConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Optional[SleepFunc] = None,
) -> List[ProviderAdapter]:
    """Instantiate providers in priority order. Unknown names are skipped."""
    providers = []
    for name in names:
        if name not in PROVIDER_CLASSES:
            logger.warning(f"Unknown provider '{name}' in priority list, skipping")
            continue
        providers.append(build_provider(name, settings, config, client, sleep))
    return providers


__all__ = [
    "ProviderAdapter",
    "OpenAIProvider",
    "GeminiProvider",
    "AnthropicProvider",
    "DeepSeekProvider",
    "MockProvider",
    "PROVIDER_CLASSES",
    "build_provider",
    "build_providers",
    "parse_outline",
    "strip_code_fences",
]
