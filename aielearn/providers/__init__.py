"""Language-model provider adapters."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aielearn.config import Settings
    from aielearn.providers.base import LLMProvider


def make_provider(settings: Settings, api_key: str | None = None) -> LLMProvider | None:
    """Build the configured provider, or None when content must come from local fixtures."""
    from aielearn.config import is_sentinel_key
    from aielearn.errors import ProviderNotConfigured

    if settings.offline_mode:
        return None
    if api_key is not None and is_sentinel_key(api_key):
        return None
    key = api_key if api_key is not None else settings.api_key()
    if settings.llm_provider == "ollama":
        from aielearn.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=settings.ollama_url, model=settings.llm_model)
    if not key or is_sentinel_key(key):
        return None
    if settings.llm_provider == "openai":
        from aielearn.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=settings.llm_model, api_key=key)
    if settings.llm_provider == "anthropic":
        from aielearn.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=settings.llm_model, api_key=key)
    raise ProviderNotConfigured(f"Unknown LLM provider: {settings.llm_provider}")
