"""LLM provider integrations."""

from typing import Optional

from .anthropic_provider import AnthropicProvider
from .base import BaseLLMProvider, ImagePart, LLMProviderError
from .google_provider import GoogleProvider
from .openai_provider import OpenAIProvider

PROVIDERS = {
    "google": GoogleProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def create_provider(name: str, api_key: str, model: Optional[str] = None) -> BaseLLMProvider:
    """
    Build a provider by name.

    Raises:
        ValueError: Unknown provider name or missing API key
    """
    provider_class = PROVIDERS.get(name.lower())
    if provider_class is None:
        raise ValueError(f"Unknown AI provider: {name}")
    if not api_key:
        raise ValueError(f"No API key configured for AI provider: {name}")
    if model:
        return provider_class(api_key=api_key, model=model)
    return provider_class(api_key=api_key)


__all__ = [
    "AnthropicProvider",
    "BaseLLMProvider",
    "GoogleProvider",
    "ImagePart",
    "LLMProviderError",
    "OpenAIProvider",
    "PROVIDERS",
    "create_provider",
]
