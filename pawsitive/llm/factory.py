"""
Builds the summary LLM provider from settings.
"""

from typing import Optional

from .base import LLMProvider
from .compatible_provider import CompatibleProvider
from .openai_provider import OpenAIProvider

PROVIDERS = {
    "openai": OpenAIProvider,
    "gemini": CompatibleProvider,
    "compatible": CompatibleProvider,
}


def create_llm_provider(
    provider: str = "gemini",
    api_key: str = "",
    model: Optional[str] = None,
    base_url: Optional[str] = None,
) -> Optional[LLMProvider]:
    """
    Args:
        provider: "openai", or "gemini" / "compatible" for OpenAI-format HTTP hosts
        api_key: Provider key; summaries are disabled without one
        model: Overrides the provider's default model
        base_url: Overrides the provider's default host

    Returns:
        The provider, or None when no key is configured

    Raises:
        ValueError: For an unknown provider name
    """
    provider_cls = PROVIDERS.get(provider.lower())
    if provider_cls is None:
        raise ValueError(f"Unsupported LLM provider: {provider}")
    if not api_key:
        return None

    options = {"api_key": api_key}
    if model:
        options["model"] = model
    if base_url:
        options["base_url"] = base_url
    return provider_cls(**options)
