"""LLM module - provides a unified interface for text-generation providers."""

from .base import LLMProvider, LLMMessage, LLMResponse
from .openai_provider import OpenAIProvider
from .compatible_provider import CompatibleProvider
from .factory import create_llm_provider

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'OpenAIProvider',
    'CompatibleProvider',
    'create_llm_provider',
]
