"""
LLM Provider Base - text generation used for the owner's daily report card.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LLMMessage:
    """One chat turn; summaries only ever send plain text."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        return LLMMessage(role=role, content=text)


@dataclass
class LLMResponse:
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """A chat-completions style text generator."""

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 1024):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Generate the next assistant turn.

        Raises whatever the transport raises; callers decide how to report it.
        """

    async def complete(self, system_prompt: str, prompt: str) -> LLMResponse:
        """Single system + user exchange."""
        return await self.chat_completion([
            LLMMessage.text("system", system_prompt),
            LLMMessage.text("user", prompt),
        ])

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, str]]:
        return [{"role": message.role, "content": message.content} for message in messages]

    def _temperature(self, temperature: Optional[float]) -> float:
        return self.default_temperature if temperature is None else temperature

    def _max_tokens(self, max_tokens: Optional[int]) -> int:
        return max_tokens or self.default_max_tokens
