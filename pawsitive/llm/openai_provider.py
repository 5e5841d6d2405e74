"""
OpenAI provider on the official async SDK.
"""

import logging
import time
from typing import List, Optional

from openai import AsyncOpenAI

from .base import LLMMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Chat Completions through ``AsyncOpenAI``; base_url may point at any compatible host."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        default_temperature: float = 0.7,
        default_max_tokens: int = 1024,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens)
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        started = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._format_messages(messages),
                temperature=self._temperature(temperature),
                max_tokens=self._max_tokens(max_tokens),
            )
        except Exception as e:
            logger.error(
                f"OpenAI request failed: {e}",
                exc_info=True,
                extra={"extra_fields": {"provider": "openai", "model": self.model,
                                        "duration_ms": round((time.time() - started) * 1000, 2)}}
            )
            raise

        usage = response.usage.model_dump() if response.usage else {}
        logger.info(
            "OpenAI summary generated",
            extra={"extra_fields": {"provider": "openai", "model": response.model,
                                    "total_tokens": usage.get("total_tokens", 0),
                                    "duration_ms": round((time.time() - started) * 1000, 2)}}
        )
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage=usage,
        )
