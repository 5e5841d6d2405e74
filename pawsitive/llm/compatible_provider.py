"""
Provider for hosts that speak the OpenAI ``/chat/completions`` format over
plain HTTP. Gemini's compatibility endpoint is the default.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from .base import LLMMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"


class CompatibleProvider(LLMProvider):

    def __init__(
        self,
        api_key: str,
        model: str = GEMINI_DEFAULT_MODEL,
        base_url: str = GEMINI_BASE_URL,
        default_temperature: float = 0.7,
        default_max_tokens: int = 1024,
        timeout: float = 60.0,
    ):
        super().__init__(api_key, model, base_url.rstrip("/"), default_temperature, default_max_tokens)
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        started = time.time()
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": self._format_messages(messages),
            "temperature": self._temperature(temperature),
            "max_tokens": self._max_tokens(max_tokens),
        }
        log_fields = {"provider": "compatible", "host": self.base_url, "model": self.model}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/chat/completions", json=body,
                                         headers=self._get_headers())
                resp.raise_for_status()
                data = resp.json()
            content = data["choices"][0]["message"]["content"] or ""
        except Exception as e:
            logger.error(
                f"Chat completion request failed: {e}",
                exc_info=True,
                extra={"extra_fields": {**log_fields,
                                        "duration_ms": round((time.time() - started) * 1000, 2)}}
            )
            raise

        usage = data.get("usage") or {}
        logger.info(
            "Summary generated",
            extra={"extra_fields": {**log_fields,
                                    "total_tokens": usage.get("total_tokens", 0),
                                    "duration_ms": round((time.time() - started) * 1000, 2)}}
        )
        return LLMResponse(content=content, model=data.get("model", self.model), usage=usage, raw=data)
