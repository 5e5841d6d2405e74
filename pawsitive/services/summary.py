"""
Daily Summary Service - turns a day's log into a short report for the owner.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..config import settings
from ..core.day_log import task_id
from ..llm.base import LLMProvider
from ..llm.factory import create_llm_provider
from ..models import TIME_SLOTS, DayLog, SessionState

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API Key missing. Cannot generate summary."
FAILURE_MESSAGE = "An error occurred while generating the daily summary. Please try again."
EMPTY_MESSAGE = "Could not generate summary."

SYSTEM_PROMPT = "You are a friendly AI assistant for a pet sitting app."

PROMPT_TEMPLATE = """Here is the data for today ({date}) logged by the sitter, {sitter}.

Data: {data}

Please write a warm, cheerful, and concise daily summary for the owner (approx 100 words).
Highlight if the dogs ate well and went to the bathroom regularly.
Incorporate the specific comments provided by the sitter naturally into the narrative.
Make it sound like a fun report card."""


def build_day_summary(session: SessionState, log: DayLog) -> Dict[str, Any]:
    """Structured view of one day: per dog, its note and each slot's task status."""
    return {
        "date": log.date,
        "sitter": session.sitter_name,
        "dogs": [
            {
                "name": dog.name,
                "comment": log.comments.get(dog.name) or "No specific comments.",
                "activities": [
                    {
                        "time": slot.label,
                        "status": ", ".join(
                            f"{activity.value}: "
                            f"{'Done' if log.tasks.get(task_id(log.date, slot.id, dog.name, activity)) else 'Pending'}"
                            for activity in slot.activities
                        ),
                    }
                    for slot in TIME_SLOTS
                ],
            }
            for dog in session.dogs
        ],
    }


def build_prompt(session: SessionState, log: DayLog) -> str:
    data = build_day_summary(session, log)
    return PROMPT_TEMPLATE.format(
        date=log.date,
        sitter=session.sitter_name,
        data=json.dumps(data, indent=2, ensure_ascii=False),
    )


class DailySummaryService:
    """
    Generates daily summaries with the configured LLM provider.

    Never raises: missing configuration and API failures come back as
    user-facing text, since the result is shown directly in the day view.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider

    async def generate(self, session: SessionState, log: DayLog) -> str:
        if self.provider is None:
            return MISSING_KEY_MESSAGE

        try:
            response = await self.provider.complete(SYSTEM_PROMPT, build_prompt(session, log))
        except Exception as e:
            logger.error(
                f"Error generating summary: {e}",
                extra={"extra_fields": {"session_id": session.id, "date": log.date}}
            )
            return FAILURE_MESSAGE

        return response.content.strip() or EMPTY_MESSAGE


def get_summary_service() -> DailySummaryService:
    """Summary service built from application settings."""
    provider = create_llm_provider(
        provider=settings.llm_provider,
        api_key=settings.llm_api_key or "",
        model=settings.llm_model,
        base_url=settings.llm_base_url,
    )
    return DailySummaryService(provider)
