"""
Session Store - lists, creates and deletes session documents for the lobby.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional

from pydantic import ValidationError

from ..models import SessionMeta, SessionState
from .interface import DocumentGateway
from .sanitize import sanitize

logger = logging.getLogger(__name__)


def is_session_active(meta: SessionMeta, today: Optional[date] = None) -> bool:
    """A session stays listed until the end of its last day."""
    today = today or date.today()
    end = date.fromisoformat(meta.start_date) + timedelta(days=meta.total_days)
    return today <= end


class SessionStore:
    """Session metadata operations over a document gateway."""

    def __init__(self, gateway: DocumentGateway):
        """
        Args:
            gateway: Remote document gateway holding one document per session
        """
        self.gateway = gateway

    async def list_sessions(self, active_only: bool = False,
                            today: Optional[date] = None) -> List[SessionMeta]:
        """
        List sessions, newest first.

        Documents that don't parse as a session are skipped with a warning.

        Args:
            active_only: Only include sessions whose last day hasn't passed
            today: Reference date for the active filter (default: local today)
        """
        sessions = []
        for document in await self.gateway.list():
            try:
                sessions.append(SessionMeta.model_validate(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed session document {document.get('id')!r}: {e}")

        if active_only:
            sessions = [meta for meta in sessions if is_session_active(meta, today)]

        sessions.sort(key=lambda meta: meta.created_at, reverse=True)
        return sessions

    async def get_session(self, session_id: str) -> Optional[SessionState]:
        document = await self.gateway.get_once(session_id)
        if document is None:
            return None
        return SessionState.model_validate(document)

    async def session_exists(self, session_id: str) -> bool:
        return await self.gateway.exists(session_id)

    async def create_session(self, session: SessionState) -> None:
        """Persist a new session in a single write."""
        await self.gateway.set(session.id, sanitize(session))
        logger.info(
            f"Session created: {session.id}",
            extra={"extra_fields": {"session_id": session.id, "dogs": len(session.dogs),
                                    "total_days": session.total_days}}
        )

    async def delete_session(self, session_id: str) -> None:
        await self.gateway.delete(session_id)
        logger.info(f"Session deleted: {session_id}")
