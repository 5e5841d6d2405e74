"""
In-process document gateway.

Keeps documents in a dict and pushes changes to subscribers through the
running asyncio loop, mimicking a push-based cloud store. Used for local
development and as the fake store in tests.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.errors import ErrorKind
from .interface import Document, DocumentGateway, OnChange, OnError, Unsubscribe
from .sanitize import merge_fields, sanitize

logger = logging.getLogger(__name__)


@dataclass
class _Subscription:
    session_id: str
    on_change: OnChange
    on_error: OnError
    loop: asyncio.AbstractEventLoop
    active: bool = True


class InMemoryGateway(DocumentGateway):
    """Dict-backed gateway with push delivery."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._subscriptions: Dict[str, List[_Subscription]] = {}

    async def get_once(self, session_id: str) -> Optional[Document]:
        document = self._documents.get(session_id)
        return copy.deepcopy(document) if document is not None else None

    def subscribe(self, session_id: str, on_change: OnChange, on_error: OnError) -> Unsubscribe:
        subscription = _Subscription(
            session_id=session_id,
            on_change=on_change,
            on_error=on_error,
            loop=asyncio.get_running_loop(),
        )
        self._subscriptions.setdefault(session_id, []).append(subscription)
        self._deliver(subscription, self._documents.get(session_id))
        logger.debug(f"Subscribed to session {session_id}")

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            subscribers = self._subscriptions.get(session_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            logger.debug(f"Unsubscribed from session {session_id}")

        return unsubscribe

    async def set(self, session_id: str, document: Document) -> None:
        self._documents[session_id] = sanitize(document)
        self._notify(session_id)

    async def set_merged(self, session_id: str, partial: Document) -> None:
        current = self._documents.get(session_id, {})
        self._documents[session_id] = merge_fields(current, sanitize(partial))
        self._notify(session_id)

    async def delete(self, session_id: str) -> None:
        self._documents.pop(session_id, None)
        self._notify(session_id)

    async def list(self) -> List[Document]:
        return [copy.deepcopy(document) for document in self._documents.values()]

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscriptions.get(session_id, []))

    def _notify(self, session_id: str) -> None:
        document = self._documents.get(session_id)
        for subscription in list(self._subscriptions.get(session_id, [])):
            self._deliver(subscription, document)

    def _deliver(self, subscription: _Subscription, document: Optional[Document]) -> None:
        """Schedule one delivery; dropped if the subscriber has gone away by then."""
        snapshot = copy.deepcopy(document)

        def run() -> None:
            if not subscription.active:
                return
            if snapshot is None:
                subscription.on_error(ErrorKind.NOT_FOUND)
            else:
                subscription.on_change(snapshot)

        subscription.loop.call_soon(run)
