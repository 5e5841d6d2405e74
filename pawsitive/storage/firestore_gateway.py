"""
Firestore Document Gateway.

One document per session in a single collection. The Firestore client is
blocking, so calls run in a worker thread, and snapshot listener callbacks
(delivered on Firestore's own thread) are handed back to the asyncio loop.
"""

import asyncio
import logging
import os
from typing import Any, Callable, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from ..core.errors import ConfigurationMissingError, ErrorKind, StoreError
from .interface import Document, DocumentGateway, OnChange, OnError, Unsubscribe
from .sanitize import sanitize

logger = logging.getLogger(__name__)

# Fields fetched for lobby listings; logs are left out
META_FIELDS = ["id", "sitterName", "startDate", "totalDays", "dogs", "emergencyContacts", "createdAt"]


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a Google API exception onto the store error taxonomy."""
    if isinstance(exc, google_exceptions.NotFound):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated)):
        return ErrorKind.PERMISSION_DENIED
    return ErrorKind.UNKNOWN


class FirestoreGateway(DocumentGateway):
    """Gateway backed by a named Firestore database."""

    def __init__(
        self,
        credentials_path: Optional[str],
        project_id: Optional[str] = None,
        database: str = "petdatabase",
        collection: str = "sessions",
    ):
        self.credentials_path = credentials_path
        self.project_id = project_id
        self.database = database
        self.collection = collection
        self._db = None

    async def init(self) -> None:
        """
        Initialize the Firebase app and Firestore client.

        Raises:
            ConfigurationMissingError: If the credentials file is not configured or missing
        """
        if not self.credentials_path or not os.path.exists(self.credentials_path):
            raise ConfigurationMissingError(
                f"Firebase credentials not found: {self.credentials_path or '(not set)'}"
            )

        if not firebase_admin._apps:
            cred = credentials.Certificate(self.credentials_path)
            options = {'projectId': self.project_id} if self.project_id else None
            firebase_admin.initialize_app(cred, options)

        self._db = firestore.client(database_id=self.database)
        logger.info(f"Firestore initialized (database: {self.database}, collection: {self.collection})")

    def _collection(self):
        if self._db is None:
            raise ConfigurationMissingError("Firestore client not initialized. Call init() first.")
        return self._db.collection(self.collection)

    async def _call(self, session_id: Optional[str], action: str, fn: Callable[[], Any]) -> Any:
        """Run a blocking Firestore call in a thread and classify its failure."""
        try:
            return await asyncio.to_thread(fn)
        except StoreError:
            raise
        except Exception as e:
            kind = classify_error(e)
            logger.error(
                f"Firestore {action} failed (session: {session_id}): {e}",
                extra={"extra_fields": {"session_id": session_id, "error_kind": kind.value}}
            )
            raise StoreError.for_kind(kind, f"Firestore {action} failed: {e}", session_id=session_id) from e

    async def get_once(self, session_id: str) -> Optional[Document]:
        doc_ref = self._collection().document(session_id)
        snapshot = await self._call(session_id, "get", doc_ref.get)
        return snapshot.to_dict() if snapshot.exists else None

    def subscribe(self, session_id: str, on_change: OnChange, on_error: OnError) -> Unsubscribe:
        loop = asyncio.get_running_loop()
        doc_ref = self._collection().document(session_id)
        state = {"active": True}

        def deliver(callback: Callable, value: Any) -> None:
            if state["active"]:
                callback(value)

        def on_snapshot(doc_snapshots, changes, read_time) -> None:
            # Runs on the Firestore listener thread
            try:
                for snapshot in doc_snapshots:
                    if snapshot.exists:
                        loop.call_soon_threadsafe(deliver, on_change, snapshot.to_dict())
                    else:
                        loop.call_soon_threadsafe(deliver, on_error, ErrorKind.NOT_FOUND)
            except Exception as e:
                logger.error(f"Snapshot handling failed (session: {session_id}): {e}", exc_info=True)
                loop.call_soon_threadsafe(deliver, on_error, classify_error(e))

        try:
            watch = doc_ref.on_snapshot(on_snapshot)
        except Exception as e:
            kind = classify_error(e)
            logger.error(f"Firestore subscribe failed (session: {session_id}): {e}")
            loop.call_soon(deliver, on_error, kind)
            watch = None

        def unsubscribe() -> None:
            if not state["active"]:
                return
            state["active"] = False
            if watch is not None:
                watch.unsubscribe()

        return unsubscribe

    async def set(self, session_id: str, document: Document) -> None:
        doc_ref = self._collection().document(session_id)
        data = sanitize(document)
        await self._call(session_id, "set", lambda: doc_ref.set(data))

    async def set_merged(self, session_id: str, partial: Document) -> None:
        doc_ref = self._collection().document(session_id)
        data = sanitize(partial)
        # Field-path merge: listed top-level fields are replaced whole, others kept
        await self._call(session_id, "merge", lambda: doc_ref.set(data, merge=list(data.keys())))

    async def delete(self, session_id: str) -> None:
        doc_ref = self._collection().document(session_id)
        await self._call(session_id, "delete", doc_ref.delete)

    async def list(self) -> List[Document]:
        query = self._collection().select(META_FIELDS)
        snapshots = await self._call(None, "list", lambda: list(query.stream()))
        return [snapshot.to_dict() for snapshot in snapshots]
