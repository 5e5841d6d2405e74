"""
Document Gateway Interface - Abstract base class for remote document stores.

Each sitting session is one document keyed by its session id. Implementations
exist for an in-process store, local JSON files and Firestore.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import ErrorKind


Document = Dict[str, Any]
OnChange = Callable[[Document], None]
OnError = Callable[[ErrorKind], None]
Unsubscribe = Callable[[], None]


class DocumentGateway(ABC):
    """
    Contract the sync engine and session store depend on.

    Failures are raised as StoreError subclasses carrying an ErrorKind; raw
    transport exceptions never leave an implementation.
    """

    async def init(self) -> None:
        """Connect to the backing store. Called once at startup."""

    @abstractmethod
    async def get_once(self, session_id: str) -> Optional[Document]:
        """
        Fetch the current document.

        Returns:
            Optional[Document]: The document, or None if it doesn't exist
        """
        pass

    async def exists(self, session_id: str) -> bool:
        """Check whether a document exists for the session id."""
        return await self.get_once(session_id) is not None

    @abstractmethod
    def subscribe(self, session_id: str, on_change: OnChange, on_error: OnError) -> Unsubscribe:
        """
        Watch a document for changes.

        The current document is delivered first, then every later version.
        A missing or deleted document is reported as on_error(ErrorKind.NOT_FOUND).
        Callbacks run on the subscriber's event loop, never inside this call.

        Args:
            session_id: Document key
            on_change: Receives the full document on every change
            on_error: Receives the classified failure kind

        Returns:
            Unsubscribe: Stops delivery; safe to call more than once
        """
        pass

    @abstractmethod
    async def set(self, session_id: str, document: Document) -> None:
        """Write the whole document, replacing any existing one."""
        pass

    @abstractmethod
    async def set_merged(self, session_id: str, partial: Document) -> None:
        """
        Merge fields into the document.

        Top-level fields in ``partial`` replace the stored ones; fields not
        present in ``partial`` are left untouched.
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Delete the document. Subscribers receive NOT_FOUND."""
        pass

    @abstractmethod
    async def list(self) -> List[Document]:
        """
        List stored documents.

        Implementations may omit the (potentially large) ``logs`` field.
        """
        pass
