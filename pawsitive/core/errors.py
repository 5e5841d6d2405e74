"""
Store error taxonomy.

Gateways classify transport/store failures exactly once into an ErrorKind; code
above the gateway only ever branches on these kinds.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of remote store failure kinds."""
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"
    CONFIGURATION_MISSING = "configuration_missing"


class StoreError(Exception):
    """Base exception for remote document store operations."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, session_id: Optional[str] = None,
                 kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.session_id = session_id
        if kind is not None:
            self.kind = kind

    @staticmethod
    def for_kind(kind: ErrorKind, message: str, session_id: Optional[str] = None) -> "StoreError":
        """Build the matching subclass for a classified kind."""
        cls = {
            ErrorKind.NOT_FOUND: SessionNotFoundError,
            ErrorKind.PERMISSION_DENIED: PermissionDeniedError,
            ErrorKind.CONFIGURATION_MISSING: ConfigurationMissingError,
        }.get(kind)
        if cls is None:
            return StoreError(message, session_id=session_id)
        return cls(message, session_id=session_id)


class SessionNotFoundError(StoreError):
    """The session document was deleted or never existed."""
    kind = ErrorKind.NOT_FOUND


class PermissionDeniedError(StoreError):
    """The store rejected the operation."""
    kind = ErrorKind.PERMISSION_DENIED


class ConfigurationMissingError(StoreError):
    """Store credentials are absent. Raised at startup only."""
    kind = ErrorKind.CONFIGURATION_MISSING
