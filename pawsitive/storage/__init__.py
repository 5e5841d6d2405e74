"""Storage module - document gateways and the session store."""

from .interface import DocumentGateway
from .memory_gateway import InMemoryGateway
from .local_gateway import LocalFileGateway
from .sanitize import sanitize, merge_fields
from .session_store import SessionStore, is_session_active
from .factory import create_gateway

__all__ = [
    'DocumentGateway', 'InMemoryGateway', 'LocalFileGateway', 'sanitize', 'merge_fields',
    'SessionStore', 'is_session_active', 'create_gateway',
]
