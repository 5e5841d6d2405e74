"""Core module - session sync, session codes and day log logic."""

from .errors import (
    ErrorKind, StoreError, SessionNotFoundError, PermissionDeniedError, ConfigurationMissingError,
)

__all__ = [
    'ErrorKind', 'StoreError', 'SessionNotFoundError', 'PermissionDeniedError',
    'ConfigurationMissingError',
]
