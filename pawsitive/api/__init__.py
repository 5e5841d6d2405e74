"""API module."""

from .sessions import router as sessions_router
from .notifications import router as notifications_router

__all__ = ['sessions_router', 'notifications_router']
