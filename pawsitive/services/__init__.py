"""Services module - provides external service integrations."""

from .summary import DailySummaryService, get_summary_service

__all__ = ['DailySummaryService', 'get_summary_service']
