"""
Shared API dependencies.
"""

from fastapi import HTTPException, Request, status

from ..channels.sms import TwilioSmsClient
from ..config import settings
from ..services.summary import DailySummaryService, get_summary_service
from ..storage import DocumentGateway, SessionStore

CONFIGURATION_MISSING_DETAIL = "Storage configuration missing. Please configure the document store."


def get_gateway(request: Request) -> DocumentGateway:
    """
    Gateway created at startup.

    Raises:
        HTTPException: 503 if the store was not configured at startup
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=CONFIGURATION_MISSING_DETAIL,
        )
    return gateway


def get_session_store(request: Request) -> SessionStore:
    return SessionStore(get_gateway(request))


def get_sms_client() -> TwilioSmsClient:
    return TwilioSmsClient(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number,
    )


def get_summarizer() -> DailySummaryService:
    return get_summary_service()
