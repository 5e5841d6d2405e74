"""
Notification API endpoints - server-side activity SMS.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..channels.sms import SmsNotConfiguredError, TwilioSmsClient, activity_message
from .deps import get_sms_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["notifications"])


class ActivitySmsRequest(BaseModel):
    """Body of an activity SMS request. Fields are validated by the endpoint."""
    to: Optional[str] = None
    petName: Optional[str] = None
    activityName: Optional[str] = None


@router.post("/send-activity-sms")
async def send_activity_sms(
    request: ActivitySmsRequest,
    sms: TwilioSmsClient = Depends(get_sms_client),
):
    """Text the owner that an activity was completed."""
    if not sms.is_configured():
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Twilio not configured")

    if not request.to or not request.activityName:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing 'to' or 'activityName'")

    try:
        await sms.send(request.to, activity_message(request.activityName, request.petName))
    except (SmsNotConfiguredError, httpx.HTTPError) as e:
        logger.error(f"Error sending SMS: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send SMS")

    return {"ok": True}
