"""
SMS Notifications.

Two paths reach the owner's phone:
- an ``sms:`` deep link the sitter's device opens with a prefilled message
- a server-side send through the Twilio REST API
"""

import logging
import re
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote

import httpx

from ..models import DogConfig, TimeSlot

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^\d]")


def clean_phone(phone: str) -> str:
    """Digits only."""
    return _NON_DIGITS.sub("", phone)


def slot_complete_message(slot: TimeSlot, dogs: Sequence[DogConfig]) -> str:
    names = ", ".join(dog.name for dog in dogs)
    return f"Pawsitive Update: The {slot.label} is complete for {names}! 🐾"


def build_sms_link(phone: str, text: str) -> str:
    """``sms:`` URI with a prefilled body; works on both iOS and Android."""
    return f"sms:{clean_phone(phone)}?&body={quote(text, safe='')}"


def activity_message(activity_name: str, pet_name: Optional[str] = None) -> str:
    if pet_name:
        return f'Pawsitive update: "{activity_name}" has been completed for {pet_name}.'
    return f'Pawsitive update: "{activity_name}" has been completed.'


class SmsNotConfiguredError(RuntimeError):
    """Twilio credentials are not set."""


class TwilioSmsClient:
    """Minimal Twilio Messages API client."""

    MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str],
                 from_number: Optional[str], timeout: float = 30.0):
        """
        Args:
            account_sid: Twilio account SID
            auth_token: Twilio auth token
            from_number: Sending phone number in E.164 format
        """
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, to: str, body: str) -> Dict[str, Any]:
        """
        Send a text message.

        Raises:
            SmsNotConfiguredError: If credentials are missing
            httpx.HTTPError: If Twilio rejects the request or is unreachable
        """
        if not self.is_configured():
            raise SmsNotConfiguredError("Twilio not configured")

        url = self.MESSAGES_URL.format(account_sid=self.account_sid)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                url,
                data={"From": self.from_number, "To": to, "Body": body},
                auth=(self.account_sid, self.auth_token),
            )
            resp.raise_for_status()
            data = resp.json()

        logger.info("SMS sent", extra={"extra_fields": {"sid": data.get("sid"), "to": to}})
        return data
