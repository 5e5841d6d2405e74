"""Channels module - outbound messaging to the owner."""

from .sms import (
    TwilioSmsClient, SmsNotConfiguredError, build_sms_link, slot_complete_message,
    activity_message, clean_phone,
)

__all__ = [
    'TwilioSmsClient', 'SmsNotConfiguredError', 'build_sms_link', 'slot_complete_message',
    'activity_message', 'clean_phone',
]
