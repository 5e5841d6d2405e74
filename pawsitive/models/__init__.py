"""Models module."""

from .session import (
    MAX_PHOTOS, DOG_COLORS, TIME_SLOTS, ActivityType, DogConfig, TimeSlot,
    EmergencyContact, EmergencyContacts, DayLog, SessionMeta, SessionState,
    SessionCreate, SessionList, get_time_slot,
)

__all__ = [
    'MAX_PHOTOS', 'DOG_COLORS', 'TIME_SLOTS', 'ActivityType', 'DogConfig', 'TimeSlot',
    'EmergencyContact', 'EmergencyContacts', 'DayLog', 'SessionMeta', 'SessionState',
    'SessionCreate', 'SessionList', 'get_time_slot',
]
