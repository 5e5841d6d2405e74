"""
Session Models - Defines the shape of a sitting session and its per-day logs.

Field names are snake_case in Python and camelCase in the stored document.
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


MAX_PHOTOS = 6

DogColor = Literal['blue', 'pink', 'purple', 'orange', 'teal', 'indigo']

DOG_COLORS: List[str] = ['blue', 'pink', 'purple', 'orange', 'teal', 'indigo']


class ActivityType(str, Enum):
    """Activities a sitter can tick off within a time slot."""
    BATHROOM = "Bathroom"
    FEEDING = "Feeding"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase document keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_document(self) -> Dict[str, Any]:
        """Dump to the stored document shape."""
        return self.model_dump(mode="json", by_alias=True)


class DogConfig(CamelModel):
    """A dog taking part in the session. Fixed for the life of the session."""
    name: str
    color: DogColor = 'blue'


class TimeSlot(CamelModel):
    """A fixed block of the daily schedule."""
    id: str
    label: str
    time_range: str
    activities: List[ActivityType]


TIME_SLOTS: List[TimeSlot] = [
    TimeSlot(
        id='morning',
        label='Morning Routine',
        time_range='7:00 AM - 8:30 AM',
        activities=[ActivityType.BATHROOM, ActivityType.FEEDING],
    ),
    TimeSlot(
        id='late_morning',
        label='Late Morning Break',
        time_range='11:00 AM - 12:30 PM',
        activities=[ActivityType.BATHROOM],
    ),
    TimeSlot(
        id='dinner',
        label='Dinner Time',
        time_range='5:00 PM - 6:00 PM',
        activities=[ActivityType.BATHROOM, ActivityType.FEEDING],
    ),
    TimeSlot(
        id='bedtime',
        label='Bedtime Routine',
        time_range='Evening',
        activities=[ActivityType.BATHROOM],
    ),
]


def get_time_slot(slot_id: str) -> Optional[TimeSlot]:
    """Look up a slot of the fixed schedule by id."""
    for slot in TIME_SLOTS:
        if slot.id == slot_id:
            return slot
    return None


class EmergencyContact(CamelModel):
    """Name and phone number; both may be blank."""
    name: str = ""
    phone: str = ""


class EmergencyContacts(CamelModel):
    """
    Owner, secondary and vet contacts.

    Older documents stored the owner under ``primary``. Those are folded into
    ``owner`` when the document is loaded, so only the canonical shape is ever
    seen by the rest of the code or written back.
    """
    owner: EmergencyContact = Field(default_factory=EmergencyContact)
    secondary: EmergencyContact = Field(default_factory=EmergencyContact)
    vet: EmergencyContact = Field(default_factory=EmergencyContact)

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_owner(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, dict):
            data = {key: value for key, value in data.items() if value is not None}
            legacy = data.pop("primary", None)
            if "owner" not in data and legacy is not None:
                data["owner"] = legacy
        return data


class DayLog(CamelModel):
    """Tasks, timestamps, notes, photos and summary for one calendar date."""
    date: str
    tasks: Dict[str, bool] = Field(default_factory=dict)
    task_timestamps: Dict[str, int] = Field(default_factory=dict)  # epoch ms
    comments: Dict[str, str] = Field(default_factory=dict)
    photos: Optional[List[str]] = None
    ai_summary: Optional[str] = None

    # Single-photo fields from before photos became a list. Read-only.
    morning_photo: Optional[str] = None
    evening_photo: Optional[str] = None

    @field_validator("tasks", "task_timestamps", "comments", mode="before")
    @classmethod
    def _null_map_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        for legacy_key in ("morningPhoto", "eveningPhoto"):
            if document.get(legacy_key) is None:
                document.pop(legacy_key, None)
        return document


class SessionMeta(CamelModel):
    """Schedule metadata for a sitting engagement, as shown in the lobby."""
    id: str
    sitter_name: str = ""
    start_date: str
    total_days: int = Field(default=1, ge=1)
    dogs: List[DogConfig] = Field(min_length=1)
    emergency_contacts: EmergencyContacts = Field(default_factory=EmergencyContacts)
    created_at: int = 0  # epoch ms, used for sorting only

    @field_validator("start_date")
    @classmethod
    def _validate_start_date(cls, value: str) -> str:
        date.fromisoformat(value)
        return value

    @field_validator("emergency_contacts", mode="before")
    @classmethod
    def _null_contacts(cls, value: Any) -> Any:
        return {} if value is None else value


class SessionState(SessionMeta):
    """The full synced document: metadata plus per-day logs keyed by ISO date."""
    logs: Dict[str, DayLog] = Field(default_factory=dict)

    @field_validator("logs", mode="before")
    @classmethod
    def _null_logs(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        document["logs"] = {key: log.to_document() for key, log in self.logs.items()}
        return document


class SessionCreate(CamelModel):
    """Payload for creating a session; the id is assigned on creation."""
    sitter_name: str = Field(..., min_length=1)
    start_date: str
    total_days: int = Field(default=3, ge=1)
    dogs: List[DogConfig] = Field(min_length=1)
    emergency_contacts: EmergencyContacts = Field(default_factory=EmergencyContacts)

    @field_validator("start_date")
    @classmethod
    def _validate_start_date(cls, value: str) -> str:
        date.fromisoformat(value)
        return value


class SessionList(BaseModel):
    """List of session metadata for the lobby."""
    sessions: List[SessionMeta]
