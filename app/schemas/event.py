from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.recurrence_exception import RecurrenceExceptionRead
from app.schemas.user import UserSummary


class RecurrencePattern(str, Enum):
    """
    How an event repeats. Lookup is case-insensitive so that legacy values
    such as "WEEKLY" still resolve.
    """

    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"

    @classmethod
    def _missing_(cls, value: object) -> "RecurrencePattern | None":
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class EventType(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    MEETING = "Meeting"


# Color applied when a create/update does not supply one explicitly.
EVENT_TYPE_COLORS: dict[str, str] = {
    EventType.WORK.value: "blue",
    EventType.PERSONAL.value: "green",
    EventType.MEETING.value: "orange",
}
DEFAULT_EVENT_COLOR = "blue"


# --------------------------------------------------------------------------
# Create schema (POST /events)
# --------------------------------------------------------------------------

class EventCreate(BaseModel):
    """
    Schema for creating a new event.

    Naive `start_time`/`end_time` values are read as wall-clock time in
    `timezone`. Range and rule checks happen in the service layer so that
    they surface as calendar errors rather than schema errors.
    """

    title: str = Field(..., min_length=1, description="Event title.", examples=["Team sync"])
    description: str | None = Field(default=None, description="Optional free-text description.")
    start_time: datetime = Field(..., examples=["2024-01-01T09:00:00Z"])
    end_time: datetime = Field(..., examples=["2024-01-01T10:00:00Z"])
    color: str | None = Field(
        default=None,
        description="Presentation color. Derived from event_type when omitted.",
    )
    event_type: str = Field(default=EventType.WORK.value, examples=["Meeting"])
    timezone: str | None = Field(
        default=None,
        description="Zone name (e.g. Europe/Berlin) or UTC offset (e.g. +05:30).",
        examples=["UTC"],
    )
    user_id: int | None = Field(default=None, description="Owning user, if any.")
    recurrence_pattern: RecurrencePattern = Field(default=RecurrencePattern.NONE)
    recurrence_days: list[int] = Field(
        default_factory=list,
        description="Weekday indices (Sunday=0 ... Saturday=6); required for Weekly.",
        examples=[[1, 3]],
    )


# --------------------------------------------------------------------------
# Update schema (PATCH /events/{id})
# --------------------------------------------------------------------------

class EventUpdate(BaseModel):
    """
    Schema for updating an event.
    All fields are optional; only provided fields are updated.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None)
    start_time: datetime | None = Field(default=None)
    end_time: datetime | None = Field(default=None)
    color: str | None = Field(default=None)
    event_type: str | None = Field(default=None)
    timezone: str | None = Field(default=None)
    recurrence_pattern: RecurrencePattern | None = Field(default=None)
    recurrence_days: list[int] | None = Field(default=None)


# --------------------------------------------------------------------------
# Read schema (GET /events/{id}); also the value the core expands
# --------------------------------------------------------------------------

class EventRead(BaseModel):
    """
    Response schema for reading an event, including its stored exceptions.
    """

    id: int
    user_id: int | None = None
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    color: str = DEFAULT_EVENT_COLOR
    event_type: str = EventType.WORK.value
    timezone: str = "UTC"
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    recurrence_days: list[int] = Field(default_factory=list)
    exceptions: list[RecurrenceExceptionRead] = Field(default_factory=list)
    user: UserSummary | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Some backends (SQLite) hand back naive values; storage is always UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("recurrence_days", mode="before")
    @classmethod
    def _split_days(cls, value: object) -> object:
        # Persisted as "1,3,5".
        if value is None:
            return []
        if isinstance(value, str):
            return sorted({int(part) for part in value.split(",") if part.strip()})
        return value

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_pattern is not RecurrencePattern.NONE
