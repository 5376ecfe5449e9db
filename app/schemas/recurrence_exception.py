from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecurrenceExceptionCreate(BaseModel):
    """
    Payload for cancelling or rescheduling one occurrence of an event.

    `exception_date` may be a plain date or a datetime; a datetime is reduced
    to its calendar day in the event's timezone (naive values are read as
    wall-clock time in that timezone).
    """

    exception_date: datetime | date = Field(
        ...,
        description="Calendar day of the occurrence being overridden.",
        examples=["2024-01-08"],
    )
    is_deleted: bool = Field(
        default=True,
        description="True cancels the occurrence; False reschedules it to the new times.",
    )
    new_start_time: datetime | None = Field(
        default=None,
        description="Replacement start. Required when is_deleted is false.",
        examples=["2024-01-08T14:00:00Z"],
    )
    new_end_time: datetime | None = Field(
        default=None,
        description="Replacement end. Required when is_deleted is false.",
        examples=["2024-01-08T15:00:00Z"],
    )
    timezone: str | None = Field(
        default=None,
        description="Overrides the event's timezone when interpreting naive datetimes.",
    )


class RecurrenceExceptionRead(BaseModel):
    """
    Public representation of a stored recurrence exception.
    """

    id: int
    event_id: int
    exception_date: date
    is_deleted: bool
    new_start_time: datetime | None = None
    new_end_time: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("new_start_time", "new_end_time")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Some backends (SQLite) hand back naive values; storage is always UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
