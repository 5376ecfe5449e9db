from datetime import date, datetime

from pydantic import BaseModel, Field


class Occurrence(BaseModel):
    """
    One concrete, time-bounded instance of an event within a query window.

    Occurrences are derived on every query and never persisted. Identity is
    the owning event id plus the occurrence's natural calendar date.
    """

    id: str = Field(..., description="`<event_id>-<original_date>`.", examples=["7-2024-01-08"])
    event_id: int = Field(..., description="Identifier of the originating event.")
    original_date: date = Field(
        ...,
        description="Calendar day (event timezone) the rule placed this occurrence on.",
    )
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    color: str
    event_type: str
    timezone: str
    is_recurring: bool
    is_exception: bool = Field(
        False,
        description="True when a stored exception rescheduled this occurrence.",
    )
    exception_id: int | None = None
    user_id: int | None = None
    user_name: str | None = None


class WeekRange(BaseModel):
    """
    Absolute bounds of the requested week plus a human-readable label.
    """

    start: datetime
    end: datetime
    display_range: str = Field(..., examples=["Dec 31, 2023 - Jan 6, 2024"])


class WeekView(BaseModel):
    """
    Payload returned by GET /events/week.
    """

    week_range: WeekRange
    timezone: str
    events: list[Occurrence]


class ConflictCheckRequest(BaseModel):
    """
    Candidate interval to test against an owner's existing occurrences.
    """

    user_id: int = Field(..., description="Owner whose calendar is checked.")
    start_time: datetime = Field(..., examples=["2024-01-08T09:30:00Z"])
    end_time: datetime = Field(..., examples=["2024-01-08T09:45:00Z"])
    exclude_event_id: int | None = Field(
        default=None,
        description="Event to ignore, e.g. the one being updated.",
    )
    timezone: str | None = Field(
        default=None,
        description="Timezone used to interpret naive start/end values.",
    )


class ConflictCheckResult(BaseModel):
    has_conflict: bool
