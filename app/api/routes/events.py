from datetime import date as date_type, datetime
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import to_http_exception
from app.core.errors import CalendarError
from app.db.session import get_db
from app.schemas.event import EventCreate, EventRead, EventUpdate
from app.schemas.occurrence import (
    ConflictCheckRequest,
    ConflictCheckResult,
    Occurrence,
    WeekView,
)
from app.schemas.recurrence_exception import (
    RecurrenceExceptionCreate,
    RecurrenceExceptionRead,
)
from app.services import event_service

router = APIRouter(prefix="/events", tags=["Events"])


@router.get(
    "/week",
    response_model=WeekView,
    summary="Week view of event occurrences",
    description=(
        "Return every occurrence that starts within the local week containing `date`.\n\n"
        "- Recurring events are expanded; cancelled occurrences are omitted and "
        "rescheduled ones carry their new times with `is_exception = true`.\n"
        "- `timezone` decides where the week begins and ends (zone name or UTC offset).\n"
        "- `user_id` restricts the view to one owner; omit it to see everyone's events."
    ),
    responses={
        200: {
            "description": "Week range and its occurrences.",
            "content": {
                "application/json": {
                    "example": {
                        "week_range": {
                            "start": "2023-12-31T00:00:00Z",
                            "end": "2024-01-06T23:59:59.999999Z",
                            "display_range": "Dec 31, 2023 - Jan 6, 2024",
                        },
                        "timezone": "UTC",
                        "events": [
                            {
                                "id": "1-2024-01-01",
                                "event_id": 1,
                                "original_date": "2024-01-01",
                                "title": "Team sync",
                                "description": None,
                                "start_time": "2024-01-01T09:00:00Z",
                                "end_time": "2024-01-01T10:00:00Z",
                                "color": "orange",
                                "event_type": "Meeting",
                                "timezone": "UTC",
                                "is_recurring": True,
                                "is_exception": False,
                                "exception_id": None,
                                "user_id": 1,
                                "user_name": "Ada Lovelace",
                            }
                        ],
                    }
                }
            },
        },
        400: {"description": "Unknown timezone."},
    },
)
async def get_week_events(
    date: date_type | None = Query(
        default=None,
        description="Any day inside the requested week (YYYY-MM-DD). Defaults to today.",
        examples=["2024-01-03"],
    ),
    timezone: str | None = Query(
        default=None,
        description="Timezone of the week view. Defaults to the configured DEFAULT_TIMEZONE.",
        examples=["Europe/Berlin"],
    ),
    user_id: int | None = Query(default=None, description="Restrict to one owner."),
    db: AsyncSession = Depends(get_db),
) -> WeekView:
    try:
        return await event_service.get_week_view(
            db,
            reference=date,
            owner_id=user_id,
            timezone_name=timezone,
        )
    except CalendarError as exc:
        raise to_http_exception(exc)


@router.get(
    "/occurrences",
    response_model=list[Occurrence],
    summary="List occurrences within an arbitrary window",
    description=(
        "Expand all events (optionally of one owner) over `[start, end]`.\n\n"
        "Only an occurrence's start has to fall inside the window. Naive datetimes "
        "are read in `timezone`."
    ),
)
async def list_occurrences(
    start: datetime = Query(..., description="Window start (inclusive).", examples=["2024-01-01T00:00:00Z"]),
    end: datetime = Query(..., description="Window end (inclusive).", examples=["2024-01-31T23:59:59Z"]),
    timezone: str | None = Query(default=None, description="Timezone for naive bounds."),
    user_id: int | None = Query(default=None, description="Restrict to one owner."),
    db: AsyncSession = Depends(get_db),
) -> list[Occurrence]:
    try:
        return await event_service.get_occurrences(
            db,
            start,
            end,
            owner_id=user_id,
            timezone_name=timezone,
        )
    except CalendarError as exc:
        raise to_http_exception(exc)


@router.post(
    "/conflicts/check",
    response_model=ConflictCheckResult,
    summary="Check a time range against a user's calendar",
    description=(
        "Returns `has_conflict = true` when the candidate range overlaps any existing "
        "occurrence of the user's events (recurring ones included). Ranges that merely "
        "touch (one ends exactly when the other starts) do not conflict."
    ),
)
async def check_conflict(
    payload: ConflictCheckRequest,
    db: AsyncSession = Depends(get_db),
) -> ConflictCheckResult:
    try:
        has_conflict = await event_service.check_conflict(
            db,
            owner_id=payload.user_id,
            start=payload.start_time,
            end=payload.end_time,
            exclude_event_id=payload.exclude_event_id,
            timezone_name=payload.timezone,
        )
    except CalendarError as exc:
        raise to_http_exception(exc)
    return ConflictCheckResult(has_conflict=has_conflict)


@router.post(
    "",
    response_model=EventRead,
    status_code=HTTPStatus.CREATED,
    summary="Create a new event",
    description=(
        "Create a one-time, daily or weekly event.\n\n"
        "- `end_time` must be strictly after `start_time`.\n"
        "- Weekly events need at least one weekday in `recurrence_days` (Sunday=0).\n"
        "- `color` defaults from `event_type` (Work=blue, Personal=green, Meeting=orange).\n"
        "- Events with a `user_id` are rejected with 409 when they overlap an existing "
        "occurrence of that user's events."
    ),
    responses={
        400: {"description": "Invalid time range, recurrence rule or timezone."},
        404: {"description": "The referenced user does not exist."},
        409: {
            "description": "The event overlaps an existing occurrence.",
            "content": {
                "application/json": {
                    "example": {
                        "detail": (
                            "Event conflicts with an existing event "
                            "('Team sync' at 2024-01-08T09:00:00+00:00)."
                        )
                    }
                }
            },
        },
    },
)
async def create_event(
    payload: EventCreate,
    db: AsyncSession = Depends(get_db),
) -> EventRead:
    try:
        return await event_service.create_event(db, payload)
    except CalendarError as exc:
        raise to_http_exception(exc)


@router.get(
    "/{event_id}",
    response_model=EventRead,
    summary="Get an event by ID",
    responses={404: {"description": "No event exists with the given ID."}},
)
async def get_event(
    event_id: int = Path(..., description="Numeric ID of the event.", ge=1, examples=[1]),
    db: AsyncSession = Depends(get_db),
) -> EventRead:
    event = await event_service.get_event(db, event_id)
    if event is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Event with id={event_id} not found.",
        )
    return event


@router.patch(
    "/{event_id}",
    response_model=EventRead,
    summary="Partially update an event",
    description=(
        "Only fields provided in the request body are modified. Changing the time "
        "range of an owned event re-runs conflict detection, ignoring the event itself."
    ),
    responses={
        400: {"description": "Invalid time range, recurrence rule or timezone."},
        404: {"description": "No event exists with the given ID."},
        409: {"description": "The new time range overlaps an existing occurrence."},
    },
)
async def update_event(
    payload: EventUpdate,
    event_id: int = Path(..., description="Numeric ID of the event.", ge=1, examples=[1]),
    db: AsyncSession = Depends(get_db),
) -> EventRead:
    try:
        return await event_service.update_event(db, event_id, payload)
    except CalendarError as exc:
        raise to_http_exception(exc)


@router.delete(
    "/{event_id}",
    response_model=EventRead,
    summary="Delete an event",
    description="Deletes the event and all of its recurrence exceptions. Returns the deleted event.",
    responses={404: {"description": "No event exists with the given ID."}},
)
async def delete_event(
    event_id: int = Path(..., description="Numeric ID of the event.", ge=1, examples=[1]),
    db: AsyncSession = Depends(get_db),
) -> EventRead:
    try:
        return await event_service.delete_event(db, event_id)
    except CalendarError as exc:
        raise to_http_exception(exc)


@router.get(
    "/{event_id}/exceptions",
    response_model=list[RecurrenceExceptionRead],
    summary="List the exceptions recorded for an event",
    responses={404: {"description": "No event exists with the given ID."}},
)
async def list_event_exceptions(
    event_id: int = Path(..., description="Numeric ID of the event.", ge=1, examples=[1]),
    db: AsyncSession = Depends(get_db),
) -> list[RecurrenceExceptionRead]:
    try:
        return await event_service.list_exceptions(db, event_id)
    except CalendarError as exc:
        raise to_http_exception(exc)


@router.post(
    "/{event_id}/exceptions",
    response_model=RecurrenceExceptionRead,
    status_code=HTTPStatus.CREATED,
    summary="Cancel or reschedule one occurrence",
    description=(
        "Record an exception for a single occurrence of a recurring event.\n\n"
        "- `is_deleted = true` removes the occurrence from every view.\n"
        "- `is_deleted = false` moves it to `new_start_time`/`new_end_time` "
        "(both required, end after start).\n"
        "- `exception_date` must be a day on which the event actually occurs.\n"
        "- Posting again for the same day replaces the earlier exception."
    ),
    responses={
        400: {"description": "Not a valid occurrence, missing/invalid new times, or non-recurring event."},
        404: {"description": "No event exists with the given ID."},
        409: {"description": "The rescheduled occurrence overlaps another event."},
    },
)
async def create_event_exception(
    payload: RecurrenceExceptionCreate,
    event_id: int = Path(..., description="Numeric ID of the event.", ge=1, examples=[1]),
    db: AsyncSession = Depends(get_db),
) -> RecurrenceExceptionRead:
    try:
        return await event_service.apply_exception(db, event_id, payload)
    except CalendarError as exc:
        raise to_http_exception(exc)
