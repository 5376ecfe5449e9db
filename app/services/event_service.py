from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import (
    ConflictError,
    InvalidOccurrenceReference,
    InvalidTimeRange,
    NotFoundError,
)
from app.models.event import Event
from app.models.recurrence_exception import RecurrenceException
from app.models.user import User
from app.schemas.event import (
    DEFAULT_EVENT_COLOR,
    EVENT_TYPE_COLORS,
    EventCreate,
    EventRead,
    EventUpdate,
    RecurrencePattern,
)
from app.schemas.occurrence import Occurrence, WeekRange, WeekView
from app.schemas.recurrence_exception import (
    RecurrenceExceptionCreate,
    RecurrenceExceptionRead,
)
from app.services.conflict_detector import find_conflict
from app.services.occurrence_generator import expand
from app.services.recurrence import RecurrenceRule, WeeklyRecurrence, build_rule, is_valid_occurrence_date
from app.services.time_utils import (
    format_week_range,
    local_date,
    resolve_timezone,
    to_utc,
    week_bounds,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _color_for(event_type: str | None) -> str:
    return EVENT_TYPE_COLORS.get(event_type or "", DEFAULT_EVENT_COLOR)


def _stored_days(rule: RecurrenceRule) -> str:
    if isinstance(rule, WeeklyRecurrence):
        return ",".join(str(day) for day in sorted(rule.days))
    return ""


def _require_range(start: datetime, end: datetime, message: str) -> None:
    if end <= start:
        raise InvalidTimeRange(message)


async def _fetch_event(db: AsyncSession, event_id: int) -> Event | None:
    # populate_existing so exceptions/user are reloaded after a commit.
    stmt = (
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _require_event(db: AsyncSession, event_id: int) -> Event:
    event = await _fetch_event(db, event_id)
    if event is None:
        raise NotFoundError(f"Event with id={event_id} not found.")
    return event


async def _require_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User with id={user_id} not found.")
    return user


async def _ensure_no_conflict(
    db: AsyncSession,
    owner_id: int,
    start: datetime,
    end: datetime,
    exclude_event_id: int | None = None,
) -> None:
    settings = get_settings()
    events = await list_events(db, owner_id=owner_id)
    conflict = find_conflict(
        events,
        start,
        end,
        exclude_event_id=exclude_event_id,
        padding=timedelta(hours=settings.CONFLICT_PADDING_HOURS),
        lookaround_days=settings.RECURRENCE_LOOKAROUND_DAYS,
    )
    if conflict is not None:
        raise ConflictError(
            f"Event conflicts with an existing event "
            f"('{conflict.title}' at {conflict.start_time.isoformat()})."
        )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_event(db: AsyncSession, event_id: int) -> EventRead | None:
    """
    Fetch a single event together with its exceptions.
    """
    event = await _fetch_event(db, event_id)
    return EventRead.model_validate(event) if event is not None else None


async def list_events(db: AsyncSession, owner_id: int | None = None) -> list[EventRead]:
    """
    List events, optionally restricted to one owner, each joined with its
    exceptions.
    """
    stmt = select(Event)
    if owner_id is not None:
        stmt = stmt.where(Event.user_id == owner_id)

    # populate_existing so exceptions written earlier in this session are seen.
    stmt = stmt.order_by(Event.id.asc()).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return [EventRead.model_validate(event) for event in result.scalars().all()]


async def list_exceptions(db: AsyncSession, event_id: int) -> list[RecurrenceExceptionRead]:
    """
    List the stored exceptions of an event, ordered by day.
    """
    event = await _require_event(db, event_id)
    return [RecurrenceExceptionRead.model_validate(ex) for ex in event.exceptions]


async def get_occurrences(
    db: AsyncSession,
    window_start: datetime,
    window_end: datetime,
    owner_id: int | None = None,
    timezone_name: str | None = None,
) -> list[Occurrence]:
    """
    Expand every event (optionally of one owner) into its occurrences within
    `[window_start, window_end]`.

    Naive window bounds are read as wall-clock time in `timezone_name`.
    Results are ordered by start instant, then event id.
    """
    settings = get_settings()
    tz = resolve_timezone(timezone_name or settings.DEFAULT_TIMEZONE)
    window_start = to_utc(window_start, tz)
    window_end = to_utc(window_end, tz)
    if window_end < window_start:
        raise InvalidTimeRange("Window end must not be before window start")

    # Non-recurring events can be narrowed in SQL; recurring ones are expanded.
    stmt = select(Event).where(
        or_(
            Event.recurrence_pattern != RecurrencePattern.NONE.value,
            and_(Event.start_time <= window_end, Event.end_time >= window_start),
        )
    )
    if owner_id is not None:
        stmt = stmt.where(Event.user_id == owner_id)

    stmt = stmt.order_by(Event.id.asc()).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    events = [EventRead.model_validate(event) for event in result.scalars().all()]

    occurrences: list[Occurrence] = []
    for event in events:
        occurrences.extend(
            expand(
                event,
                event.exceptions,
                window_start,
                window_end,
                lookaround_days=settings.RECURRENCE_LOOKAROUND_DAYS,
            )
        )

    occurrences.sort(key=lambda occ: (occ.start_time, occ.event_id))
    return occurrences


async def get_week_view(
    db: AsyncSession,
    reference: datetime | date | None = None,
    owner_id: int | None = None,
    timezone_name: str | None = None,
) -> WeekView:
    """
    Occurrences for the local week containing `reference` (defaults to now).
    """
    settings = get_settings()
    timezone_name = timezone_name or settings.DEFAULT_TIMEZONE
    tz = resolve_timezone(timezone_name)

    if reference is None:
        reference = datetime.now(tz=timezone.utc)

    start, end = week_bounds(reference, tz, settings.WEEK_STARTS_ON)
    occurrences = await get_occurrences(
        db,
        start,
        end,
        owner_id=owner_id,
        timezone_name=timezone_name,
    )

    return WeekView(
        week_range=WeekRange(
            start=start,
            end=end,
            display_range=format_week_range(start, end, tz),
        ),
        timezone=timezone_name,
        events=occurrences,
    )


async def check_conflict(
    db: AsyncSession,
    owner_id: int,
    start: datetime,
    end: datetime,
    exclude_event_id: int | None = None,
    timezone_name: str | None = None,
) -> bool:
    """
    Whether `[start, end)` overlaps any occurrence of the owner's events,
    ignoring `exclude_event_id`.
    """
    settings = get_settings()
    tz = resolve_timezone(timezone_name or settings.DEFAULT_TIMEZONE)
    start = to_utc(start, tz)
    end = to_utc(end, tz)
    _require_range(start, end, "End time must be after start time")

    events = await list_events(db, owner_id=owner_id)
    return (
        find_conflict(
            events,
            start,
            end,
            exclude_event_id=exclude_event_id,
            padding=timedelta(hours=settings.CONFLICT_PADDING_HOURS),
            lookaround_days=settings.RECURRENCE_LOOKAROUND_DAYS,
        )
        is not None
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_event(db: AsyncSession, payload: EventCreate) -> EventRead:
    """
    Create an event after validating its time range and recurrence rule.

    Owned events are checked for conflicts against the owner's existing
    occurrences first.
    """
    settings = get_settings()
    timezone_name = payload.timezone or settings.DEFAULT_TIMEZONE
    tz = resolve_timezone(timezone_name)

    start = to_utc(payload.start_time, tz)
    end = to_utc(payload.end_time, tz)
    _require_range(start, end, "End time must be after start time")

    rule = build_rule(payload.recurrence_pattern, payload.recurrence_days)

    if payload.user_id is not None:
        await _require_user(db, payload.user_id)
        await _ensure_no_conflict(db, payload.user_id, start, end)

    event = Event(
        user_id=payload.user_id,
        title=payload.title,
        description=payload.description,
        start_time=start,
        end_time=end,
        color=payload.color or _color_for(payload.event_type),
        event_type=payload.event_type,
        timezone=timezone_name,
        recurrence_pattern=rule.pattern.value,
        recurrence_days=_stored_days(rule),
    )
    db.add(event)
    await db.commit()

    logger.info(
        "Created event %s (pattern=%s, owner=%s)",
        event.id,
        event.recurrence_pattern,
        event.user_id,
    )
    return EventRead.model_validate(await _require_event(db, event.id))


async def update_event(db: AsyncSession, event_id: int, payload: EventUpdate) -> EventRead:
    """
    Apply a partial update. Time-range changes on owned events are
    re-validated for conflicts, excluding the event itself.
    """
    event = await _require_event(db, event_id)
    current = EventRead.model_validate(event)
    update_data = payload.model_dump(exclude_unset=True)

    timezone_name = update_data.get("timezone") or current.timezone
    tz = resolve_timezone(timezone_name)

    start = (
        to_utc(update_data["start_time"], tz)
        if update_data.get("start_time") is not None
        else current.start_time
    )
    end = (
        to_utc(update_data["end_time"], tz)
        if update_data.get("end_time") is not None
        else current.end_time
    )
    _require_range(start, end, "End time must be after start time")

    pattern = update_data.get("recurrence_pattern") or current.recurrence_pattern
    days = update_data.get("recurrence_days")
    rule = build_rule(pattern, days if days is not None else current.recurrence_days)

    times_changed = start != current.start_time or end != current.end_time
    if times_changed and current.user_id is not None:
        await _ensure_no_conflict(db, current.user_id, start, end, exclude_event_id=event_id)

    if update_data.get("title") is not None:
        event.title = update_data["title"]
    if "description" in update_data:
        event.description = update_data["description"]

    new_type = update_data.get("event_type")
    if new_type:
        event.event_type = new_type
    if update_data.get("color"):
        event.color = update_data["color"]
    elif new_type and new_type != current.event_type:
        event.color = _color_for(new_type)

    event.start_time = start
    event.end_time = end
    event.timezone = timezone_name
    event.recurrence_pattern = rule.pattern.value
    event.recurrence_days = _stored_days(rule)

    await db.commit()

    logger.info("Updated event %s (fields=%s)", event_id, sorted(update_data))
    return EventRead.model_validate(await _require_event(db, event_id))


async def delete_event(db: AsyncSession, event_id: int) -> EventRead:
    """
    Delete an event together with its exceptions and return what was removed.
    """
    event = await _require_event(db, event_id)
    deleted = EventRead.model_validate(event)

    await db.delete(event)
    await db.commit()

    logger.info("Deleted event %s with %d exception(s)", event_id, len(deleted.exceptions))
    return deleted


async def apply_exception(
    db: AsyncSession,
    event_id: int,
    payload: RecurrenceExceptionCreate,
) -> RecurrenceExceptionRead:
    """
    Cancel or reschedule one occurrence of a recurring event.

    The exception day must be a day on which the rule generates an
    occurrence. Recording an exception for a day that already has one
    updates the existing record in place.
    """
    event = await _require_event(db, event_id)
    current = EventRead.model_validate(event)

    if not current.is_recurring:
        raise InvalidOccurrenceReference("Cannot create exception for non-recurring event")

    tz = resolve_timezone(payload.timezone or current.timezone)
    exception_day = local_date(payload.exception_date, tz)

    new_start: datetime | None = None
    new_end: datetime | None = None
    if not payload.is_deleted:
        if payload.new_start_time is None or payload.new_end_time is None:
            raise InvalidTimeRange(
                "New start and end times are required for modified occurrences"
            )
        new_start = to_utc(payload.new_start_time, tz)
        new_end = to_utc(payload.new_end_time, tz)
        _require_range(new_start, new_end, "New end time must be after new start time")

    if not is_valid_occurrence_date(current, exception_day):
        raise InvalidOccurrenceReference(
            "The specified date is not a valid occurrence of this recurring event"
        )

    if new_start is not None and new_end is not None and current.user_id is not None:
        await _ensure_no_conflict(db, current.user_id, new_start, new_end, exclude_event_id=event_id)

    existing_stmt = select(RecurrenceException).where(
        RecurrenceException.event_id == event_id,
        RecurrenceException.exception_date == exception_day,
    )
    existing_result = await db.execute(existing_stmt)
    exception = existing_result.scalar_one_or_none()

    if exception is None:
        exception = RecurrenceException(event_id=event_id, exception_date=exception_day)
        db.add(exception)

    # Update fields (both for new + existing exceptions)
    exception.is_deleted = payload.is_deleted
    exception.new_start_time = new_start
    exception.new_end_time = new_end

    await db.commit()
    await db.refresh(exception)

    logger.info(
        "Recorded %s exception for event %s on %s",
        "deletion" if payload.is_deleted else "reschedule",
        event_id,
        exception_day.isoformat(),
    )
    return RecurrenceExceptionRead.model_validate(exception)
