from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from app.core.errors import InvalidTimeRange
from app.schemas.event import EventRead
from app.schemas.occurrence import Occurrence
from app.services.occurrence_generator import build_occurrence, expand
from app.services.recurrence import DEFAULT_LOOKAROUND_DAYS, event_timezone, first_day
from app.services.time_utils import to_utc

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT_PADDING = timedelta(days=1)


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """
    True when the two intervals share a non-empty intersection. Touching
    intervals (one ends exactly when the other starts) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def find_conflict(
    events: Iterable[EventRead],
    candidate_start: datetime,
    candidate_end: datetime,
    *,
    exclude_event_id: int | None = None,
    padding: timedelta = DEFAULT_CONFLICT_PADDING,
    lookaround_days: int = DEFAULT_LOOKAROUND_DAYS,
) -> Occurrence | None:
    """
    Return the first existing occurrence that overlaps the candidate
    interval, or None.

    Non-recurring events are tested directly. Recurring events are expanded
    (with their exceptions) over the candidate interval padded by `padding`
    on each side, and every occurrence is tested with the same rule.
    """
    candidate_start = to_utc(candidate_start)
    candidate_end = to_utc(candidate_end)
    if candidate_end <= candidate_start:
        raise InvalidTimeRange("End time must be after start time")

    for event in events:
        if exclude_event_id is not None and event.id == exclude_event_id:
            continue

        if not event.is_recurring:
            if intervals_overlap(candidate_start, candidate_end, event.start_time, event.end_time):
                logger.debug("Candidate overlaps event %s", event.id)
                return build_occurrence(
                    event,
                    first_day(event, event_timezone(event)),
                    event.start_time,
                    event.end_time,
                )
            continue

        occurrences = expand(
            event,
            event.exceptions,
            candidate_start - padding,
            candidate_end + padding,
            lookaround_days=lookaround_days,
        )
        for occurrence in occurrences:
            if intervals_overlap(
                candidate_start,
                candidate_end,
                occurrence.start_time,
                occurrence.end_time,
            ):
                logger.debug("Candidate overlaps occurrence %s", occurrence.id)
                return occurrence

    return None


def has_conflict(
    events: Iterable[EventRead],
    candidate_start: datetime,
    candidate_end: datetime,
    *,
    exclude_event_id: int | None = None,
    padding: timedelta = DEFAULT_CONFLICT_PADDING,
    lookaround_days: int = DEFAULT_LOOKAROUND_DAYS,
) -> bool:
    return (
        find_conflict(
            events,
            candidate_start,
            candidate_end,
            exclude_event_id=exclude_event_id,
            padding=padding,
            lookaround_days=lookaround_days,
        )
        is not None
    )
