from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import date, datetime, timedelta

from app.core.errors import InvalidRecurrenceRule
from app.schemas.event import EventRead
from app.schemas.occurrence import Occurrence
from app.schemas.recurrence_exception import RecurrenceExceptionRead
from app.services.exception_applier import apply_exception
from app.services.recurrence import (
    DEFAULT_LOOKAROUND_DAYS,
    NoRecurrence,
    event_timezone,
    first_day,
    occurrence_bounds,
    rule_for,
    rule_matches,
)
from app.services.time_utils import iter_days, local_date, to_utc

logger = logging.getLogger(__name__)


def build_occurrence(
    event: EventRead,
    day: date,
    start: datetime,
    end: datetime,
) -> Occurrence:
    """
    Occurrence of `event` on its natural calendar day `day`.
    """
    return Occurrence(
        id=f"{event.id}-{day.isoformat()}",
        event_id=event.id,
        original_date=day,
        title=event.title,
        description=event.description,
        start_time=start,
        end_time=end,
        color=event.color,
        event_type=event.event_type,
        timezone=event.timezone,
        is_recurring=event.is_recurring,
        is_exception=False,
        user_id=event.user_id,
        user_name=event.user.name if event.user is not None else None,
    )


class OccurrenceExpansion:
    """
    Lazy, finite and restartable sequence of one event's occurrences within
    `[window_start, window_end]` (inclusive, by occurrence start).

    Each iteration re-runs the expansion from scratch, so iterating twice
    yields identical output.

    Parameters
    ----------
    event:
        The base event.
    exceptions:
        Stored exceptions of that event.
    window_start, window_end:
        Absolute bounds of the query window. Naive values are taken as UTC.
    lookaround_days:
        How many calendar days before the window start and after the window
        end the scan may cover.
    """

    def __init__(
        self,
        event: EventRead,
        exceptions: Sequence[RecurrenceExceptionRead],
        window_start: datetime,
        window_end: datetime,
        *,
        lookaround_days: int = DEFAULT_LOOKAROUND_DAYS,
    ) -> None:
        if lookaround_days < 0:
            raise ValueError("lookaround_days must be >= 0")
        self.event = event
        self.exceptions = tuple(exceptions)
        self.window_start = to_utc(window_start)
        self.window_end = to_utc(window_end)
        self.lookaround_days = lookaround_days

    def __iter__(self) -> Iterator[Occurrence]:
        return self._generate()

    def _in_window(self, instant: datetime) -> bool:
        return self.window_start <= instant <= self.window_end

    def _generate(self) -> Iterator[Occurrence]:
        event = self.event
        if self.window_end < self.window_start:
            return

        try:
            rule = rule_for(event)
        except InvalidRecurrenceRule as exc:
            logger.warning("Event %s has an unusable recurrence rule: %s", event.id, exc)
            return

        tz = event_timezone(event)
        first = first_day(event, tz)

        if isinstance(rule, NoRecurrence):
            # Single occurrence: tested on the instant, not the calendar day.
            if not self._in_window(event.start_time):
                return
            occurrence = apply_exception(
                build_occurrence(event, first, event.start_time, event.end_time),
                self.exceptions,
                tz,
            )
            if occurrence is not None and self._in_window(occurrence.start_time):
                yield occurrence
            return

        padding = timedelta(days=self.lookaround_days)
        scan_from = max(first, local_date(self.window_start, tz) - padding)
        scan_to = local_date(self.window_end, tz) + padding

        for day in iter_days(scan_from, scan_to):
            if not rule_matches(rule, first, day):
                continue

            start, end = occurrence_bounds(event, day, tz)
            if start > self.window_end:
                # Natural starts only grow from here on.
                break
            if start < self.window_start:
                continue

            occurrence = apply_exception(
                build_occurrence(event, day, start, end),
                self.exceptions,
                tz,
            )
            if occurrence is None or not self._in_window(occurrence.start_time):
                continue
            yield occurrence


def expand(
    event: EventRead,
    exceptions: Sequence[RecurrenceExceptionRead] | None,
    window_start: datetime,
    window_end: datetime,
    *,
    lookaround_days: int = DEFAULT_LOOKAROUND_DAYS,
) -> OccurrenceExpansion:
    """
    Expand `event` into its occurrences within the window, with `exceptions`
    applied. When `exceptions` is None the event's own are used.
    """
    if exceptions is None:
        exceptions = event.exceptions
    return OccurrenceExpansion(
        event,
        exceptions,
        window_start,
        window_end,
        lookaround_days=lookaround_days,
    )
