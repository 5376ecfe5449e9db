"""
Recurrence rules and the predicates that evaluate them.

A rule is one of three small immutable values; a Weekly rule cannot be
built without at least one weekday, so code holding a `RecurrenceRule`
never has to re-check that.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import ClassVar, Union

from app.core.errors import InvalidRecurrenceRule
from app.schemas.event import EventRead, RecurrencePattern
from app.services.time_utils import (
    iter_days,
    local_date,
    resolve_timezone,
    to_instant,
    to_utc,
    wall_time,
    weekday_index,
)

DEFAULT_LOOKAROUND_DAYS = 365


@dataclass(frozen=True)
class NoRecurrence:
    pattern: ClassVar[RecurrencePattern] = RecurrencePattern.NONE


@dataclass(frozen=True)
class DailyRecurrence:
    pattern: ClassVar[RecurrencePattern] = RecurrencePattern.DAILY


@dataclass(frozen=True)
class WeeklyRecurrence:
    pattern: ClassVar[RecurrencePattern] = RecurrencePattern.WEEKLY

    days: frozenset[int]

    def __post_init__(self) -> None:
        if not self.days:
            raise InvalidRecurrenceRule(
                "Weekly recurring events must specify at least one day of the week"
            )
        invalid = sorted(d for d in self.days if not 0 <= d <= 6)
        if invalid:
            raise InvalidRecurrenceRule(
                f"Days of week must be between 0 (Sunday) and 6 (Saturday), got {invalid}"
            )


RecurrenceRule = Union[NoRecurrence, DailyRecurrence, WeeklyRecurrence]


def build_rule(
    pattern: RecurrencePattern | str | None,
    days: Iterable[int] | None = None,
) -> RecurrenceRule:
    """
    Build a rule from its stored fields. `days` is ignored unless the
    pattern is Weekly.
    """
    try:
        resolved = RecurrencePattern(pattern) if pattern is not None else RecurrencePattern.NONE
    except ValueError as exc:
        raise InvalidRecurrenceRule(f"Unknown recurrence pattern: {pattern!r}") from exc

    if resolved is RecurrencePattern.DAILY:
        return DailyRecurrence()
    if resolved is RecurrencePattern.WEEKLY:
        return WeeklyRecurrence(days=frozenset(days or ()))
    return NoRecurrence()


def rule_for(event: EventRead) -> RecurrenceRule:
    return build_rule(event.recurrence_pattern, event.recurrence_days)


def event_timezone(event: EventRead) -> tzinfo:
    return resolve_timezone(event.timezone)


def event_duration(event: EventRead) -> timedelta:
    return event.end_time - event.start_time


def first_day(event: EventRead, tz: tzinfo | None = None) -> date:
    """
    Calendar day of the event's first occurrence in its own timezone.
    """
    return local_date(event.start_time, tz or event_timezone(event))


def rule_matches(rule: RecurrenceRule, first: date, candidate: date) -> bool:
    """
    Whether `rule`, starting on calendar day `first`, places an occurrence
    on calendar day `candidate`.
    """
    if isinstance(rule, NoRecurrence):
        return candidate == first
    if candidate < first:
        return False
    if isinstance(rule, DailyRecurrence):
        return True
    if isinstance(rule, WeeklyRecurrence):
        return weekday_index(candidate) in rule.days
    raise TypeError(f"Unsupported recurrence rule: {rule!r}")


def matches(event: EventRead, candidate_date: date) -> bool:
    """
    Whether the event has an occurrence on `candidate_date` (a calendar day
    in the event's timezone). A stored rule that is no longer valid never
    matches.
    """
    try:
        rule = rule_for(event)
    except InvalidRecurrenceRule:
        return False
    return rule_matches(rule, first_day(event), candidate_date)


def is_valid_occurrence_date(event: EventRead, value: date | datetime) -> bool:
    """
    Like `matches`, but accepts a datetime and reduces it to its calendar
    day in the event's timezone first.
    """
    return matches(event, local_date(value, event_timezone(event)))


def occurrence_bounds(
    event: EventRead,
    day: date,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    """
    Start/end instants of the occurrence on calendar day `day`: the event's
    own wall-clock start time re-applied to `day`, plus its fixed duration.
    """
    tz = tz or event_timezone(event)
    start = to_instant(day, wall_time(event.start_time, tz), tz)
    return start, start + event_duration(event)


def next_occurrence(
    event: EventRead,
    after: datetime,
    *,
    lookahead_days: int = DEFAULT_LOOKAROUND_DAYS,
) -> datetime | None:
    """
    Start of the first occurrence strictly after `after`, searching at most
    `lookahead_days` calendar days ahead. Exceptions are not consulted.
    """
    try:
        rule = rule_for(event)
    except InvalidRecurrenceRule:
        return None

    after = to_utc(after)
    if isinstance(rule, NoRecurrence):
        return event.start_time if event.start_time > after else None

    tz = event_timezone(event)
    first = first_day(event, tz)
    scan_from = max(first, local_date(after, tz))
    scan_to = local_date(after, tz) + timedelta(days=lookahead_days)

    for day in iter_days(scan_from, scan_to):
        if not rule_matches(rule, first, day):
            continue
        start, _ = occurrence_bounds(event, day, tz)
        if start > after:
            return start
    return None
