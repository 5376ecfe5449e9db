"""
Timezone-aware date helpers shared by the recurrence engine.

Everything that turns a wall-clock date/time into an absolute instant, or an
instant into a calendar day, goes through this module so that day-equality
means the same thing everywhere.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.errors import InvalidTimezone

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)
_UTC_NAMES = {"", "utc", "z", "gmt", "etc/utc"}


@lru_cache(maxsize=256)
def resolve_timezone(name: str | None) -> tzinfo:
    """
    Resolve a timezone label into a tzinfo.

    Accepts an IANA zone name ("Europe/Berlin"), "UTC", or a fixed UTC offset
    ("+05:30", "-0800", "UTC+2"). Raises InvalidTimezone otherwise.
    """
    label = (name or "").strip()
    if label.lower() in _UTC_NAMES:
        return timezone.utc

    match = _OFFSET_RE.match(label)
    if match:
        sign, hours, minutes = match.groups()
        if int(minutes or 0) > 59:
            raise InvalidTimezone(f"Malformed UTC offset: {name!r}")
        offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
        if offset >= timedelta(hours=24):
            raise InvalidTimezone(f"UTC offset out of range: {name!r}")
        return timezone(-offset if sign == "-" else offset)

    try:
        return ZoneInfo(label)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezone(f"Unknown timezone: {name!r}") from exc


def to_utc(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """
    Return `value` as an aware UTC datetime. Naive values are read as
    wall-clock time in `tz`.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)


def local_date(value: datetime | date, tz: tzinfo) -> date:
    """
    Calendar day of `value` as seen in `tz`.

    Plain dates are returned unchanged and naive datetimes are taken to
    already be wall-clock time in `tz`.
    """
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(tz).date()


def wall_time(value: datetime, tz: tzinfo) -> time:
    """
    Wall-clock time-of-day of `value` in `tz` (microseconds dropped).
    """
    local = value.astimezone(tz) if value.tzinfo is not None else value
    return local.time().replace(microsecond=0, tzinfo=None)


def to_instant(day: date, at: time, tz: tzinfo) -> datetime:
    """
    Attach wall-clock `at` to calendar `day` in `tz` and convert to UTC.

    Wall-clock first, then convert: a 09:00 event stays at 09:00 local time
    on both sides of a DST transition.
    """
    return datetime.combine(day, at, tzinfo=tz).astimezone(timezone.utc)


def same_calendar_day(a: datetime | date, b: datetime | date, tz: tzinfo) -> bool:
    """
    True when `a` and `b` fall on the same calendar day in `tz`, regardless
    of their time-of-day.
    """
    return local_date(a, tz) == local_date(b, tz)


def weekday_index(day: date) -> int:
    """
    Weekday with Sunday=0 ... Saturday=6.
    """
    return (day.weekday() + 1) % 7


def iter_days(first: date, last: date) -> Iterator[date]:
    """
    Iterate the closed calendar-day range [first, last]. Empty when last < first.
    """
    span = (last - first).days
    for offset in range(span + 1):
        yield first + timedelta(days=offset)


def week_bounds(
    reference: datetime | date,
    tz: tzinfo,
    week_starts_on: int = 0,
) -> tuple[datetime, datetime]:
    """
    Absolute bounds of the local week containing `reference`.

    Returns (start, end) in UTC where start is local midnight of the first
    day of the week and end is the last microsecond of its seventh day.
    """
    if not 0 <= week_starts_on <= 6:
        raise ValueError("week_starts_on must be between 0 (Sunday) and 6 (Saturday)")

    day = local_date(reference, tz)
    first = day - timedelta(days=(weekday_index(day) - week_starts_on) % 7)
    next_first = first + timedelta(days=7)

    start = to_instant(first, time.min, tz)
    end = to_instant(next_first, time.min, tz) - timedelta(microseconds=1)
    return start, end


def format_day(day: date) -> str:
    # "Jan 7, 2024"
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def format_week_range(start: datetime, end: datetime, tz: tzinfo) -> str:
    """
    Human-readable label for a week window, e.g. "Dec 31, 2023 - Jan 6, 2024".
    """
    return f"{format_day(local_date(start, tz))} - {format_day(local_date(end, tz))}"
