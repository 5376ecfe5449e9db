from __future__ import annotations


class CalendarError(Exception):
    """
    Base class for all caller-correctable errors raised by the calendar core.

    None of these are retried internally; routers translate them into HTTP
    responses and persistence errors are never wrapped in them.
    """


class InvalidTimeRange(CalendarError, ValueError):
    """
    Raised when an end instant is not strictly after its start instant, or
    when a rescheduled exception is missing one of its new times.
    """


class InvalidRecurrenceRule(CalendarError, ValueError):
    """
    Raised for an unusable recurrence rule, e.g. a Weekly pattern with an
    empty weekday set or a weekday outside 0-6.
    """


class InvalidTimezone(CalendarError, ValueError):
    """
    Raised when a timezone label is neither a known zone name nor a UTC offset.
    """


class InvalidOccurrenceReference(CalendarError, ValueError):
    """
    Raised when an exception targets a day on which the event's rule would
    not generate an occurrence.
    """


class NotFoundError(CalendarError, LookupError):
    """
    Raised when a referenced user, event or exception does not exist.
    """


class ConflictError(CalendarError):
    """
    Raised when a candidate interval overlaps an existing occurrence for the
    same owner.
    """
