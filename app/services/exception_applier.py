from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, timezone, tzinfo

from app.schemas.occurrence import Occurrence
from app.schemas.recurrence_exception import RecurrenceExceptionRead
from app.services.time_utils import same_calendar_day

logger = logging.getLogger(__name__)


def find_exception(
    day: date,
    exceptions: Sequence[RecurrenceExceptionRead],
    tz: tzinfo = timezone.utc,
) -> RecurrenceExceptionRead | None:
    """
    Return the exception recorded for calendar day `day`, if any.

    Storage enforces one exception per (event, day). Should more than one
    come back anyway, the first wins and a warning is logged.
    """
    found = [ex for ex in exceptions if same_calendar_day(ex.exception_date, day, tz)]
    if not found:
        return None
    if len(found) > 1:
        logger.warning(
            "Found %d exceptions for event %s on %s; using exception %s",
            len(found),
            found[0].event_id,
            day.isoformat(),
            found[0].id,
        )
    return found[0]


def apply_exception(
    occurrence: Occurrence,
    exceptions: Sequence[RecurrenceExceptionRead],
    tz: tzinfo = timezone.utc,
) -> Occurrence | None:
    """
    Merge the exception for the occurrence's natural day into it.

    Returns
    -------
    - None when the occurrence was cancelled (`is_deleted=True`).
    - A copy carrying the new start/end, `is_exception=True` and the
      exception id when it was rescheduled.
    - The occurrence unchanged when no exception applies.
    """
    exception = find_exception(occurrence.original_date, exceptions, tz)
    if exception is None:
        return occurrence

    if exception.is_deleted:
        return None

    if exception.new_start_time is None or exception.new_end_time is None:
        # Rejected at write time; keep the rule-computed times if one slips through.
        logger.warning(
            "Exception %s on %s has no replacement times; ignoring it",
            exception.id,
            occurrence.original_date.isoformat(),
        )
        return occurrence

    return occurrence.model_copy(
        update={
            "start_time": exception.new_start_time,
            "end_time": exception.new_end_time,
            "is_exception": True,
            "exception_id": exception.id,
        }
    )
