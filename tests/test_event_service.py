# tests/test_event_service.py
import uuid
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from app.core.errors import (
    ConflictError,
    InvalidOccurrenceReference,
    InvalidRecurrenceRule,
    InvalidTimeRange,
    NotFoundError,
)
from app.db.session import AsyncSessionLocal, init_db_for_startup
from app.models.recurrence_exception import RecurrenceException
from app.models.user import User
from app.schemas.event import EventCreate, EventUpdate
from app.schemas.recurrence_exception import RecurrenceExceptionCreate
from app.services import event_service

UTC = timezone.utc


async def _create_user(session) -> int:
    user = User(name="Service Tester", email=f"svc-{uuid.uuid4().hex}@example.com")
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user.id


def _weekly_payload(user_id: int, **overrides) -> EventCreate:
    data = {
        "title": "Monday planning",
        "start_time": datetime(2024, 1, 1, 9, 0, tzinfo=UTC),
        "end_time": datetime(2024, 1, 1, 10, 0, tzinfo=UTC),
        "event_type": "Meeting",
        "user_id": user_id,
        "recurrence_pattern": "Weekly",
        "recurrence_days": [1],
    }
    data.update(overrides)
    return EventCreate(**data)


@pytest.mark.asyncio
async def test_create_event_normalizes_and_derives_color():
    """
    Created events store sorted weekdays, UTC instants and a color derived
    from the event type.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        event = await event_service.create_event(session, _weekly_payload(user_id, recurrence_days=[3, 1]))

    assert event.color == "orange"
    assert event.recurrence_days == [1, 3]
    assert event.start_time == datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
    assert event.timezone == "UTC"
    assert event.user is not None and event.user.id == user_id


@pytest.mark.asyncio
async def test_create_event_reads_naive_times_in_event_timezone():
    """
    Naive datetimes are read as wall-clock time in the event's timezone.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        event = await event_service.create_event(
            session,
            _weekly_payload(
                user_id,
                start_time=datetime(2024, 1, 1, 9, 0),
                end_time=datetime(2024, 1, 1, 10, 0),
                timezone="America/New_York",
            ),
        )

    assert event.start_time == datetime(2024, 1, 1, 14, 0, tzinfo=UTC)
    assert event.timezone == "America/New_York"


@pytest.mark.asyncio
async def test_create_event_validation_errors():
    """
    Bad ranges, weekly events without days and unknown owners are rejected.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)

        with pytest.raises(InvalidTimeRange):
            await event_service.create_event(
                session,
                _weekly_payload(user_id, end_time=datetime(2024, 1, 1, 9, 0, tzinfo=UTC)),
            )

        with pytest.raises(InvalidRecurrenceRule):
            await event_service.create_event(session, _weekly_payload(user_id, recurrence_days=[]))

        with pytest.raises(NotFoundError):
            await event_service.create_event(session, _weekly_payload(999_999))


@pytest.mark.asyncio
async def test_occurrences_exceptions_and_conflicts_end_to_end():
    """
    Expansion, deletion and reschedule exceptions, and conflict checks
    should agree with each other when driven through the service layer.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        event = await event_service.create_event(session, _weekly_payload(user_id))

        window = (datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 31, tzinfo=UTC))
        occurrences = await event_service.get_occurrences(session, *window, owner_id=user_id)
        assert [o.original_date.day for o in occurrences] == [1, 8, 15, 22, 29]

        candidate = (datetime(2024, 1, 8, 9, 30, tzinfo=UTC), datetime(2024, 1, 8, 9, 45, tzinfo=UTC))
        assert await event_service.check_conflict(session, user_id, *candidate) is True

        await event_service.apply_exception(
            session,
            event.id,
            RecurrenceExceptionCreate(exception_date=date(2024, 1, 8), is_deleted=True),
        )
        moved = await event_service.apply_exception(
            session,
            event.id,
            RecurrenceExceptionCreate(
                exception_date=date(2024, 1, 15),
                is_deleted=False,
                new_start_time=datetime(2024, 1, 15, 14, 0, tzinfo=UTC),
                new_end_time=datetime(2024, 1, 15, 15, 0, tzinfo=UTC),
            ),
        )

        assert await event_service.check_conflict(session, user_id, *candidate) is False

        occurrences = await event_service.get_occurrences(session, *window, owner_id=user_id)
        by_day = {o.original_date.day: o for o in occurrences}
        assert sorted(by_day) == [1, 15, 22, 29]
        assert by_day[15].is_exception is True
        assert by_day[15].exception_id == moved.id
        assert by_day[15].start_time == datetime(2024, 1, 15, 14, 0, tzinfo=UTC)
        assert by_day[1].user_name == "Service Tester"

        exceptions = await event_service.list_exceptions(session, event.id)
        assert [ex.exception_date for ex in exceptions] == [date(2024, 1, 8), date(2024, 1, 15)]


@pytest.mark.asyncio
async def test_create_event_rejects_overlap_with_recurring_occurrence():
    """
    Creating an event on top of an owner's recurring occurrence raises
    ConflictError, while a back-to-back event is accepted.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        await event_service.create_event(session, _weekly_payload(user_id))

        with pytest.raises(ConflictError):
            await event_service.create_event(
                session,
                _weekly_payload(
                    user_id,
                    title="Clashing one-off",
                    start_time=datetime(2024, 1, 22, 9, 30, tzinfo=UTC),
                    end_time=datetime(2024, 1, 22, 11, 0, tzinfo=UTC),
                    recurrence_pattern="None",
                    recurrence_days=[],
                ),
            )

        # Back-to-back is fine.
        adjacent = await event_service.create_event(
            session,
            _weekly_payload(
                user_id,
                title="Right after",
                start_time=datetime(2024, 1, 22, 10, 0, tzinfo=UTC),
                end_time=datetime(2024, 1, 22, 11, 0, tzinfo=UTC),
                recurrence_pattern="None",
                recurrence_days=[],
            ),
        )
        assert adjacent.is_recurring is False


@pytest.mark.asyncio
async def test_exception_upsert_is_idempotent_per_day():
    """
    Recording a second exception for the same day updates the existing row
    instead of inserting a new one.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        event = await event_service.create_event(session, _weekly_payload(user_id))

        first = await event_service.apply_exception(
            session,
            event.id,
            RecurrenceExceptionCreate(exception_date=date(2024, 1, 8), is_deleted=True),
        )
        second = await event_service.apply_exception(
            session,
            event.id,
            RecurrenceExceptionCreate(
                exception_date=datetime(2024, 1, 8, 18, 0, tzinfo=UTC),
                is_deleted=False,
                new_start_time=datetime(2024, 1, 8, 12, 0, tzinfo=UTC),
                new_end_time=datetime(2024, 1, 8, 13, 0, tzinfo=UTC),
            ),
        )

        assert second.id == first.id
        assert second.is_deleted is False

        result = await session.execute(
            select(RecurrenceException).where(RecurrenceException.event_id == event.id)
        )
        assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_exception_preconditions():
    """
    Exceptions must target a real occurrence of a recurring event and carry
    a valid replacement range when not deleted.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        weekly = await event_service.create_event(session, _weekly_payload(user_id))
        one_off = await event_service.create_event(
            session,
            _weekly_payload(
                user_id,
                start_time=datetime(2024, 2, 1, 9, 0, tzinfo=UTC),
                end_time=datetime(2024, 2, 1, 10, 0, tzinfo=UTC),
                recurrence_pattern="None",
                recurrence_days=[],
            ),
        )

        # Tuesday is not an occurrence of a Monday-only rule.
        with pytest.raises(InvalidOccurrenceReference):
            await event_service.apply_exception(
                session, weekly.id, RecurrenceExceptionCreate(exception_date=date(2024, 1, 9))
            )

        # Before the series started.
        with pytest.raises(InvalidOccurrenceReference):
            await event_service.apply_exception(
                session, weekly.id, RecurrenceExceptionCreate(exception_date=date(2023, 12, 25))
            )

        with pytest.raises(InvalidOccurrenceReference):
            await event_service.apply_exception(
                session, one_off.id, RecurrenceExceptionCreate(exception_date=date(2024, 2, 1))
            )

        with pytest.raises(InvalidTimeRange):
            await event_service.apply_exception(
                session,
                weekly.id,
                RecurrenceExceptionCreate(exception_date=date(2024, 1, 8), is_deleted=False),
            )

        with pytest.raises(InvalidTimeRange):
            await event_service.apply_exception(
                session,
                weekly.id,
                RecurrenceExceptionCreate(
                    exception_date=date(2024, 1, 8),
                    is_deleted=False,
                    new_start_time=datetime(2024, 1, 8, 12, 0, tzinfo=UTC),
                    new_end_time=datetime(2024, 1, 8, 11, 0, tzinfo=UTC),
                ),
            )

        with pytest.raises(NotFoundError):
            await event_service.apply_exception(
                session, 999_999, RecurrenceExceptionCreate(exception_date=date(2024, 1, 8))
            )


@pytest.mark.asyncio
async def test_update_event_excludes_itself_and_rederives_color():
    """
    Shifting an event over its own old slot is allowed, and a new type
    re-derives the color.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        event = await event_service.create_event(session, _weekly_payload(user_id))

        # Shifting by 30 minutes overlaps only the event's own old slot.
        updated = await event_service.update_event(
            session,
            event.id,
            EventUpdate(
                start_time=datetime(2024, 1, 1, 9, 30, tzinfo=UTC),
                end_time=datetime(2024, 1, 1, 10, 30, tzinfo=UTC),
                event_type="Personal",
            ),
        )

        assert updated.start_time == datetime(2024, 1, 1, 9, 30, tzinfo=UTC)
        assert updated.color == "green"
        assert updated.recurrence_days == [1]

        with pytest.raises(InvalidTimeRange):
            await event_service.update_event(
                session,
                event.id,
                EventUpdate(end_time=datetime(2024, 1, 1, 9, 0, tzinfo=UTC)),
            )

        with pytest.raises(NotFoundError):
            await event_service.update_event(session, 999_999, EventUpdate(title="Ghost"))


@pytest.mark.asyncio
async def test_delete_event_cascades_exceptions():
    """
    Deleting an event removes its exceptions too.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        event = await event_service.create_event(session, _weekly_payload(user_id))
        await event_service.apply_exception(
            session,
            event.id,
            RecurrenceExceptionCreate(exception_date=date(2024, 1, 8)),
        )

        deleted = await event_service.delete_event(session, event.id)
        assert deleted.id == event.id
        assert len(deleted.exceptions) == 1

        assert await event_service.get_event(session, event.id) is None
        result = await session.execute(
            select(RecurrenceException).where(RecurrenceException.event_id == event.id)
        )
        assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_week_view_uses_local_week():
    """
    The week view returns the Sunday-based week around the reference date.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        await event_service.create_event(session, _weekly_payload(user_id))

        view = await event_service.get_week_view(
            session,
            reference=date(2024, 1, 10),
            owner_id=user_id,
            timezone_name="UTC",
        )

    assert view.week_range.display_range == "Jan 7, 2024 - Jan 13, 2024"
    assert [o.original_date for o in view.events] == [date(2024, 1, 8)]


@pytest.mark.asyncio
async def test_update_event_rejects_move_onto_recurring_occurrence():
    """
    Moving a one-off event onto a Monday slot already taken by the same
    owner's weekly event must raise ConflictError and leave the event as it was.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        await event_service.create_event(session, _weekly_payload(user_id))
        one_off = await event_service.create_event(
            session,
            _weekly_payload(
                user_id,
                title="Free-floating call",
                start_time=datetime(2024, 1, 9, 9, 30, tzinfo=UTC),
                end_time=datetime(2024, 1, 9, 9, 45, tzinfo=UTC),
                recurrence_pattern="None",
                recurrence_days=[],
            ),
        )

        with pytest.raises(ConflictError):
            await event_service.update_event(
                session,
                one_off.id,
                EventUpdate(
                    start_time=datetime(2024, 1, 8, 9, 30, tzinfo=UTC),
                    end_time=datetime(2024, 1, 8, 9, 45, tzinfo=UTC),
                ),
            )

        unchanged = await event_service.get_event(session, one_off.id)
        assert unchanged.start_time == datetime(2024, 1, 9, 9, 30, tzinfo=UTC)


@pytest.mark.asyncio
async def test_rescheduled_exception_rejects_overlap_with_other_event():
    """
    Rescheduling one occurrence of a weekly event onto another event of the
    same owner must raise ConflictError and store no exception.
    """
    await init_db_for_startup()

    async with AsyncSessionLocal() as session:
        user_id = await _create_user(session)
        weekly = await event_service.create_event(session, _weekly_payload(user_id))
        await event_service.create_event(
            session,
            _weekly_payload(
                user_id,
                title="Lunch with the team",
                start_time=datetime(2024, 1, 8, 12, 0, tzinfo=UTC),
                end_time=datetime(2024, 1, 8, 13, 0, tzinfo=UTC),
                recurrence_pattern="None",
                recurrence_days=[],
            ),
        )

        with pytest.raises(ConflictError):
            await event_service.apply_exception(
                session,
                weekly.id,
                RecurrenceExceptionCreate(
                    exception_date=date(2024, 1, 8),
                    is_deleted=False,
                    new_start_time=datetime(2024, 1, 8, 12, 30, tzinfo=UTC),
                    new_end_time=datetime(2024, 1, 8, 13, 30, tzinfo=UTC),
                ),
            )

        assert await event_service.list_exceptions(session, weekly.id) == []
