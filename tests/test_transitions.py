"""Tests for the appointment status state machine and rescheduling."""

import asyncio
from datetime import time
from uuid import uuid4

import pytest

from app.config import get_settings
from app.models import AppointmentStatus, AppointmentType, QueueInsertionReason
from app.schemas.appointment import OutcomeType
from app.services import queue as queue_service
from app.services import scheduling as scheduling_service
from app.services.errors import ConflictError, InvalidTransitionError, NotFoundError
from app.services.events import change_bus


class TestCheckTransition:
    """Tests for the transition table itself."""

    @pytest.mark.parametrize(
        "current,new",
        [
            ("pending", "scheduled"),
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("scheduled", "confirmed"),
            ("scheduled", "ongoing"),
            ("confirmed", "ongoing"),
            ("ongoing", "done"),
            ("ongoing", "cancelled"),
        ],
    )
    def test_allowed(self, current, new):
        scheduling_service.check_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            ("pending", "done"),
            ("pending", "ongoing"),
            ("confirmed", "pending"),
            ("ongoing", "scheduled"),
            ("done", "cancelled"),
            ("done", "pending"),
            ("cancelled", "pending"),
            ("cancelled", "done"),
        ],
    )
    def test_rejected(self, current, new):
        with pytest.raises(InvalidTransitionError) as exc_info:
            scheduling_service.check_transition(current, new)

        assert exc_info.value.reason_code == "invalid_transition"


class TestTransitionStatus:
    """Status changes against the store."""

    async def test_confirm(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0), status=AppointmentStatus.PENDING)

        updated = await scheduling_service.transition_status(db, appt.id, AppointmentStatus.CONFIRMED)

        assert updated.status == AppointmentStatus.CONFIRMED.value
        assert updated.queue_position is None

    async def test_invalid_transition_changes_nothing(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0), status=AppointmentStatus.PENDING)
        appt_id = appt.id

        with pytest.raises(InvalidTransitionError):
            await scheduling_service.transition_status(db, appt_id, AppointmentStatus.DONE)

        stored = await scheduling_service.get_appointment(db, appt_id)
        assert stored.status == AppointmentStatus.PENDING.value

    async def test_terminal_states_have_no_exit(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0), status=AppointmentStatus.CONFIRMED)
        appt_id = appt.id
        await scheduling_service.transition_status(db, appt_id, AppointmentStatus.CANCELLED, "Sick")

        for target in AppointmentStatus:
            with pytest.raises(InvalidTransitionError):
                await scheduling_service.transition_status(db, appt_id, target)

    async def test_scheduled_appointment_served_then_done(self, db, barber, day, make_appointment):
        """Slot appointments also take position 0 while being served."""
        appt = await make_appointment(barber.id, day, time(9, 0))

        serving = await scheduling_service.transition_status(db, appt.id, AppointmentStatus.ONGOING)
        assert serving.queue_position == 0

        finished = await scheduling_service.transition_status(db, appt.id, AppointmentStatus.DONE)
        assert finished.status == AppointmentStatus.DONE.value
        assert finished.queue_position is None

    async def test_only_one_ongoing_per_barber_day(self, db, barber, day, make_appointment):
        first = await make_appointment(barber.id, day, time(9, 0))
        second = await make_appointment(barber.id, day, time(10, 0))
        second_id = second.id
        await scheduling_service.transition_status(db, first.id, AppointmentStatus.ONGOING)

        with pytest.raises(ConflictError):
            await scheduling_service.transition_status(db, second_id, AppointmentStatus.ONGOING)

        stored = await scheduling_service.get_appointment(db, second_id)
        assert stored.status == AppointmentStatus.SCHEDULED.value

    async def test_ongoing_on_another_barber_is_independent(
        self, db, barber, barber2, day, make_appointment
    ):
        mine = await make_appointment(barber.id, day, time(9, 0))
        theirs = await make_appointment(barber2.id, day, time(9, 0))

        await scheduling_service.transition_status(db, mine.id, AppointmentStatus.ONGOING)
        updated = await scheduling_service.transition_status(db, theirs.id, AppointmentStatus.ONGOING)

        assert updated.queue_position == 0

    async def test_unknown_appointment(self, db):
        with pytest.raises(NotFoundError):
            await scheduling_service.transition_status(db, uuid4(), AppointmentStatus.CONFIRMED)

    async def test_change_event(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0), status=AppointmentStatus.PENDING)
        events = []

        async def collect(event):
            events.append(event)

        change_bus.subscribe(collect)
        try:
            await scheduling_service.transition_status(db, appt.id, AppointmentStatus.CONFIRMED)
        finally:
            change_bus.unsubscribe(collect)

        assert [(e.appointment_id, e.status, e.change) for e in events] == [
            (appt.id, "confirmed", "status_changed")
        ]

    async def test_slow_read_back_keeps_committed_cancel(
        self, db, barber, day, make_appointment, dispatcher, monkeypatch
    ):
        """A timeout while notifying the renumbered queue does not undo the cancel."""
        a, b = [
            await make_appointment(barber.id, day, None, status=AppointmentStatus.CONFIRMED, queue_position=p)
            for p in (1, 2)
        ]
        a_id, b_id, barber_id = a.id, b.id, barber.id
        monkeypatch.setattr(get_settings(), "store_timeout_seconds", 0.3)

        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        monkeypatch.setattr(queue_service, "get_current_entry", slow)

        cancelled = await scheduling_service.transition_status(
            db, a_id, AppointmentStatus.CANCELLED, "running late", dispatcher=dispatcher
        )

        assert cancelled.status == AppointmentStatus.CANCELLED.value
        assert cancelled.queue_position is None
        assert dispatcher.outcomes == []

        waiting = await queue_service.get_waiting_queue(db, barber_id, day)
        assert [(e.id, e.queue_position) for e in waiting] == [(b_id, 1)]


class TestReschedule:
    """Tests for reschedule_appointment."""

    async def test_may_overlap_its_own_interval(self, db, barber, day, make_appointment):
        """A 60 minute appointment at 09:00 can move to 09:30."""
        appt = await make_appointment(barber.id, day, time(9, 0), duration=60)

        moved = await scheduling_service.reschedule_appointment(db, appt.id, time(9, 30))

        assert moved.appointment_time == time(9, 30)
        assert moved.queue_insertion_reason == QueueInsertionReason.RESCHEDULED.value

    async def test_taken_slot(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0))
        appt_id = appt.id
        await make_appointment(barber.id, day, time(10, 0))

        with pytest.raises(ConflictError):
            await scheduling_service.reschedule_appointment(db, appt_id, time(10, 0))

        stored = await scheduling_service.get_appointment(db, appt_id)
        assert stored.appointment_time == time(9, 0)

    async def test_lunch_is_not_bookable(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0))

        with pytest.raises(ConflictError):
            await scheduling_service.reschedule_appointment(db, appt.id, time(12, 0))

    async def test_queue_entry_becomes_scheduled(
        self, db, barber, day, make_appointment, dispatcher
    ):
        a, b, c = [
            await make_appointment(barber.id, day, None, status=AppointmentStatus.CONFIRMED, queue_position=p)
            for p in (1, 2, 3)
        ]

        moved = await scheduling_service.reschedule_appointment(
            db, a.id, time(10, 0), dispatcher=dispatcher
        )

        assert moved.appointment_type == AppointmentType.SCHEDULED.value
        assert moved.appointment_time == time(10, 0)
        assert moved.queue_position is None

        waiting = await queue_service.get_waiting_queue(db, barber.id, day)
        assert [(e.id, e.queue_position) for e in waiting] == [(b.id, 1), (c.id, 2)]

        assert [(o.appointment_id, o.outcome_type) for o in dispatcher.outcomes] == [
            (b.id, OutcomeType.QUEUED),
            (c.id, OutcomeType.QUEUED),
            (a.id, OutcomeType.SCHEDULED),
        ]

    async def test_finished_appointment_cannot_move(self, db, barber, day, make_appointment):
        appt = await make_appointment(barber.id, day, time(9, 0), status=AppointmentStatus.DONE)

        with pytest.raises(InvalidTransitionError):
            await scheduling_service.reschedule_appointment(db, appt.id, time(10, 0))

    async def test_unknown_appointment(self, db):
        with pytest.raises(NotFoundError):
            await scheduling_service.reschedule_appointment(db, uuid4(), time(10, 0))
