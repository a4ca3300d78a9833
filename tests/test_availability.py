"""Tests for the availability calculator."""

from datetime import time

from app.config import BusinessHours
from app.models import AppointmentStatus
from app.schemas.availability import SlotTag
from app.services.availability import (
    OccupiedInterval,
    QueuedEntry,
    compute_day_slots,
    iter_day_slots,
    overlaps,
    to_minutes,
)


class TestOverlap:
    """Tests for the half-open interval check."""

    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(540, 30, 570, 30)
        assert not overlaps(570, 30, 540, 30)

    def test_partial_overlap(self):
        assert overlaps(540, 45, 570, 30)

    def test_containment(self):
        assert overlaps(540, 120, 600, 15)


class TestDayGrid:
    """Tests for iter_day_slots over an empty or occupied day."""

    def test_empty_day(self, hours):
        """Eighteen grid slots; the two lunch ones are never available."""
        slots = list(iter_day_slots(hours, 30))

        assert len(slots) == 18
        assert [s.start_time for s in slots if s.tag == SlotTag.LUNCH] == [time(12, 0), time(12, 30)]
        assert sum(1 for s in slots if s.is_available) == 16

    def test_lunch_exclusion(self, hours):
        """No slot starting inside lunch is available, whatever the duration."""
        lunch_start, lunch_end = to_minutes(hours.lunch_start), to_minutes(hours.lunch_end)
        for duration in (15, 30, 45, 60, 90):
            for slot in iter_day_slots(hours, duration):
                if lunch_start <= to_minutes(slot.start_time) < lunch_end:
                    assert slot.tag == SlotTag.LUNCH

    def test_service_may_not_run_into_lunch(self, hours):
        """A 60 minute service cannot start at 11:30."""
        slots = {s.start_time: s for s in iter_day_slots(hours, 60)}

        assert slots[time(11, 0)].tag == SlotTag.AVAILABLE
        assert slots[time(11, 30)].tag == SlotTag.FULL

    def test_service_may_not_run_past_closing(self, hours):
        slots = {s.start_time: s for s in iter_day_slots(hours, 60)}

        assert slots[time(16, 0)].tag == SlotTag.AVAILABLE
        assert slots[time(16, 30)].tag == SlotTag.FULL

    def test_occupied_slots(self, hours):
        """A 09:00-10:00 appointment marks its slots scheduled and blocks overlapping starts."""
        occupied = [OccupiedInterval(None, to_minutes(time(9, 0)), 60)]
        slots = {s.start_time: s for s in iter_day_slots(hours, 45, occupied)}

        assert slots[time(8, 0)].tag == SlotTag.AVAILABLE
        assert slots[time(8, 30)].tag == SlotTag.FULL
        assert slots[time(9, 0)].tag == SlotTag.SCHEDULED
        assert slots[time(9, 30)].tag == SlotTag.SCHEDULED
        assert slots[time(10, 0)].tag == SlotTag.AVAILABLE

    def test_queue_entries_follow_grid_in_position_order(self, hours):
        queued = [QueuedEntry(appointment_id=None, queue_position=2), QueuedEntry(None, 1)]
        slots = list(iter_day_slots(hours, 30, queued=queued))

        tail = [s for s in slots if s.tag == SlotTag.QUEUE]
        assert [s.queue_position for s in tail] == [1, 2]
        assert all(s.start_time is None for s in tail)
        assert slots[-2:] == tail

    def test_custom_hours(self):
        hours = BusinessHours(time(9, 0), time(10, 0), time(10, 30), time(11, 0), 30)
        slots = list(iter_day_slots(hours, 30))

        assert [(s.start_time, s.tag) for s in slots] == [
            (time(9, 0), SlotTag.AVAILABLE),
            (time(9, 30), SlotTag.AVAILABLE),
            (time(10, 0), SlotTag.LUNCH),
            (time(10, 30), SlotTag.AVAILABLE),
        ]


class TestComputeDaySlots:
    """Tests for compute_day_slots against the store."""

    async def test_only_occupying_statuses_block(self, db, barber, day, make_appointment):
        await make_appointment(barber.id, day, time(9, 0), status=AppointmentStatus.CANCELLED)
        await make_appointment(barber.id, day, time(10, 0), status=AppointmentStatus.DONE)
        await make_appointment(barber.id, day, time(11, 0), status=AppointmentStatus.PENDING)

        slots = await compute_day_slots(db, barber.id, day, 30)

        assert slots.is_available(time(9, 0))
        assert slots.is_available(time(10, 0))
        assert not slots.is_available(time(11, 0))

    async def test_self_edit_exemption(self, db, barber, day, make_appointment):
        """An appointment being edited does not block its own slot."""
        appt = await make_appointment(barber.id, day, time(9, 0), duration=30)

        blocked = await compute_day_slots(db, barber.id, day, 30)
        editing = await compute_day_slots(db, barber.id, day, 30, exclude_appointment_id=appt.id)

        assert not blocked.is_available(time(9, 0))
        assert editing.is_available(time(9, 0))

    async def test_missing_duration_occupies_one_step(self, db, barber, day, make_appointment):
        await make_appointment(barber.id, day, time(9, 0), duration=0)

        slots = await compute_day_slots(db, barber.id, day, 30)

        assert not slots.is_available(time(9, 0))
        assert slots.is_available(time(9, 30))

    async def test_queue_entries_are_informational(self, db, barber, day, make_appointment):
        await make_appointment(barber.id, day, None, queue_position=1)

        slots = await compute_day_slots(db, barber.id, day, 30)

        queue = [s for s in slots if s.tag == SlotTag.QUEUE]
        assert len(queue) == 1 and queue[0].queue_position == 1
        assert len(slots.available()) == 16

    async def test_day_off_marks_everything_full(self, db, barber, day, day_off):
        slots = await compute_day_slots(db, barber.id, day, 30)

        assert slots.is_full
        assert {s.tag for s in slots} == {SlotTag.FULL, SlotTag.LUNCH}

    async def test_sequence_is_restartable(self, db, barber, day, make_appointment):
        """Iterating twice gives the same slots."""
        await make_appointment(barber.id, day, time(8, 0))
        slots = await compute_day_slots(db, barber.id, day, 30)

        assert list(slots) == list(slots)
        assert slots.first_available().start_time == time(8, 30)
