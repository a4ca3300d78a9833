"""Tests for the alternative barber finder."""

from datetime import time
from uuid import uuid4

from app.models import AppointmentStatus, Barber
from app.services.alternatives import find_alternative_barbers


class TestFindAlternativeBarbers:
    """Ranking, exclusion and limits."""

    async def test_ranked_by_soonest_slot(self, db, barber, barber2, barber3, day, make_appointment):
        """Beto is busy at 08:00, so Carla ranks ahead of him."""
        await make_appointment(barber2.id, day, time(8, 0))

        alternatives = await find_alternative_barbers(db, day, 30, exclude_barber_id=barber.id)

        assert [(a.barber_name, a.next_available_time) for a in alternatives] == [
            ("Carla", time(8, 0)),
            ("Beto", time(8, 30)),
        ]
        assert alternatives[1].current_load == 1
        assert alternatives[1].available_slot_count == 15

    async def test_ties_broken_by_name(self, db, barber, barber2, barber3, day):
        alternatives = await find_alternative_barbers(db, day, 30)

        assert [a.barber_name for a in alternatives] == ["Ana", "Beto", "Carla"]

    async def test_excludes_requested_barber(self, db, barber, barber2, day):
        alternatives = await find_alternative_barbers(db, day, 30, exclude_barber_id=barber.id)

        assert [a.barber_id for a in alternatives] == [barber2.id]

    async def test_skips_day_off_and_full_barbers(
        self, db, barber, barber2, barber3, day, day_off, make_appointment, hours
    ):
        minute = hours.opening.hour * 60
        while minute < hours.closing.hour * 60:
            at = time(minute // 60, minute % 60)
            if not hours.lunch_start <= at < hours.lunch_end:
                await make_appointment(barber2.id, day, at)
            minute += hours.slot_interval_minutes

        alternatives = await find_alternative_barbers(db, day, 30)

        assert [a.barber_id for a in alternatives] == [barber3.id]

    async def test_cancelled_appointments_do_not_count(self, db, barber, day, make_appointment):
        await make_appointment(barber.id, day, time(8, 0), status=AppointmentStatus.CANCELLED)

        alternatives = await find_alternative_barbers(db, day, 30)

        assert alternatives[0].next_available_time == time(8, 0)
        assert alternatives[0].current_load == 0

    async def test_inactive_barbers_are_left_out(self, db, barber, day):
        db.add(Barber(id=uuid4(), name="Aaron", is_active=False))
        await db.commit()

        alternatives = await find_alternative_barbers(db, day, 30)

        assert [a.barber_id for a in alternatives] == [barber.id]

    async def test_limit(self, db, barber, barber2, barber3, day):
        assert len(await find_alternative_barbers(db, day, 30, limit=2)) == 2
        assert await find_alternative_barbers(db, day, 30, limit=0) == []

    async def test_long_service_needs_room(self, db, barber, day, make_appointment):
        """A 90 minute service needs a contiguous window."""
        for at in (time(9, 0), time(10, 30), time(14, 0)):
            await make_appointment(barber.id, day, at)

        alternatives = await find_alternative_barbers(db, day, 90)

        assert alternatives[0].next_available_time == time(14, 30)
        assert alternatives[0].available_slot_count == 3
