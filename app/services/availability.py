"""Availability calculator - a barber's day as an ordered sequence of slots.

The grid runs from opening to closing in fixed steps. Start times inside the
lunch break are tagged ``lunch``; a request may not overlap lunch either.
Each remaining start time is ``available`` when the requested duration fits
without intersecting lunch, closing time or any occupying fixed-time
appointment; ``scheduled`` when a fixed appointment already covers it; and
``full`` otherwise. Queue appointments have no time and are appended as
informational ``queue`` entries.

Results are snapshots. They are recomputed on every call and only valid
until the next write for that barber and day.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import BusinessHours, get_settings
from app.models import OCCUPYING_STATUSES, Appointment, AppointmentType, BarberDayOff
from app.schemas.availability import SlotDescriptor, SlotTag
from app.services.tracing import traced


def to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes."""
    return time(minutes // 60, minutes % 60)


def overlaps(start: int, duration: int, other_start: int, other_duration: int) -> bool:
    """Half-open intervals [start, start+duration) and [other_start, other_start+other_duration) intersect."""
    return start < other_start + other_duration and start + duration > other_start


@dataclass(frozen=True)
class OccupiedInterval:
    """A fixed-time appointment blocking part of the grid."""

    appointment_id: UUID | None
    start: int
    duration: int

    @property
    def end(self) -> int:
        return self.start + self.duration

    def covers(self, minute: int) -> bool:
        return self.start <= minute < self.end


@dataclass(frozen=True)
class QueuedEntry:
    """A queue appointment shown for information."""

    appointment_id: UUID
    queue_position: int


def iter_day_slots(
    hours: BusinessHours,
    duration: int,
    occupied: Iterable[OccupiedInterval] = (),
    queued: Iterable[QueuedEntry] = (),
    day_off: bool = False,
) -> Iterator[SlotDescriptor]:
    """Yield the slot descriptors of one barber's day, in time order."""
    opening = to_minutes(hours.opening)
    lunch_start = to_minutes(hours.lunch_start)
    lunch_end = to_minutes(hours.lunch_end)
    closing = to_minutes(hours.closing)
    occupied = sorted(occupied, key=lambda iv: iv.start)

    for start in range(opening, closing, hours.slot_interval_minutes):
        slot_time = from_minutes(start)

        if lunch_start <= start < lunch_end:
            yield SlotDescriptor(tag=SlotTag.LUNCH, start_time=slot_time)
            continue

        if day_off:
            yield SlotDescriptor(tag=SlotTag.FULL, start_time=slot_time)
            continue

        holder = next((iv for iv in occupied if iv.covers(start)), None)
        if holder is not None:
            yield SlotDescriptor(
                tag=SlotTag.SCHEDULED, start_time=slot_time, appointment_id=holder.appointment_id
            )
            continue

        fits = (
            start + duration <= closing
            and not overlaps(start, duration, lunch_start, lunch_end - lunch_start)
            and not any(overlaps(start, duration, iv.start, iv.duration) for iv in occupied)
        )
        yield SlotDescriptor(tag=SlotTag.AVAILABLE if fits else SlotTag.FULL, start_time=slot_time)

    for entry in sorted(queued, key=lambda e: e.queue_position):
        yield SlotDescriptor(
            tag=SlotTag.QUEUE,
            appointment_id=entry.appointment_id,
            queue_position=entry.queue_position,
        )


@dataclass(frozen=True)
class DaySlots:
    """Restartable view over one barber's day.

    Iterating twice regenerates the sequence from the same snapshot.
    """

    barber_id: UUID
    day: date
    duration: int
    hours: BusinessHours
    occupied: tuple[OccupiedInterval, ...] = ()
    queued: tuple[QueuedEntry, ...] = ()
    day_off: bool = False

    def __iter__(self) -> Iterator[SlotDescriptor]:
        return iter_day_slots(self.hours, self.duration, self.occupied, self.queued, self.day_off)

    def available(self) -> list[SlotDescriptor]:
        """Bookable slots in time order."""
        return [slot for slot in self if slot.is_available]

    def first_available(self) -> SlotDescriptor | None:
        """Soonest bookable slot, if any."""
        return next((slot for slot in self if slot.is_available), None)

    def is_available(self, start_time: time) -> bool:
        """Whether the given start time is a bookable slot."""
        return any(slot.is_available and slot.start_time == start_time for slot in self)

    @property
    def is_full(self) -> bool:
        """No bookable slot left."""
        return self.first_available() is None


async def fetch_active_appointments(
    db: AsyncSession, day: date, barber_ids: Iterable[UUID]
) -> list[Appointment]:
    """Appointments of the given barbers on a day that still hold their place."""
    result = await db.execute(
        select(Appointment)
        .where(
            Appointment.barber_id.in_(list(barber_ids)),
            Appointment.appointment_date == day,
            Appointment.status.in_(OCCUPYING_STATUSES),
        )
        .order_by(Appointment.appointment_time, Appointment.queue_position)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def fetch_barbers_off(db: AsyncSession, day: date, barber_ids: Iterable[UUID]) -> set[UUID]:
    """Barbers with an active day off covering the date."""
    result = await db.execute(
        select(BarberDayOff.barber_id).where(
            BarberDayOff.barber_id.in_(list(barber_ids)),
            BarberDayOff.is_active.is_(True),
            BarberDayOff.start_date <= day,
            BarberDayOff.end_date >= day,
        )
    )
    return set(result.scalars().all())


def build_day_slots(
    barber_id: UUID,
    day: date,
    duration: int,
    appointments: Iterable[Appointment],
    hours: BusinessHours,
    fallback_duration: int,
    day_off: bool = False,
    exclude_appointment_id: UUID | None = None,
) -> DaySlots:
    """Turn a barber's appointments into a DaySlots snapshot.

    ``exclude_appointment_id`` drops one appointment from the occupancy so it
    can be saved again at its own time.
    """
    occupied: list[OccupiedInterval] = []
    queued: list[QueuedEntry] = []

    for appt in appointments:
        if appt.id == exclude_appointment_id:
            continue
        if appt.appointment_type == AppointmentType.QUEUE.value:
            if appt.queue_position is not None:
                queued.append(QueuedEntry(appt.id, appt.queue_position))
            continue
        if appt.appointment_time is None:
            continue
        occupied.append(
            OccupiedInterval(
                appointment_id=appt.id,
                start=to_minutes(appt.appointment_time),
                duration=appt.total_duration or fallback_duration,
            )
        )

    return DaySlots(
        barber_id=barber_id,
        day=day,
        duration=duration,
        hours=hours,
        occupied=tuple(occupied),
        queued=tuple(queued),
        day_off=day_off,
    )


@traced(capture_args=["barber_id", "day", "duration", "exclude_appointment_id"])
async def compute_day_slots(
    db: AsyncSession,
    barber_id: UUID,
    day: date,
    duration: int,
    exclude_appointment_id: UUID | None = None,
    hours: BusinessHours | None = None,
) -> DaySlots:
    """Read the barber's current occupancy and compute the day's slots."""
    settings = get_settings()
    appointments = await fetch_active_appointments(db, day, [barber_id])
    off = await fetch_barbers_off(db, day, [barber_id])

    return build_day_slots(
        barber_id,
        day,
        duration,
        appointments,
        hours=hours or settings.business_hours,
        fallback_duration=settings.slot_interval_minutes,
        day_off=barber_id in off,
        exclude_appointment_id=exclude_appointment_id,
    )
