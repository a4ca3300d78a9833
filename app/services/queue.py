"""Queue manager - per-barber walk-in queues.

Waiting entries hold a dense position sequence 1..N per barber and day. The
entry being served holds position 0. Insertion follows a stable priority
discipline: a new entry goes after every entry of equal or higher priority
and before the first entry of strictly lower priority.

Position writes are single statements over the barber/date partition and
must run while the partition lock is held (see ``app.services.locking``).
"""

from collections.abc import Iterable, Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    WAITING_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    PriorityLevel,
)
from app.schemas.queue import QueueEntry, QueueSnapshot

# Lower rank is served first
PRIORITY_RANK = {
    PriorityLevel.URGENT.value: 0,
    PriorityLevel.HIGH.value: 1,
    PriorityLevel.NORMAL.value: 2,
    PriorityLevel.LOW.value: 3,
}


def priority_rank(priority: PriorityLevel | str) -> int:
    """Sort key for a priority level."""
    return PRIORITY_RANK[PriorityLevel(priority).value]


def _waiting_filter(barber_id: UUID, day: date):
    return and_(
        Appointment.barber_id == barber_id,
        Appointment.appointment_date == day,
        Appointment.appointment_type == AppointmentType.QUEUE.value,
        Appointment.status.in_(WAITING_STATUSES),
        Appointment.queue_position.is_not(None),
        Appointment.queue_position >= 1,
    )


async def get_waiting_queue(db: AsyncSession, barber_id: UUID, day: date) -> list[Appointment]:
    """Waiting queue entries in position order."""
    result = await db.execute(
        select(Appointment)
        .where(_waiting_filter(barber_id, day))
        .order_by(Appointment.queue_position, Appointment.created_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_current_entry(db: AsyncSession, barber_id: UUID, day: date) -> Appointment | None:
    """The appointment the barber is serving right now, if any."""
    result = await db.execute(
        select(Appointment)
        .where(
            Appointment.barber_id == barber_id,
            Appointment.appointment_date == day,
            Appointment.status == AppointmentStatus.ONGOING.value,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


def find_insertion_position(waiting: Sequence[Appointment], priority: PriorityLevel | str) -> int:
    """Position a new entry of the given priority takes in the waiting queue.

    ``waiting`` must be in position order. Equal priorities keep FIFO order.
    """
    rank = priority_rank(priority)
    for index, entry in enumerate(waiting, start=1):
        if priority_rank(entry.priority_level) > rank:
            return index
    return len(waiting) + 1


async def insert_into_queue(
    db: AsyncSession, appointment: Appointment, waiting: Sequence[Appointment]
) -> int:
    """Give a new queue appointment its position and make room for it.

    Entries at or behind the insertion point move back by one in a single
    UPDATE. The appointment is added to the session but not committed.
    """
    position = find_insertion_position(waiting, appointment.priority_level)

    if position <= len(waiting):
        await db.execute(
            update(Appointment)
            .where(
                _waiting_filter(appointment.barber_id, appointment.appointment_date),
                Appointment.queue_position >= position,
            )
            .values(queue_position=Appointment.queue_position + 1)
            .execution_options(synchronize_session=False)
        )

    appointment.queue_position = position
    db.add(appointment)
    await db.flush()
    return position


async def renumber_queue(db: AsyncSession, barber_id: UUID, day: date) -> dict[UUID, int]:
    """Re-derive dense positions 1..N for the waiting entries.

    Existing relative order is kept. Runs as one ordered UPDATE over the
    barber/date partition and returns the new position of every waiting entry.
    """
    ranked = (
        select(
            Appointment.id.label("appointment_id"),
            func.row_number()
            .over(order_by=(Appointment.queue_position, Appointment.created_at))
            .label("new_position"),
        )
        .where(_waiting_filter(barber_id, day))
        .subquery()
    )

    await db.execute(
        update(Appointment)
        .where(Appointment.id == ranked.c.appointment_id)
        .values(queue_position=ranked.c.new_position)
        .execution_options(synchronize_session=False)
    )

    return {entry.id: entry.queue_position for entry in await get_waiting_queue(db, barber_id, day)}


def estimate_wait_minutes(ahead: Iterable[int | None], average_minutes: int) -> int:
    """Sum the durations of the entries ahead, using the average for unknown ones."""
    return sum(duration if duration else average_minutes for duration in ahead)


def format_wait(minutes: int) -> str:
    """'45 min', or hours and minutes above one hour."""
    if minutes <= 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if rest else f"{hours}h"


def wait_for_position(
    position: int,
    waiting: Sequence[Appointment],
    current: Appointment | None,
    average_minutes: int,
) -> int:
    """Estimated wait for whoever holds ``position`` in the waiting queue."""
    ahead = [entry.total_duration for entry in waiting if entry.queue_position < position]
    if current is not None:
        ahead.append(current.total_duration)
    return estimate_wait_minutes(ahead, average_minutes)


def _entry(appt: Appointment, wait: int) -> QueueEntry:
    return QueueEntry(
        appointment_id=appt.id,
        customer_id=appt.customer_id,
        queue_position=appt.queue_position or 0,
        priority_level=appt.priority_level,
        total_duration=appt.total_duration,
        estimated_wait_minutes=wait,
        estimated_wait_display=format_wait(wait),
    )


async def get_queue_snapshot(
    db: AsyncSession, barber_id: UUID, day: date, average_minutes: int
) -> QueueSnapshot:
    """Current entry plus waiting entries with their estimated waits."""
    waiting = await get_waiting_queue(db, barber_id, day)
    current = await get_current_entry(db, barber_id, day)

    return QueueSnapshot(
        barber_id=barber_id,
        appointment_date=day,
        current=_entry(current, 0) if current is not None else None,
        waiting=[
            _entry(appt, wait_for_position(appt.queue_position, waiting, current, average_minutes))
            for appt in waiting
        ],
    )
