"""Scheduling service - smart insertion and the appointment state machine.

``smart_insert`` places a booking request on a barber's day: at the desired
time when it is free, at the soonest free slot for promoted priorities, or in
the walk-in queue. A saturated barber yields ranked alternatives instead.

Availability is read optimistically. The write path takes the barber/date
partition lock, re-validates occupancy and queue capacity against the store,
then writes and commits. A request that loses the re-check fails with
ConflictError and leaves nothing behind.

Reads that follow the commit degrade to a missing wait estimate rather than
report a saved write as failed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Any, TypeVar
from uuid import UUID

import pydantic
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.models import (
    OCCUPYING_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    BookingKind,
    QueueInsertionReason,
)
from app.schemas.appointment import (
    REQUIRED_FIELDS,
    AppointmentResponse,
    BookingOutcome,
    BookingRequest,
    FriendBooking,
    OutcomeType,
    SchedulingOutcome,
)
from app.services import availability as availability_service
from app.services import barber as barber_service
from app.services import catalog as catalog_service
from app.services import queue as queue_service
from app.services.alternatives import find_alternative_barbers
from app.services.availability import DaySlots, overlaps, to_minutes
from app.services.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    SaturationError,
    ValidationError,
)
from app.services.events import AppointmentChanged, change_bus
from app.services.locking import partition_lock, store_guard
from app.services.notifications import NotificationDispatcher, safe_dispatch
from app.services.tracing import set_barber_id, traced

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Status state machine. Terminal states have no way out.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.ONGOING, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.ONGOING, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.ONGOING: frozenset({AppointmentStatus.DONE, AppointmentStatus.CANCELLED}),
    AppointmentStatus.DONE: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class Placement:
    """Where the engine decided to put a request."""

    appointment_type: AppointmentType
    appointment_time: time | None
    reason: QueueInsertionReason


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_appointment(db: AsyncSession, appointment_id: UUID) -> Appointment | None:
    """Get appointment by ID."""
    result = await db.execute(
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_appointments(
    db: AsyncSession,
    barber_id: UUID | None = None,
    appointment_date: date | None = None,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    """List appointments with optional filters."""
    query = select(Appointment)

    if barber_id:
        query = query.where(Appointment.barber_id == barber_id)

    if appointment_date:
        query = query.where(Appointment.appointment_date == appointment_date)

    if status:
        query = query.where(Appointment.status == status.value)

    result = await db.execute(
        query.order_by(
            Appointment.appointment_date,
            Appointment.appointment_time,
            Appointment.queue_position,
            Appointment.created_at,
        )
    )
    return list(result.scalars().all())


async def check_appointment_conflicts(
    db: AsyncSession,
    barber_id: UUID,
    day: date,
    start_time: time,
    duration: int,
    exclude_appointment_id: UUID | None = None,
) -> list[Appointment]:
    """Fixed-time appointments whose interval intersects [start_time, start_time+duration).

    Only occupying statuses count. Appointments without a resolved duration
    occupy one grid step.
    """
    query = select(Appointment).where(
        Appointment.barber_id == barber_id,
        Appointment.appointment_date == day,
        Appointment.appointment_type == AppointmentType.SCHEDULED.value,
        Appointment.appointment_time.is_not(None),
        Appointment.status.in_(OCCUPYING_STATUSES),
    )

    # Exclude specific appointment (for reschedule)
    if exclude_appointment_id:
        query = query.where(Appointment.id != exclude_appointment_id)

    result = await db.execute(query.execution_options(populate_existing=True))
    fallback = get_settings().slot_interval_minutes
    start = to_minutes(start_time)

    return [
        appt
        for appt in result.scalars().all()
        if overlaps(
            start,
            duration,
            to_minutes(appt.appointment_time),
            appt.total_duration or fallback,
        )
    ]


# ---------------------------------------------------------------------------
# Smart insertion
# ---------------------------------------------------------------------------


def parse_booking_request(request: BookingRequest | Mapping[str, Any]) -> BookingRequest:
    """Coerce caller input into a BookingRequest or raise ValidationError."""
    if isinstance(request, BookingRequest):
        return request

    data = dict(request)
    missing = [f.value for f in REQUIRED_FIELDS if data.get(f.value) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            errors=[{"field": name, "message": "Field required"} for name in missing],
        )

    try:
        return BookingRequest.model_validate(data)
    except pydantic.ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        fields = ", ".join(err["field"] for err in errors)
        raise ValidationError(f"Invalid booking request: {fields}", errors=errors) from e


def validate_booking_limits(request: BookingRequest, settings: Settings, today: date | None = None) -> None:
    """Business validation that needs no store access."""
    today = today or date.today()

    if request.appointment_date < today:
        raise ValidationError("Appointment date is in the past")

    if request.appointment_date > today + timedelta(days=settings.advance_booking_days):
        raise ValidationError(
            f"Appointments can be booked at most {settings.advance_booking_days} days ahead"
        )

    if 1 + len(request.services) > settings.max_services:
        raise ValidationError(f"At most {settings.max_services} services per appointment")

    if len(request.add_ons) > settings.max_add_ons:
        raise ValidationError(f"At most {settings.max_add_ons} add-ons per appointment")


def choose_placement(
    request: BookingRequest, slots: DaySlots, waiting_count: int, settings: Settings
) -> Placement | None:
    """Decide where a request goes. None means the barber is saturated.

    Order of preference:
    1. The desired time, when it is a free slot.
    2. The soonest free slot, for promoted priorities.
    3. The walk-in queue, while it has capacity.
    4. The soonest free slot, when the queue is full.

    A barber on a day off takes neither slots nor queue entries.
    """
    if slots.day_off:
        return None

    desired = request.appointment_time
    if desired is not None and slots.is_available(desired):
        return Placement(AppointmentType.SCHEDULED, desired, QueueInsertionReason.DIRECT_BOOKING)

    first = slots.first_available()
    if first is not None and request.priority_level.value in settings.promotion_priorities:
        return Placement(AppointmentType.SCHEDULED, first.start_time, QueueInsertionReason.URGENT)

    queue_full = settings.queue_capacity > 0 and waiting_count >= settings.queue_capacity
    if not queue_full:
        if request.wants_walk_in:
            reason = QueueInsertionReason.WALK_IN
        elif desired is not None:
            reason = QueueInsertionReason.SCHEDULED_TO_QUEUE
        else:
            reason = QueueInsertionReason.DIRECT_BOOKING
        return Placement(AppointmentType.QUEUE, None, reason)

    if first is not None:
        return Placement(
            AppointmentType.SCHEDULED, first.start_time, QueueInsertionReason.DIRECT_BOOKING
        )

    return None


def _new_appointment(
    request: BookingRequest,
    placement: Placement,
    totals: catalog_service.BookingTotals,
    settings: Settings,
) -> Appointment:
    booking = request.booking
    friend = booking if isinstance(booking, FriendBooking) else None

    return Appointment(
        customer_id=request.customer_id,
        barber_id=request.barber_id,
        service_id=request.service_id,
        additional_service_ids=[str(s) for s in request.services],
        add_on_ids=[str(a) for a in request.add_ons],
        appointment_date=request.appointment_date,
        appointment_time=placement.appointment_time,
        total_duration=totals.total_duration,
        priority_level=request.priority_level.value,
        appointment_type=placement.appointment_type.value,
        status=AppointmentStatus.PENDING.value,
        queue_position=None,
        queue_insertion_reason=placement.reason.value,
        total_price=catalog_service.apply_priority_surcharge(
            totals.total_price, request.priority_level, settings.urgent_fee
        ),
        notes=request.notes,
        is_walk_in=request.wants_walk_in,
        is_urgent=request.is_urgent,
        booking_kind=BookingKind.FRIEND.value if friend else BookingKind.SINGLE.value,
        friend_name=friend.name if friend else None,
        friend_phone=friend.phone if friend else None,
        booked_by=(friend.booked_by or request.customer_id) if friend else None,
    )


async def _write_placement(
    db: AsyncSession,
    appointment: Appointment,
    occupancy_duration: int,
    settings: Settings,
) -> None:
    """Re-validate and write. Caller holds the partition lock."""
    if appointment.appointment_type == AppointmentType.SCHEDULED.value:
        conflicts = await check_appointment_conflicts(
            db,
            appointment.barber_id,
            appointment.appointment_date,
            appointment.appointment_time,
            occupancy_duration,
        )
        if conflicts:
            logger.warning(
                f"Lost slot {appointment.appointment_time} for barber {appointment.barber_id} "
                f"on {appointment.appointment_date} to appointment {conflicts[0].id}"
            )
            raise ConflictError(
                f"Slot {appointment.appointment_time.strftime('%H:%M')} was just taken"
            )
        db.add(appointment)
        await db.flush()
        return

    waiting = await queue_service.get_waiting_queue(
        db, appointment.barber_id, appointment.appointment_date
    )
    if settings.queue_capacity > 0 and len(waiting) >= settings.queue_capacity:
        logger.warning(
            f"Queue for barber {appointment.barber_id} on {appointment.appointment_date} "
            f"filled up before insert"
        )
        raise ConflictError("The queue filled up while booking")
    await queue_service.insert_into_queue(db, appointment, waiting)


async def _queue_wait(db: AsyncSession, appointment: Appointment, settings: Settings) -> int:
    waiting = await queue_service.get_waiting_queue(
        db, appointment.barber_id, appointment.appointment_date
    )
    current = await queue_service.get_current_entry(
        db, appointment.barber_id, appointment.appointment_date
    )
    return queue_service.wait_for_position(
        appointment.queue_position, waiting, current, settings.average_service_minutes
    )


async def _after_commit(
    db: AsyncSession,
    appointment: Appointment,
    operation: str,
    read_back: Callable[[], Awaitable[T]],
) -> T | None:
    """Run the reads that follow a committed write.

    The write already stands, so a timeout or store failure here is logged
    and yields ``None``. Raising would tell the caller to retry a booking
    that was in fact saved.
    """
    settings = get_settings()
    try:
        async with asyncio.timeout(settings.store_timeout_seconds):
            return await read_back()
    except (TimeoutError, SQLAlchemyError) as e:
        logger.warning(
            f"{operation} committed appointment {appointment.id} but the read-back failed: "
            f"{type(e).__name__}"
        )
        # Detach first so the rollback does not expire the committed instance
        db.expunge(appointment)
        await db.rollback()
        return None


def _scheduling_outcome(appointment: Appointment, wait: int | None = None) -> SchedulingOutcome:
    if appointment.is_queue:
        return SchedulingOutcome(
            appointment_id=appointment.id,
            barber_id=appointment.barber_id,
            appointment_date=appointment.appointment_date,
            outcome_type=OutcomeType.QUEUED,
            queue_position=appointment.queue_position,
            estimated_wait_minutes=wait,
        )
    return SchedulingOutcome(
        appointment_id=appointment.id,
        barber_id=appointment.barber_id,
        appointment_date=appointment.appointment_date,
        outcome_type=OutcomeType.SCHEDULED,
        assigned_time=appointment.appointment_time,
    )


@traced(capture_args=["request"])
async def smart_insert(
    db: AsyncSession,
    request: BookingRequest | Mapping[str, Any],
    *,
    dispatcher: NotificationDispatcher | None = None,
    settings: Settings | None = None,
) -> BookingOutcome:
    """Place a booking request on a barber's day.

    Raises:
        ValidationError: missing or malformed fields, before any store access.
        NotFoundError: unknown or inactive barber.
        ConflictError: another request took the slot or the last queue place.
        SaturationError: no free slot and no queue capacity. Carries alternatives.
        StoreUnavailableError: the store timed out or failed.
    """
    settings = settings or get_settings()
    request = parse_booking_request(request)
    validate_booking_limits(request, settings)
    set_barber_id(request.barber_id)

    placement: Placement | None = None
    alternatives = []

    async with store_guard(db, "smart_insert"):
        barber = await barber_service.get_barber(db, request.barber_id)
        if barber is None or not barber.is_active:
            raise NotFoundError(f"Barber {request.barber_id} not found")

        catalog = await catalog_service.load_catalog(db)
        totals = catalog_service.resolve_totals(
            catalog, request.service_id, request.services, request.add_ons
        )
        occupancy = totals.total_duration or settings.slot_interval_minutes

        # Optimistic read, re-validated under the partition lock
        slots = await availability_service.compute_day_slots(
            db, request.barber_id, request.appointment_date, occupancy
        )
        waiting = await queue_service.get_waiting_queue(
            db, request.barber_id, request.appointment_date
        )
        placement = choose_placement(request, slots, len(waiting), settings)

        if placement is None:
            alternatives = await find_alternative_barbers(
                db,
                request.appointment_date,
                occupancy,
                exclude_barber_id=request.barber_id,
                limit=settings.alternative_barber_limit,
            )
        else:
            appointment = _new_appointment(request, placement, totals, settings)
            async with partition_lock(db, request.barber_id, request.appointment_date):
                await _write_placement(db, appointment, occupancy, settings)
                await db.commit()

    if placement is None:
        logger.info(
            f"Barber {request.barber_id} saturated on {request.appointment_date}; "
            f"suggesting {len(alternatives)} alternative(s)"
        )
        await safe_dispatch(
            dispatcher,
            SchedulingOutcome(
                appointment_id=None,
                barber_id=request.barber_id,
                appointment_date=request.appointment_date,
                outcome_type=OutcomeType.ALTERNATIVE_SUGGESTED,
                alternatives=alternatives,
            ),
        )
        raise SaturationError(
            f"Barber {request.barber_id} has no free slot and no queue capacity "
            f"on {request.appointment_date}",
            alternatives=alternatives,
        )

    async def _read_back() -> int | None:
        await db.refresh(appointment)
        return await _queue_wait(db, appointment, settings) if appointment.is_queue else None

    wait = await _after_commit(db, appointment, "smart_insert", _read_back)

    logger.info(
        f"Booked appointment {appointment.id} as {appointment.appointment_type} "
        f"({placement.reason.value}) for barber {appointment.barber_id} on "
        f"{appointment.appointment_date}: time={appointment.appointment_time}, "
        f"position={appointment.queue_position}"
    )

    await change_bus.publish(
        AppointmentChanged(
            appointment_id=appointment.id,
            barber_id=appointment.barber_id,
            appointment_date=appointment.appointment_date,
            status=appointment.status,
            change="created",
        )
    )
    await safe_dispatch(dispatcher, _scheduling_outcome(appointment, wait))

    return BookingOutcome(
        outcome_type=OutcomeType.QUEUED if appointment.is_queue else OutcomeType.SCHEDULED,
        appointment=AppointmentResponse.model_validate(appointment),
        assigned_time=appointment.appointment_time,
        queue_position=appointment.queue_position,
        estimated_wait_minutes=wait,
        estimated_wait_display=queue_service.format_wait(wait) if wait is not None else None,
    )


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def check_transition(current: AppointmentStatus | str, new: AppointmentStatus | str) -> None:
    """Raise InvalidTransitionError unless current -> new is allowed."""
    current = AppointmentStatus(current)
    new = AppointmentStatus(new)
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move appointment from {current.value} to {new.value}"
        )


async def _notify_renumbered(
    db: AsyncSession,
    barber_id: UUID,
    day: date,
    before: dict[UUID, int],
    dispatcher: NotificationDispatcher | None,
    settings: Settings,
) -> None:
    """Send a queued outcome to every waiting entry whose position moved."""
    if dispatcher is None:
        return

    waiting = await queue_service.get_waiting_queue(db, barber_id, day)
    current = await queue_service.get_current_entry(db, barber_id, day)

    for entry in waiting:
        if before.get(entry.id) == entry.queue_position:
            continue
        wait = queue_service.wait_for_position(
            entry.queue_position, waiting, current, settings.average_service_minutes
        )
        await safe_dispatch(dispatcher, _scheduling_outcome(entry, wait))


@traced(capture_args=["appointment_id", "new_status", "reason"])
async def transition_status(
    db: AsyncSession,
    appointment_id: UUID,
    new_status: AppointmentStatus,
    reason: str | None = None,
    *,
    dispatcher: NotificationDispatcher | None = None,
    settings: Settings | None = None,
) -> Appointment:
    """Move an appointment through the status state machine.

    Entering ``ongoing`` gives the appointment position 0; only one
    appointment per barber and day can be ongoing. Entering ``done`` or
    ``cancelled`` clears the position. Queue entries leaving the waiting set
    renumber the rest of the queue.
    """
    settings = settings or get_settings()
    new_status = AppointmentStatus(new_status)
    before: dict[UUID, int] = {}

    async with store_guard(db, "transition_status"):
        appointment = await get_appointment(db, appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        check_transition(appointment.status, new_status)

        barber_id, day = appointment.barber_id, appointment.appointment_date
        set_barber_id(barber_id)

        async with partition_lock(db, barber_id, day):
            # Re-read under the lock; another writer may have moved it
            appointment = await get_appointment(db, appointment_id)
            check_transition(appointment.status, new_status)

            if new_status == AppointmentStatus.ONGOING:
                current = await queue_service.get_current_entry(db, barber_id, day)
                if current is not None and current.id != appointment.id:
                    raise ConflictError(
                        f"Barber {barber_id} is already serving appointment {current.id}"
                    )

            leaves_queue = appointment.is_queue and (
                new_status == AppointmentStatus.ONGOING or new_status.value in TERMINAL_STATUSES
            )
            if leaves_queue:
                before = {
                    e.id: e.queue_position
                    for e in await queue_service.get_waiting_queue(db, barber_id, day)
                }

            appointment.status = new_status.value
            if new_status == AppointmentStatus.ONGOING:
                appointment.queue_position = 0
            elif new_status.value in TERMINAL_STATUSES:
                appointment.queue_position = None
            if new_status == AppointmentStatus.CANCELLED:
                appointment.cancellation_reason = reason
            await db.flush()

            if leaves_queue:
                await queue_service.renumber_queue(db, barber_id, day)

            await db.commit()

    async def _read_back() -> None:
        await db.refresh(appointment)
        if leaves_queue:
            await _notify_renumbered(db, barber_id, day, before, dispatcher, settings)

    await _after_commit(db, appointment, "transition_status", _read_back)

    logger.info(f"Appointment {appointment.id} moved to {appointment.status}")

    await change_bus.publish(
        AppointmentChanged(
            appointment_id=appointment.id,
            barber_id=barber_id,
            appointment_date=day,
            status=appointment.status,
            change="status_changed",
        )
    )
    return appointment


@traced(capture_args=["appointment_id", "new_time"])
async def reschedule_appointment(
    db: AsyncSession,
    appointment_id: UUID,
    new_time: time,
    *,
    dispatcher: NotificationDispatcher | None = None,
    settings: Settings | None = None,
) -> Appointment:
    """Move an appointment to a new start time on the same day.

    The appointment's own interval does not block the new time. A queue
    entry given a time becomes slot-bound and the queue is renumbered.
    """
    settings = settings or get_settings()
    before: dict[UUID, int] = {}

    async with store_guard(db, "reschedule_appointment"):
        appointment = await get_appointment(db, appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        if appointment.status not in (
            AppointmentStatus.PENDING.value,
            AppointmentStatus.SCHEDULED.value,
            AppointmentStatus.CONFIRMED.value,
        ):
            raise InvalidTransitionError(
                f"Cannot reschedule an appointment that is {appointment.status}"
            )

        barber_id, day = appointment.barber_id, appointment.appointment_date
        set_barber_id(barber_id)
        occupancy = appointment.total_duration or settings.slot_interval_minutes

        slots = await availability_service.compute_day_slots(
            db, barber_id, day, occupancy, exclude_appointment_id=appointment.id
        )
        if not slots.is_available(new_time):
            raise ConflictError(f"Slot {new_time.strftime('%H:%M')} is not available")

        async with partition_lock(db, barber_id, day):
            appointment = await get_appointment(db, appointment_id)
            conflicts = await check_appointment_conflicts(
                db, barber_id, day, new_time, occupancy, exclude_appointment_id=appointment.id
            )
            if conflicts:
                logger.warning(
                    f"Reschedule of {appointment.id} to {new_time} lost to appointment {conflicts[0].id}"
                )
                raise ConflictError(f"Slot {new_time.strftime('%H:%M')} was just taken")

            was_queued = appointment.is_queue and appointment.queue_position is not None
            if was_queued:
                before = {
                    e.id: e.queue_position
                    for e in await queue_service.get_waiting_queue(db, barber_id, day)
                }

            appointment.appointment_type = AppointmentType.SCHEDULED.value
            appointment.appointment_time = new_time
            appointment.queue_position = None
            appointment.queue_insertion_reason = QueueInsertionReason.RESCHEDULED.value
            await db.flush()

            if was_queued:
                await queue_service.renumber_queue(db, barber_id, day)

            await db.commit()

    async def _read_back() -> None:
        await db.refresh(appointment)
        if was_queued:
            await _notify_renumbered(db, barber_id, day, before, dispatcher, settings)

    await _after_commit(db, appointment, "reschedule_appointment", _read_back)

    logger.info(f"Appointment {appointment.id} rescheduled to {new_time} on {day}")

    await change_bus.publish(
        AppointmentChanged(
            appointment_id=appointment.id,
            barber_id=barber_id,
            appointment_date=day,
            status=appointment.status,
            change="rescheduled",
        )
    )
    await safe_dispatch(dispatcher, _scheduling_outcome(appointment))
    return appointment
