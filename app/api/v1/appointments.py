"""Appointment API endpoints."""

import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_appointment_dependency, get_db, get_notification_dispatcher
from app.models import Appointment, AppointmentStatus
from app.schemas.appointment import (
    AppointmentResponse,
    BookingOutcome,
    RescheduleRequest,
    StatusChange,
)
from app.services import scheduling as scheduling_service
from app.services.notifications import NotificationDispatcher
from app.services.tracing import clear_trace_context, save_pending_traces, start_trace_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


async def _flush_traces(db: AsyncSession) -> None:
    """Persist the request's traces, whatever the booking outcome."""
    try:
        if await save_pending_traces(db):
            await db.commit()
    except Exception:
        logger.exception("Failed to save function traces")
        await db.rollback()
    finally:
        clear_trace_context()


@router.get(
    "",
    response_model=list[AppointmentResponse],
    summary="List appointments",
)
async def list_appointments(
    db: Annotated[AsyncSession, Depends(get_db)],
    barber_id: Annotated[UUID | None, Query(description="Filter by barber ID")] = None,
    appointment_date: Annotated[date | None, Query(description="Filter by day")] = None,
    appointment_status: Annotated[
        AppointmentStatus | None, Query(alias="status", description="Filter by status")
    ] = None,
) -> list[Appointment]:
    """List appointments with optional filters."""
    return await scheduling_service.list_appointments(
        db,
        barber_id=barber_id,
        appointment_date=appointment_date,
        status=appointment_status,
    )


@router.post(
    "",
    response_model=BookingOutcome,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def book_appointment(
    db: Annotated[AsyncSession, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
    payload: Annotated[dict, Body(description="Booking request using the appointment field keys")],
) -> BookingOutcome:
    """Place a booking: a slot when one fits, otherwise the walk-in queue.

    Saturated barbers answer 409 with ranked alternative barbers.
    """
    start_trace_context(customer_id=_maybe_uuid(payload.get("customer_id")))
    try:
        return await scheduling_service.smart_insert(db, payload, dispatcher=dispatcher)
    finally:
        await _flush_traces(db)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment: Annotated[Appointment, Depends(get_appointment_dependency)],
) -> Appointment:
    """Get appointment details."""
    return appointment


@router.post(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Change appointment status",
)
async def change_status(
    appointment_id: UUID,
    change: StatusChange,
    db: Annotated[AsyncSession, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> Appointment:
    """Move an appointment through pending, scheduled, confirmed, ongoing, done or cancelled."""
    start_trace_context()
    try:
        return await scheduling_service.transition_status(
            db, appointment_id, change.status, change.reason, dispatcher=dispatcher
        )
    finally:
        await _flush_traces(db)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    reschedule: RescheduleRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> Appointment:
    """Move an appointment to another time on the same day."""
    start_trace_context()
    try:
        return await scheduling_service.reschedule_appointment(
            db, appointment_id, reschedule.appointment_time, dispatcher=dispatcher
        )
    finally:
        await _flush_traces(db)


def _maybe_uuid(value: object) -> UUID | None:
    try:
        return UUID(str(value)) if value else None
    except ValueError:
        return None
