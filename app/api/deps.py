"""Dependency injection for API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import Appointment, Barber
from app.services import barber as barber_service
from app.services import scheduling as scheduling_service
from app.services.notifications import NotificationDispatcher, get_default_dispatcher

__all__ = [
    "get_db",
    "AsyncSession",
    "get_notification_dispatcher",
    "get_barber_dependency",
    "get_appointment_dependency",
]


def get_notification_dispatcher() -> NotificationDispatcher:
    """Dispatcher for scheduling outcomes. Overridden in tests."""
    return get_default_dispatcher()


# Barber lookup dependency
async def get_barber_dependency(
    barber_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Barber:
    """Get barber by ID or raise 404."""
    barber = await barber_service.get_barber(db, barber_id)
    if not barber:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Barber {barber_id} not found",
        )
    return barber


async def get_appointment_dependency(
    appointment_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Appointment:
    """Get appointment by ID or raise 404."""
    appointment = await scheduling_service.get_appointment(db, appointment_id)
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Appointment {appointment_id} not found",
        )
    return appointment
