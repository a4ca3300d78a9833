"""Barber service - read access to barbers and their daily load."""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import OCCUPYING_STATUSES, Appointment, Barber
from app.schemas.barber import BarberWithLoad


async def get_barber(db: AsyncSession, barber_id: UUID) -> Barber | None:
    """Get barber by ID."""
    result = await db.execute(select(Barber).where(Barber.id == barber_id))
    return result.scalar_one_or_none()


async def list_barbers(db: AsyncSession, active_only: bool = True) -> list[Barber]:
    """List barbers ordered by name."""
    query = select(Barber)
    if active_only:
        query = query.where(Barber.is_active.is_(True))
    result = await db.execute(query.order_by(Barber.name))
    return list(result.scalars().all())


async def get_load_by_barber(db: AsyncSession, day: date) -> dict[UUID, int]:
    """Active appointment count per barber on a day."""
    result = await db.execute(
        select(Appointment.barber_id, func.count(Appointment.id))
        .where(
            Appointment.appointment_date == day,
            Appointment.status.in_(OCCUPYING_STATUSES),
        )
        .group_by(Appointment.barber_id)
    )
    return {barber_id: count for barber_id, count in result.all()}


async def list_barbers_with_load(db: AsyncSession, day: date) -> list[BarberWithLoad]:
    """Active barbers with their load for the day."""
    barbers = await list_barbers(db)
    load = await get_load_by_barber(db, day)
    return [
        BarberWithLoad(
            id=b.id, name=b.name, role=b.role, is_active=b.is_active, current_load=load.get(b.id, 0)
        )
        for b in barbers
    ]
