"""Barber API endpoints - listings, day slots, queue and alternatives."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_barber_dependency, get_db
from app.config import get_settings
from app.models import Barber
from app.schemas.availability import SlotDescriptor
from app.schemas.barber import AlternativeBarber, BarberWithLoad
from app.schemas.queue import QueueSnapshot
from app.services import availability as availability_service
from app.services import barber as barber_service
from app.services import queue as queue_service
from app.services.alternatives import find_alternative_barbers
from app.services.locking import store_guard

router = APIRouter(prefix="/barbers", tags=["barbers"])


@router.get(
    "",
    response_model=list[BarberWithLoad],
    summary="List barbers with their load",
)
async def list_barbers(
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date, Query(alias="date", description="Day to count active appointments on")],
) -> list[BarberWithLoad]:
    """Active barbers with the number of active appointments on the day."""
    async with store_guard(db, "list_barbers"):
        return await barber_service.list_barbers_with_load(db, day)


@router.get(
    "/alternatives",
    response_model=list[AlternativeBarber],
    summary="Suggest alternative barbers",
)
async def get_alternatives(
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date, Query(alias="date")],
    duration: Annotated[int, Query(gt=0, le=600, description="Required minutes")],
    exclude_barber_id: Annotated[UUID | None, Query()] = None,
) -> list[AlternativeBarber]:
    """Other barbers with a free slot on the day, soonest first."""
    async with store_guard(db, "find_alternative_barbers"):
        return await find_alternative_barbers(db, day, duration, exclude_barber_id=exclude_barber_id)


@router.get(
    "/{barber_id}/slots",
    response_model=list[SlotDescriptor],
    summary="Get a barber's day slots",
)
async def get_slots(
    barber: Annotated[Barber, Depends(get_barber_dependency)],
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date, Query(alias="date")],
    duration: Annotated[int | None, Query(gt=0, le=600, description="Required minutes")] = None,
    exclude_appointment_id: Annotated[
        UUID | None, Query(description="Appointment being edited; its own slot stays free")
    ] = None,
) -> list[SlotDescriptor]:
    """Slot grid for the day, tagged available, scheduled, queue, lunch or full."""
    duration = duration or get_settings().slot_interval_minutes
    async with store_guard(db, "compute_day_slots"):
        slots = await availability_service.compute_day_slots(
            db, barber.id, day, duration, exclude_appointment_id=exclude_appointment_id
        )
    return list(slots)


@router.get(
    "/{barber_id}/queue",
    response_model=QueueSnapshot,
    summary="Get a barber's queue",
)
async def get_queue(
    barber: Annotated[Barber, Depends(get_barber_dependency)],
    db: Annotated[AsyncSession, Depends(get_db)],
    day: Annotated[date, Query(alias="date")],
) -> QueueSnapshot:
    """Who is being served and who is waiting, with estimated waits."""
    async with store_guard(db, "get_queue_snapshot"):
        return await queue_service.get_queue_snapshot(
            db, barber.id, day, get_settings().average_service_minutes
        )
