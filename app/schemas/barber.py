"""Pydantic schemas for Barber."""

from datetime import time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BarberResponse(BaseModel):
    """Schema for barber responses."""

    id: UUID
    name: str
    role: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class BarberWithLoad(BarberResponse):
    """Barber plus the number of active appointments on a given day."""

    current_load: int = Field(0, description="Active appointments on the requested date")


class AlternativeBarber(BaseModel):
    """A barber with room on the requested day, ranked by soonest slot."""

    barber_id: UUID
    barber_name: str
    next_available_time: time
    available_slot_count: int
    current_load: int = 0
