"""Pydantic schemas for the walk-in queue view."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel

from app.models import PriorityLevel


class QueueEntry(BaseModel):
    """One appointment in a barber's queue with its wait estimate."""

    appointment_id: UUID
    customer_id: UUID | None
    queue_position: int
    priority_level: PriorityLevel
    total_duration: int
    estimated_wait_minutes: int
    estimated_wait_display: str


class QueueSnapshot(BaseModel):
    """The barber's queue for one day: who is being served and who waits."""

    barber_id: UUID
    appointment_date: date
    current: QueueEntry | None = None
    waiting: list[QueueEntry]
