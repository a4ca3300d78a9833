"""Pydantic schemas for slot availability."""

from datetime import time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SlotTag(str, Enum):
    """State of one grid slot for a requested duration."""

    AVAILABLE = "available"
    SCHEDULED = "scheduled"
    QUEUE = "queue"
    LUNCH = "lunch"
    FULL = "full"


class SlotDescriptor(BaseModel):
    """One entry of a barber's day.

    Grid entries carry a ``start_time``. ``queue`` entries have no time and carry
    the waiting position instead.
    """

    model_config = ConfigDict(frozen=True)

    tag: SlotTag
    start_time: time | None = None
    appointment_id: UUID | None = None
    queue_position: int | None = None

    @property
    def is_available(self) -> bool:
        """Bookable for the requested duration."""
        return self.tag == SlotTag.AVAILABLE
