"""In-process change feed for appointments.

Components that cache anything derived from appointments subscribe here and
invalidate on every committed change. Events are published after commit.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentChanged:
    """A committed change to one appointment."""

    appointment_id: UUID
    barber_id: UUID
    appointment_date: date
    status: str
    change: str  # created, status_changed, rescheduled


Subscriber = Callable[[AppointmentChanged], Awaitable[None]]


class ChangeBus:
    """Fan out AppointmentChanged events to async subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def publish(self, event: AppointmentChanged) -> None:
        """Deliver to every subscriber. A failing subscriber does not stop the rest."""
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event)
            except Exception:
                logger.exception(
                    f"Change subscriber {subscriber!r} failed for appointment {event.appointment_id}"
                )


change_bus = ChangeBus()
