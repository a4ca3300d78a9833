"""Outbound scheduling outcome notifications.

The engine hands every outcome to a ``NotificationDispatcher`` after the
write has committed. Delivery is fire-and-forget: a failing dispatcher is
logged and never changes the booking result.
"""

import logging
from typing import Protocol

from app.schemas.appointment import SchedulingOutcome

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Anything that can deliver a SchedulingOutcome."""

    async def dispatch(self, outcome: SchedulingOutcome) -> None: ...


class LoggingNotificationDispatcher:
    """Writes outcomes to the log. Default when notifications are disabled."""

    async def dispatch(self, outcome: SchedulingOutcome) -> None:
        logger.info(
            f"Scheduling outcome {outcome.outcome_type.value} for appointment "
            f"{outcome.appointment_id} (barber {outcome.barber_id}, {outcome.appointment_date}, "
            f"time={outcome.assigned_time}, position={outcome.queue_position})"
        )


class CeleryNotificationDispatcher:
    """Queues outcome delivery on the Celery worker."""

    async def dispatch(self, outcome: SchedulingOutcome) -> None:
        # Import here to keep Celery out of the request path until used
        from app.tasks.notifications import deliver_scheduling_outcome

        deliver_scheduling_outcome.delay(outcome.model_dump(mode="json"))


def get_default_dispatcher() -> NotificationDispatcher:
    """Dispatcher selected by the notifications_enabled setting."""
    from app.config import get_settings

    if get_settings().notifications_enabled:
        return CeleryNotificationDispatcher()
    return LoggingNotificationDispatcher()


async def safe_dispatch(dispatcher: NotificationDispatcher | None, outcome: SchedulingOutcome) -> None:
    """Dispatch and swallow delivery failures after logging them."""
    if dispatcher is None:
        return
    try:
        await dispatcher.dispatch(outcome)
    except Exception:
        logger.exception(
            f"Failed to dispatch {outcome.outcome_type.value} outcome "
            f"for appointment {outcome.appointment_id}"
        )
