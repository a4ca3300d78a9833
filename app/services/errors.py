"""Scheduling error taxonomy.

Every failure the scheduler surfaces to a caller is one of these. Each class
carries a stable ``reason_code`` for the HTTP layer and the notification
payloads, and a ``retryable`` hint for clients.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.schemas.barber import AlternativeBarber


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    reason_code = "scheduling_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Missing or malformed request field. Raised before any store access."""

    reason_code = "validation_error"

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidTransitionError(ValidationError):
    """Status change not allowed by the appointment state machine."""

    reason_code = "invalid_transition"


class NotFoundError(SchedulingError):
    """Referenced appointment or barber does not exist."""

    reason_code = "not_found"


class ConflictError(SchedulingError):
    """Lost the occupancy re-check at write time. Re-fetch and retry once."""

    reason_code = "conflict"
    retryable = True


class SaturationError(SchedulingError):
    """No free slot and no queue capacity left for the barber."""

    reason_code = "saturation"

    def __init__(self, message: str, alternatives: list["AlternativeBarber"] | None = None):
        super().__init__(message)
        self.alternatives = alternatives or []


class StoreUnavailableError(SchedulingError):
    """Appointment store timed out or failed. Nothing was committed."""

    reason_code = "store_unavailable"
    retryable = True
