"""SQLAlchemy models for the barbershop scheduler."""

from app.models.appointment import (
    OCCUPYING_STATUSES,
    TERMINAL_STATUSES,
    WAITING_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    BookingKind,
    PriorityLevel,
    QueueInsertionReason,
)
from app.models.barber import Barber
from app.models.barber_day_off import BarberDayOff
from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.catalog import AddOn, Service
from app.models.function_trace import FunctionTrace, FunctionTraceType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Models
    "Appointment",
    "Barber",
    "BarberDayOff",
    "Service",
    "AddOn",
    "FunctionTrace",
    # Enums
    "AppointmentStatus",
    "AppointmentType",
    "PriorityLevel",
    "QueueInsertionReason",
    "BookingKind",
    "FunctionTraceType",
    # Status groups
    "OCCUPYING_STATUSES",
    "WAITING_STATUSES",
    "TERMINAL_STATUSES",
]
