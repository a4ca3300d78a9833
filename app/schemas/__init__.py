"""Pydantic schemas for the barbershop scheduler API."""

from app.schemas.appointment import (
    REQUIRED_FIELDS,
    AppointmentField,
    AppointmentResponse,
    BookingOutcome,
    BookingRequest,
    FriendBooking,
    OutcomeType,
    RescheduleRequest,
    SchedulingOutcome,
    SingleBooking,
    StatusChange,
)
from app.schemas.availability import SlotDescriptor, SlotTag
from app.schemas.barber import AlternativeBarber, BarberResponse, BarberWithLoad
from app.schemas.queue import QueueEntry, QueueSnapshot

__all__ = [
    # Booking
    "AppointmentField",
    "REQUIRED_FIELDS",
    "BookingRequest",
    "SingleBooking",
    "FriendBooking",
    "StatusChange",
    "RescheduleRequest",
    "AppointmentResponse",
    "OutcomeType",
    "BookingOutcome",
    "SchedulingOutcome",
    # Availability
    "SlotTag",
    "SlotDescriptor",
    # Barbers
    "BarberResponse",
    "BarberWithLoad",
    "AlternativeBarber",
    # Queue
    "QueueEntry",
    "QueueSnapshot",
]
