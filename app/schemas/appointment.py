"""Pydantic schemas for Appointment and booking requests."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models import AppointmentStatus, AppointmentType, PriorityLevel
from app.schemas.barber import AlternativeBarber


class AppointmentField(str, Enum):
    """Field keys every caller uses to build a booking request."""

    CUSTOMER_ID = "customer_id"
    BARBER_ID = "barber_id"
    SERVICE_ID = "service_id"
    SERVICES = "services"
    ADD_ONS = "add_ons"
    APPOINTMENT_DATE = "appointment_date"
    APPOINTMENT_TIME = "appointment_time"
    APPOINTMENT_TYPE = "appointment_type"
    PRIORITY_LEVEL = "priority_level"
    STATUS = "status"
    TOTAL_PRICE = "total_price"
    TOTAL_DURATION = "total_duration"
    NOTES = "notes"
    IS_URGENT = "is_urgent"
    BOOK_FOR_FRIEND = "book_for_friend"


REQUIRED_FIELDS = (
    AppointmentField.BARBER_ID,
    AppointmentField.SERVICE_ID,
    AppointmentField.APPOINTMENT_DATE,
)


# Booking party - tagged variant instead of a free-form JSON blob
class SingleBooking(BaseModel):
    """The customer books for themselves."""

    kind: Literal["single"] = "single"


class FriendBooking(BaseModel):
    """The customer books on behalf of someone else."""

    kind: Literal["friend"] = "friend"
    name: str = Field(..., min_length=1, max_length=255, description="Friend's name")
    phone: str = Field(..., min_length=5, max_length=50, description="Friend's phone")
    booked_by: UUID | None = Field(None, description="Customer who made the booking")


BookingParty = Annotated[SingleBooking | FriendBooking, Field(discriminator="kind")]


class BookingRequest(BaseModel):
    """Request accepted by the smart insertion engine.

    Unknown keys are ignored. ``status``, ``total_price`` and
    ``total_duration`` are accepted for contract compatibility but always
    derived by the engine.
    """

    model_config = ConfigDict(extra="ignore")

    customer_id: UUID | None = Field(None, description="Customer ID (null = anonymous walk-in)")
    barber_id: UUID = Field(..., description="Requested barber")
    service_id: UUID = Field(..., description="Primary service")
    services: list[UUID] = Field(default_factory=list, description="Additional service IDs")
    add_ons: list[UUID] = Field(default_factory=list, description="Add-on IDs")
    appointment_date: date = Field(..., description="Calendar day")
    appointment_time: time | None = Field(None, description="Desired start time, if any")
    appointment_type: AppointmentType | None = Field(
        None, description="'queue' asks explicitly for a walk-in queue place"
    )
    priority_level: PriorityLevel = PriorityLevel.NORMAL
    status: str | None = None
    total_price: Decimal | None = None
    total_duration: int | None = None
    notes: str | None = Field(None, max_length=2000)
    is_urgent: bool = False
    is_walk_in: bool = False
    booking: BookingParty = Field(default_factory=SingleBooking)

    @model_validator(mode="before")
    @classmethod
    def fold_friend_fields(cls, data: Any) -> Any:
        """Map the flat book-for-friend keys onto the tagged booking variant."""
        if not isinstance(data, dict) or "booking" in data:
            return data
        if data.get(AppointmentField.BOOK_FOR_FRIEND.value):
            data = dict(data)
            data["booking"] = {
                "kind": "friend",
                "name": data.get("friend_name") or "",
                "phone": data.get("friend_phone") or "",
                "booked_by": data.get("customer_id"),
            }
        return data

    @model_validator(mode="after")
    def apply_urgent_flag(self) -> "BookingRequest":
        """The urgent flag and the urgent priority always agree."""
        if self.is_urgent:
            self.priority_level = PriorityLevel.URGENT
        elif self.priority_level == PriorityLevel.URGENT:
            self.is_urgent = True
        return self

    @property
    def wants_walk_in(self) -> bool:
        """Caller asked for a queue place rather than a slot."""
        return self.is_walk_in or self.appointment_type == AppointmentType.QUEUE


class StatusChange(BaseModel):
    """Request to move an appointment through the status state machine."""

    status: AppointmentStatus
    reason: str | None = Field(None, description="Cancellation reason")


class RescheduleRequest(BaseModel):
    """Request to move an appointment to a new time on the same day."""

    appointment_time: time


class AppointmentResponse(BaseModel):
    """Schema for appointment responses."""

    id: UUID
    customer_id: UUID | None
    barber_id: UUID
    service_id: UUID
    additional_service_ids: list[UUID]
    add_on_ids: list[UUID]
    appointment_date: date
    appointment_time: time | None
    appointment_type: AppointmentType
    priority_level: PriorityLevel
    status: AppointmentStatus
    queue_position: int | None
    queue_insertion_reason: str | None
    total_duration: int
    total_price: Decimal
    notes: str | None
    is_walk_in: bool
    is_urgent: bool
    booking_kind: str
    friend_name: str | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OutcomeType(str, Enum):
    """What the scheduler did with a request."""

    SCHEDULED = "scheduled"
    QUEUED = "queued"
    ALTERNATIVE_SUGGESTED = "alternative_suggested"


class BookingOutcome(BaseModel):
    """Result of a successful smart insertion."""

    outcome_type: OutcomeType
    appointment: AppointmentResponse
    assigned_time: time | None = None
    queue_position: int | None = None
    estimated_wait_minutes: int | None = None
    estimated_wait_display: str | None = None


class SchedulingOutcome(BaseModel):
    """Payload handed to the notification dispatcher."""

    appointment_id: UUID | None
    barber_id: UUID
    appointment_date: date
    outcome_type: OutcomeType
    assigned_time: time | None = None
    queue_position: int | None = None
    estimated_wait_minutes: int | None = None
    alternatives: list[AlternativeBarber] = Field(default_factory=list)
