"""Appointment model - a slot-bound or queue-bound booking with one barber."""

import uuid
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.barber import Barber


class AppointmentStatus(str, Enum):
    """Appointment status enum."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    ONGOING = "ongoing"
    DONE = "done"
    CANCELLED = "cancelled"


class AppointmentType(str, Enum):
    """Slot-bound (`scheduled`) or position-bound (`queue`)."""

    SCHEDULED = "scheduled"
    QUEUE = "queue"


class PriorityLevel(str, Enum):
    """Priority enum, lowest to highest."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class QueueInsertionReason(str, Enum):
    """Why an appointment landed where it did."""

    WALK_IN = "walk_in"
    SCHEDULED_TO_QUEUE = "scheduled_to_queue"
    RESCHEDULED = "rescheduled"
    URGENT = "urgent"
    DIRECT_BOOKING = "direct_booking"


class BookingKind(str, Enum):
    """Whether the customer booked for themselves or for a friend."""

    SINGLE = "single"
    FRIEND = "friend"


# Statuses whose fixed-time interval blocks the barber's grid
OCCUPYING_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.SCHEDULED.value,
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.ONGOING.value,
)

# Statuses of queue entries still waiting to be served
WAITING_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.SCHEDULED.value,
    AppointmentStatus.CONFIRMED.value,
)

TERMINAL_STATUSES = (
    AppointmentStatus.DONE.value,
    AppointmentStatus.CANCELLED.value,
)


class Appointment(Base, UUIDMixin, TimestampMixin):
    """A booking for one barber on one calendar day."""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(
            "(appointment_type = 'scheduled' AND appointment_time IS NOT NULL) "
            "OR (appointment_type = 'queue' AND appointment_time IS NULL)",
            name="check_appointment_time_matches_type",
        ),
        CheckConstraint("total_duration >= 0", name="check_appointment_duration"),
        Index("ix_appointment_barber_date", "barber_id", "appointment_date"),
    )

    # Parties
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True  # null = anonymous walk-in
    )
    barber_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False
    )

    # Service selection. Catalog ids are not foreign keys: a retired or unknown
    # service is priced and timed as zero and the booking still stands.
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    additional_service_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    add_on_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Timing
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    total_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    priority_level: Mapped[str] = mapped_column(
        String(10), nullable=False, default=PriorityLevel.NORMAL.value
    )

    # Classification and state
    appointment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value
    )
    queue_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    queue_insertion_reason: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Money, frozen at booking time
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Auxiliary
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_walk_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Book-for-friend payload
    booking_kind: Mapped[str] = mapped_column(
        String(10), nullable=False, default=BookingKind.SINGLE.value
    )
    friend_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    friend_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    booked_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    # Relationships
    barber: Mapped["Barber"] = relationship("Barber", back_populates="appointments")

    @property
    def is_queue(self) -> bool:
        """Queue-bound appointment."""
        return self.appointment_type == AppointmentType.QUEUE.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Appointment(id={self.id}, type='{self.appointment_type}', "
            f"status='{self.status}', date={self.appointment_date}, "
            f"time={self.appointment_time}, position={self.queue_position})>"
        )
