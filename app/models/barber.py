"""Barber model - the staff member appointments are booked with."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.appointment import Appointment
    from app.models.barber_day_off import BarberDayOff


class Barber(Base, UUIDMixin, TimestampMixin):
    """A barber. Read-only to the scheduler."""

    __tablename__ = "barbers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="barber")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment", back_populates="barber"
    )
    days_off: Mapped[list["BarberDayOff"]] = relationship(
        "BarberDayOff", back_populates="barber"
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Barber(id={self.id}, name='{self.name}', is_active={self.is_active})>"
