"""BarberDayOff model - dates on which a barber takes no bookings."""

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.barber import Barber


class BarberDayOff(Base, UUIDMixin, TimestampMixin):
    """An inclusive date range a barber is away."""

    __tablename__ = "barber_day_offs"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="check_day_off_range"),
    )

    barber_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    barber: Mapped["Barber"] = relationship("Barber", back_populates="days_off")

    def covers(self, day: date) -> bool:
        """Whether this day off applies to the given date."""
        return self.is_active and self.start_date <= day <= self.end_date

    def __repr__(self) -> str:
        """String representation."""
        return f"<BarberDayOff(barber_id={self.barber_id}, {self.start_date}..{self.end_date})>"
