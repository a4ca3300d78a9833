"""FunctionTrace model - one recorded call of a @traced function.

All traces of a booking or status change share a correlation_id, so a
disputed placement can be replayed decision by decision.
"""

import uuid
from enum import Enum

from sqlalchemy import Boolean, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class FunctionTraceType(str, Enum):
    """Where the traced call sits."""

    SERVICE = "service"
    API = "api"
    EXTERNAL_API = "external_api"


class FunctionTrace(Base, UUIDMixin, TimestampMixin):
    """Inputs, output, timing and error of one traced call."""

    __tablename__ = "function_traces"
    __table_args__ = (
        Index("ix_func_trace_corr_seq", "correlation_id", "sequence_number"),
        Index("ix_func_trace_created", "created_at"),
        Index("ix_func_trace_barber", "barber_id"),
        Index("ix_func_trace_error", "is_error"),
    )

    # Ordering within the request
    correlation_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Call
    function_name: Mapped[str] = mapped_column(String(255), nullable=False)
    module_path: Mapped[str] = mapped_column(String(255), nullable=False)
    trace_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=FunctionTraceType.SERVICE.value
    )
    input_summary: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    output_summary: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    # Who the request was about
    barber_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    customer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    # Failure
    is_error: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<FunctionTrace(function='{self.function_name}', corr={self.correlation_id}, "
            f"seq={self.sequence_number}, {self.duration_ms}ms, error={self.is_error})>"
        )
