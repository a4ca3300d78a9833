"""Per-request trace context held in a ContextVar.

The context follows the request through every awaited call, so all
``@traced`` functions of one booking or status change share a
correlation_id. A context copied into a child task keeps appending to the
same pending list.
"""

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from app.models.function_trace import FunctionTrace


@dataclass
class TraceContext:
    """Correlation data for one request."""

    correlation_id: UUID
    barber_id: UUID | None = None
    customer_id: UUID | None = None
    next_sequence: int = 0
    pending: list["FunctionTrace"] = field(default_factory=list)


_context: ContextVar[TraceContext | None] = ContextVar("trace_context", default=None)


def start_trace_context(
    barber_id: UUID | None = None,
    customer_id: UUID | None = None,
) -> UUID:
    """Open a trace context for the current request and return its correlation_id.

    Args:
        barber_id: The barber the request is about, when already known
        customer_id: The customer making the request, when known
    """
    ctx = TraceContext(correlation_id=uuid4(), barber_id=barber_id, customer_id=customer_id)
    _context.set(ctx)
    return ctx.correlation_id


def get_correlation_id() -> UUID | None:
    """Correlation ID of the open context, None when tracing is off."""
    ctx = _context.get()
    return ctx.correlation_id if ctx else None


def get_barber_id() -> UUID | None:
    ctx = _context.get()
    return ctx.barber_id if ctx else None


def get_customer_id() -> UUID | None:
    ctx = _context.get()
    return ctx.customer_id if ctx else None


def set_barber_id(barber_id: UUID | None) -> None:
    """Record the barber once it is known mid-request (status changes look it up)."""
    ctx = _context.get()
    if ctx is not None:
        ctx.barber_id = barber_id


def get_next_sequence_number() -> int:
    ctx = _context.get()
    if ctx is None:
        return 0
    seq = ctx.next_sequence
    ctx.next_sequence += 1
    return seq


def add_pending_trace(trace: "FunctionTrace") -> None:
    ctx = _context.get()
    if ctx is not None:
        ctx.pending.append(trace)


def get_pending_traces() -> list["FunctionTrace"]:
    """Traces captured so far in this context."""
    ctx = _context.get()
    return list(ctx.pending) if ctx else []


async def save_pending_traces(db: "AsyncSession") -> int:
    """Add the captured traces to the session and flush them.

    The caller commits. Returns the number of traces written.
    """
    ctx = _context.get()
    if ctx is None or not ctx.pending:
        return 0

    traces, ctx.pending = ctx.pending, []
    db.add_all(traces)
    await db.flush()
    return len(traces)


def clear_trace_context() -> None:
    """Drop the context once its traces are saved."""
    _context.set(None)
