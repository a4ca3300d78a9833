"""Function call tracing for scheduling decisions.

A request opens a trace context, every ``@traced`` call inside it becomes a
FunctionTrace row, and the request saves them at the end:

    correlation_id = start_trace_context(customer_id=customer_id)
    try:
        outcome = await smart_insert(db, payload)
    finally:
        await save_pending_traces(db)
        await db.commit()
        clear_trace_context()
"""

from app.services.tracing.context import (
    TraceContext,
    clear_trace_context,
    get_barber_id,
    get_correlation_id,
    get_customer_id,
    get_pending_traces,
    save_pending_traces,
    set_barber_id,
    start_trace_context,
)
from app.services.tracing.decorator import traced

__all__ = [
    "traced",
    "TraceContext",
    "start_trace_context",
    "clear_trace_context",
    "get_correlation_id",
    "get_barber_id",
    "get_customer_id",
    "set_barber_id",
    "get_pending_traces",
    "save_pending_traces",
]
