"""The @traced decorator.

Usage:
    @traced
    async def smart_insert(db, request):
        ...

    @traced(capture_args=["barber_id", "day"])
    async def compute_day_slots(db, barber_id, day, duration):
        ...

    @traced(trace_type="api")
    async def book_appointment(db, payload):
        ...

Calls made outside a trace context run untouched.
"""

import asyncio
import functools
import time
from typing import Any, Callable, ParamSpec, TypeVar

from app.models.function_trace import FunctionTrace, FunctionTraceType
from app.services.tracing.context import (
    add_pending_trace,
    get_barber_id,
    get_correlation_id,
    get_customer_id,
    get_next_sequence_number,
)
from app.services.tracing.sanitize import build_input_summary, build_output_summary

P = ParamSpec('P')
T = TypeVar('T')

MAX_ERROR_MESSAGE = 500


class _CallRecorder:
    """Collects one call's inputs, timing and result into a FunctionTrace."""

    def __init__(self, fn: Callable, trace_type: str, capture_args: list[str] | None,
                 args: tuple, kwargs: dict) -> None:
        self.fn = fn
        self.trace_type = trace_type
        self.correlation_id = get_correlation_id()
        self.sequence_number = get_next_sequence_number()
        self.input_summary = build_input_summary(fn, args, kwargs, capture_args)
        self.output_summary: dict = {}
        self.error: Exception | None = None
        self.started = time.perf_counter()

    def finish(self) -> None:
        add_pending_trace(
            FunctionTrace(
                correlation_id=self.correlation_id,
                sequence_number=self.sequence_number,
                function_name=self.fn.__name__,
                module_path=self.fn.__module__,
                trace_type=self.trace_type,
                input_summary=self.input_summary,
                output_summary=self.output_summary,
                duration_ms=int((time.perf_counter() - self.started) * 1000),
                barber_id=get_barber_id(),
                customer_id=get_customer_id(),
                is_error=self.error is not None,
                error_type=type(self.error).__name__ if self.error else None,
                error_message=str(self.error)[:MAX_ERROR_MESSAGE] if self.error else None,
            )
        )


def traced(
    func: Callable[P, T] | None = None,
    *,
    trace_type: str = FunctionTraceType.SERVICE.value,
    capture_args: list[str] | None = None,
) -> Callable[P, T] | Callable[[Callable[P, T]], Callable[P, T]]:
    """Record calls of the decorated function in the current trace context.

    Works bare (``@traced``) or with options (``@traced(capture_args=[...])``).

    Args:
        func: The function, when used without parentheses
        trace_type: "service", "api" or "external_api"
        capture_args: Argument names to record (None = all)
    """

    def decorator(fn: Callable[P, T]) -> Callable[P, T]:
        if asyncio.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                if get_correlation_id() is None:
                    return await fn(*args, **kwargs)

                call = _CallRecorder(fn, trace_type, capture_args, args, kwargs)
                try:
                    result = await fn(*args, **kwargs)
                    call.output_summary = build_output_summary(result)
                    return result
                except Exception as e:
                    call.error = e
                    raise
                finally:
                    call.finish()

            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            if get_correlation_id() is None:
                return fn(*args, **kwargs)

            call = _CallRecorder(fn, trace_type, capture_args, args, kwargs)
            try:
                result = fn(*args, **kwargs)
                call.output_summary = build_output_summary(result)
                return result
            except Exception as e:
                call.error = e
                raise
            finally:
                call.finish()

        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator
