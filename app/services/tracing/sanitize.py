"""Summaries of traced inputs and outputs.

Trace rows store JSON, so every value is reduced to something JSON-safe:
scalars pass through, dates and ids become strings, long strings and
collections are cut short, and sensitive keys are masked. ORM rows are
summarized by id and scheduling state only; lazy attributes are never touched.
"""

import dataclasses
import inspect
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Any, Callable
from uuid import UUID

MAX_STRING_LENGTH = 200
MAX_COLLECTION_ITEMS = 10
MAX_DEPTH = 3

# Substrings of keys whose values are masked
SENSITIVE_FIELDS = ('password', 'token', 'secret', 'key', 'auth', 'credential', 'phone')

# Arguments that are never worth recording
SKIPPED_ARGS = frozenset({'self', 'cls', 'db', 'dispatcher', 'settings'})

# Columns copied into the summary of an ORM row besides its id
MODEL_SUMMARY_ATTRS = ('status', 'appointment_type', 'appointment_time', 'queue_position')

REDACTED = "[REDACTED]"


def is_sensitive_field(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELDS)


def _truncate(text: str) -> str:
    if len(text) <= MAX_STRING_LENGTH:
        return text
    return f"{text[:MAX_STRING_LENGTH]}... ({len(text)} chars)"


def _mapping(items: list[tuple[str, Any]], depth: int, type_name: str | None = None) -> dict:
    result: dict[str, Any] = {"_type": type_name} if type_name else {}
    for key, value in items[:MAX_COLLECTION_ITEMS]:
        result[key] = sanitize_value(value, field_name=key, depth=depth + 1)
    if len(items) > MAX_COLLECTION_ITEMS:
        result["_truncated"] = True
        result["_total"] = len(items)
    return result


def _model_row(value: Any) -> dict:
    state = vars(value)
    result = {"_type": type(value).__name__}
    if state.get('id') is not None:
        result["id"] = str(state['id'])
    for attr in MODEL_SUMMARY_ATTRS:
        if attr in state:
            result[attr] = sanitize_value(state[attr])
    return result


def sanitize_value(value: Any, field_name: str = "", depth: int = 0) -> Any:
    """JSON-safe rendering of one value."""
    if field_name and is_sensitive_field(field_name):
        return REDACTED
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if depth > MAX_DEPTH:
        return f"<{type(value).__name__}>"

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return _truncate(value)
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return f"<bytes: {len(value)} bytes>"

    if isinstance(value, dict):
        return _mapping([(str(k), v) for k, v in value.items()], depth)

    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        rendered = [sanitize_value(v, depth=depth + 1) for v in items[:MAX_COLLECTION_ITEMS]]
        if len(items) > MAX_COLLECTION_ITEMS:
            return {
                "_type": type(value).__name__,
                "_truncated": True,
                "_total": len(items),
                "items": rendered,
            }
        return rendered

    # Pydantic models
    if hasattr(value, 'model_dump'):
        return _mapping(list(value.model_dump().items()), depth, type(value).__name__)

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]
        return _mapping(fields, depth, type(value).__name__)

    # SQLAlchemy rows
    if hasattr(value, '__tablename__'):
        return _model_row(value)

    return f"<{type(value).__name__}>"


def build_input_summary(
    func: Callable,
    args: tuple,
    kwargs: dict,
    capture_args: list[str] | None = None,
) -> dict:
    """Map argument names to sanitized values.

    Args:
        func: The traced function
        args: Positional arguments of the call
        kwargs: Keyword arguments of the call
        capture_args: Only record these argument names (None = all)
    """
    try:
        names = list(inspect.signature(func).parameters)
    except (ValueError, TypeError):
        names = []

    bound = [
        (names[i] if i < len(names) else f"arg_{i}", arg) for i, arg in enumerate(args)
    ]
    bound.extend(kwargs.items())

    return {
        name: sanitize_value(value, field_name=name)
        for name, value in bound
        if name not in SKIPPED_ARGS and (capture_args is None or name in capture_args)
    }


def build_output_summary(result: Any) -> dict:
    """Sanitized return value, always shaped as a dict."""
    sanitized = sanitize_value(result)
    if isinstance(sanitized, dict):
        return sanitized
    if isinstance(sanitized, list):
        return {"_items": sanitized}
    return {"_value": sanitized}
