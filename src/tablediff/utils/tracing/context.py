"""
Span helpers used by the orchestrator, the chunk sweep and the query executors.

Attribute values are rendered as strings; ``None`` values are dropped so that
optional context (a window, a table) can be passed through unconditionally.
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from .tracer import get_tracer


def _span_attributes(attributes: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in attributes.items() if value is not None}


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run a block inside a new span.

    An exception leaving the block is recorded on the span (``error``,
    ``error.type``, ``error.message``) and re-raised.

    Example:
        >>> with trace_operation("db_query", side="source", operation="chunk_digest") as span:
        ...     row = cursor.fetchone()
    """
    with get_tracer().start_as_current_span(
        operation_name, kind=kind, attributes=_span_attributes(attributes)
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            raise


def add_span_attributes(**attributes) -> None:
    """Set attributes on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(_span_attributes(attributes))


def add_span_event(name: str, **attributes) -> None:
    """Record a point-in-time event (e.g. a chunk mismatch) on the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=_span_attributes(attributes))
