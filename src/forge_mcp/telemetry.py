"""Optional OpenTelemetry spans around installer runs and verification attempts."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger("forge_mcp.telemetry")

try:
    from opentelemetry import trace
except Exception:  # missing or broken install
    trace = None


def generate_request_id() -> str:
    """Correlation id for one installation run."""
    return str(uuid.uuid4())


def _start_span(name: str, attributes: dict[str, Any] | None) -> Any:
    if trace is None:
        return None
    try:
        return trace.get_tracer("forge_mcp").start_as_current_span(
            name, attributes=attributes or {}
        )
    except Exception as exc:
        logger.debug("Tracing disabled for span '%s': %s", name, exc)
        return None


@contextmanager
def trace_span(name: str, attributes: dict[str, Any] | None = None) -> Iterator[Any]:
    """Yield a current span named ``name``, or None when tracing is off.

    Exceptions raised in the body pass through the span, which records them.
    """
    span_context = _start_span(name, attributes)
    if span_context is None:
        yield None
        return
    with span_context as span:
        yield span


def set_span_attributes(span: Any, attributes: dict[str, Any]) -> None:
    if span is None:
        return
    for key, value in attributes.items():
        try:
            span.set_attribute(key, value)
        except Exception as exc:
            logger.debug("Failed to set span attribute %s: %s", key, exc)
