import uuid
from typing import Any
from unittest.mock import MagicMock

import pytest

from forge_mcp import telemetry
from forge_mcp.telemetry import generate_request_id, set_span_attributes, trace_span


@pytest.fixture
def tracer(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake_trace = MagicMock()
    monkeypatch.setattr(telemetry, "trace", fake_trace)
    return fake_trace.get_tracer.return_value


def test_request_ids_are_distinct_uuid4() -> None:
    first, second = generate_request_id(), generate_request_id()
    assert uuid.UUID(first).version == 4
    assert first != second


def test_no_otel_yields_none(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(telemetry, "trace", None)
    with trace_span("install/run", {"forge_mcp.client": "kiro"}) as span:
        assert span is None


def test_span_is_current_inside_body(tracer: MagicMock) -> None:
    span_context = tracer.start_as_current_span.return_value

    with trace_span("install/run", {"forge_mcp.client": "cursor"}) as span:
        assert span is span_context.__enter__.return_value

    tracer.start_as_current_span.assert_called_once_with(
        "install/run", attributes={"forge_mcp.client": "cursor"}
    )
    span_context.__exit__.assert_called_once_with(None, None, None)


def test_body_errors_reach_the_span_and_propagate(tracer: MagicMock) -> None:
    span_context = tracer.start_as_current_span.return_value
    span_context.__exit__.return_value = False

    with pytest.raises(ValueError, match="bad"), trace_span("verify/1"):
        raise ValueError("bad")

    exc_type, exc, _tb = span_context.__exit__.call_args.args
    assert exc_type is ValueError
    assert str(exc) == "bad"


def test_broken_tracer_disables_span(tracer: MagicMock) -> None:
    tracer.start_as_current_span.side_effect = RuntimeError("exporter misconfigured")

    with trace_span("install/orchestrate") as span:
        assert span is None


@pytest.mark.parametrize("span", [None, MagicMock()])
def test_set_span_attributes(span: Any) -> None:
    set_span_attributes(span, {"forge_mcp.client": "kiro", "forge_mcp.final_state": "verified"})
    if span is not None:
        span.set_attribute.assert_any_call("forge_mcp.client", "kiro")


def test_set_span_attributes_tolerates_exporter_errors() -> None:
    span = MagicMock()
    span.set_attribute.side_effect = RuntimeError("exporter down")

    set_span_attributes(span, {"a": 1, "b": 2})

    assert span.set_attribute.call_count == 2
