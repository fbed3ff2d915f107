"""toolmesh telemetry instrumentation helpers.

Provides async context managers for:
- Tool invocations (registry dispatch)
- LLM completions
- Chat turns

Each yields a result dictionary the caller updates; spans and metrics are
recorded on exit. All helpers are no-ops when telemetry is not set up.
"""

import time
from contextlib import asynccontextmanager
from typing import Any

from opentelemetry.trace import Status, StatusCode

from .metrics import MetricLabels
from .setup import get_metrics, get_tracer


def _finish_span(span: Any, result: dict[str, Any]) -> None:
    if span is None:
        return
    if result["status"] == MetricLabels.STATUS_ERROR:
        span.set_status(Status(StatusCode.ERROR, result.get("error_code") or "error"))
    else:
        span.set_status(Status(StatusCode.OK))
    span.end()


def _fail(result: dict[str, Any], span: Any, error: Exception) -> None:
    result["status"] = MetricLabels.STATUS_ERROR
    result["error_code"] = getattr(error, "code", None) or type(error).__name__
    if span is not None:
        span.record_exception(error)


@asynccontextmanager
async def instrument_tool_call(tool_name: str, server_id: str | None = None):
    """Context manager for instrumenting tool invocations.

    Args:
        tool_name: Qualified tool name
        server_id: Owning server, when known

    Yields:
        Dictionary to store execution status
    """
    tracer = get_tracer()
    metrics = get_metrics()
    start_time = time.time()
    result: dict[str, Any] = {"status": MetricLabels.STATUS_SUCCESS, "error_code": None}

    span = None
    if tracer:
        span = tracer.start_span(f"tool:{tool_name}")
        span.set_attribute("tool.name", tool_name)
        if server_id:
            span.set_attribute("tool.server", server_id)

    try:
        yield result
    except Exception as e:
        _fail(result, span, e)
        raise
    finally:
        if metrics:
            metrics.record_tool_invocation(
                tool_name=tool_name,
                duration_seconds=time.time() - start_time,
                status=result["status"],
                server_id=server_id,
                error_code=result.get("error_code"),
            )
        _finish_span(span, result)


@asynccontextmanager
async def instrument_completion(model: str):
    """Context manager for instrumenting LLM gateway completions.

    Args:
        model: Model identifier sent to the gateway

    Yields:
        Dictionary to store completion status
    """
    tracer = get_tracer()
    metrics = get_metrics()
    result: dict[str, Any] = {"status": MetricLabels.STATUS_SUCCESS, "error_code": None}

    span = None
    if tracer:
        span = tracer.start_span("llm:complete")
        span.set_attribute("llm.model", model)

    try:
        yield result
    except Exception as e:
        _fail(result, span, e)
        raise
    finally:
        if metrics:
            metrics.record_completion(model=model, status=result["status"])
        _finish_span(span, result)


@asynccontextmanager
async def instrument_chat_turn(session_id: str):
    """Context manager for instrumenting a chat turn.

    The caller sets ``rounds`` and may set ``status`` to truncated.

    Args:
        session_id: Session the turn belongs to

    Yields:
        Dictionary to store turn status and round count
    """
    tracer = get_tracer()
    metrics = get_metrics()
    result: dict[str, Any] = {
        "status": MetricLabels.STATUS_SUCCESS,
        "error_code": None,
        "rounds": 0,
    }

    span = None
    if tracer:
        span = tracer.start_span("chat:turn")
        span.set_attribute("chat.session_id", session_id)

    try:
        yield result
    except Exception as e:
        _fail(result, span, e)
        raise
    finally:
        if metrics:
            metrics.record_chat_turn(status=result["status"], rounds=result["rounds"])
        if span is not None:
            span.set_attribute("chat.rounds", result["rounds"])
        _finish_span(span, result)


def record_tool_result(
    result: dict[str, Any], success: bool, error_code: str | None = None
) -> None:
    """Update result dictionary with execution status.

    Args:
        result: Result dictionary from context manager
        success: Whether execution succeeded
        error_code: Error code if failed
    """
    if success:
        result["status"] = MetricLabels.STATUS_SUCCESS
    else:
        result["status"] = MetricLabels.STATUS_ERROR
        result["error_code"] = error_code
