"""toolmesh telemetry - OpenTelemetry-based observability."""

from .instrumentation import (
    instrument_chat_turn,
    instrument_completion,
    instrument_tool_call,
    record_tool_result,
)
from .metrics import MetricLabels, ToolmeshMetrics
from .setup import (
    get_metrics,
    get_telemetry,
    get_tracer,
    reset_telemetry,
    setup_telemetry,
    shutdown_telemetry,
)

__all__ = [
    # Metrics
    "ToolmeshMetrics",
    "MetricLabels",
    # Setup
    "setup_telemetry",
    "get_telemetry",
    "get_tracer",
    "get_metrics",
    "shutdown_telemetry",
    "reset_telemetry",
    # Instrumentation
    "instrument_tool_call",
    "instrument_completion",
    "instrument_chat_turn",
    "record_tool_result",
]
