"""toolmesh metrics schema - OpenTelemetry conventions.

Metrics:
- toolmesh_tool_invocations_total: tool calls by qualified name, server and status
- toolmesh_tool_invocation_duration_seconds: tool call latency
- toolmesh_chat_turns_total: chat turns by status
- toolmesh_chat_tool_rounds: tool rounds per turn
- toolmesh_llm_completions_total: LLM gateway completions by model and status
- toolmesh_registered_tools: tools in the aggregate catalog
"""

from opentelemetry import metrics
from opentelemetry.metrics import Counter, Histogram, UpDownCounter

METRIC_PREFIX = "toolmesh"


class MetricLabels:
    """Standard metric labels/attributes."""

    TOOL_NAME = "tool_name"
    TOOL_SERVER = "tool_server"
    MODEL = "model"
    STATUS = "status"
    ERROR_CODE = "error_code"

    STATUS_SUCCESS = "success"
    STATUS_ERROR = "error"
    STATUS_TRUNCATED = "truncated"


class ToolmeshMetrics:
    """toolmesh metrics collection."""

    def __init__(self, meter: metrics.Meter):
        """Initialize metrics.

        Args:
            meter: OpenTelemetry Meter instance
        """
        self._meter = meter

        self.tool_invocations_total: Counter = meter.create_counter(
            name=f"{METRIC_PREFIX}_tool_invocations_total",
            description="Total number of tool invocations",
            unit="1",
        )
        self.tool_invocation_duration_seconds: Histogram = meter.create_histogram(
            name=f"{METRIC_PREFIX}_tool_invocation_duration_seconds",
            description="Tool invocation duration in seconds",
            unit="s",
        )
        self.chat_turns_total: Counter = meter.create_counter(
            name=f"{METRIC_PREFIX}_chat_turns_total",
            description="Total number of chat turns",
            unit="1",
        )
        self.chat_tool_rounds: Histogram = meter.create_histogram(
            name=f"{METRIC_PREFIX}_chat_tool_rounds",
            description="Tool rounds executed per chat turn",
            unit="1",
        )
        self.llm_completions_total: Counter = meter.create_counter(
            name=f"{METRIC_PREFIX}_llm_completions_total",
            description="Total number of LLM completions",
            unit="1",
        )
        self.registered_tools: UpDownCounter = meter.create_up_down_counter(
            name=f"{METRIC_PREFIX}_registered_tools",
            description="Number of tools in the aggregate catalog",
            unit="1",
        )

    def record_tool_invocation(
        self,
        tool_name: str,
        duration_seconds: float,
        status: str,
        server_id: str | None = None,
        error_code: str | None = None,
    ) -> None:
        """Record one tool invocation.

        Args:
            tool_name: Qualified tool name
            duration_seconds: Call duration
            status: success or error
            server_id: Owning server, if resolved
            error_code: Error kind when status is error
        """
        labels = {MetricLabels.TOOL_NAME: tool_name, MetricLabels.STATUS: status}
        if server_id:
            labels[MetricLabels.TOOL_SERVER] = server_id
        if error_code:
            labels[MetricLabels.ERROR_CODE] = error_code

        self.tool_invocations_total.add(1, labels)
        self.tool_invocation_duration_seconds.record(
            duration_seconds,
            {MetricLabels.TOOL_NAME: tool_name, MetricLabels.STATUS: status},
        )

    def record_chat_turn(self, status: str, rounds: int) -> None:
        """Record a finished chat turn."""
        self.chat_turns_total.add(1, {MetricLabels.STATUS: status})
        self.chat_tool_rounds.record(rounds, {MetricLabels.STATUS: status})

    def record_completion(self, model: str, status: str) -> None:
        """Record an LLM completion."""
        self.llm_completions_total.add(1, {MetricLabels.MODEL: model, MetricLabels.STATUS: status})

    def update_registered_tools(self, delta: int) -> None:
        """Adjust the catalog size gauge."""
        if delta:
            self.registered_tools.add(delta)
