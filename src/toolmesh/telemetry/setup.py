"""toolmesh telemetry setup - OpenTelemetry initialization.

Configures the OpenTelemetry SDK with:
- MeterProvider (with any readers passed in, e.g. InMemoryMetricReader in tests)
- TracerProvider with optional OTLP span exporter
"""

from collections.abc import Sequence
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from toolmesh.config.models import TelemetryConfig, TelemetryOTLPConfig

from .metrics import ToolmeshMetrics

# Global telemetry state
_telemetry: dict[str, Any] | None = None


def _create_otlp_span_exporter(otlp_config: TelemetryOTLPConfig):
    """Create OTLP span exporter (requires the ``otlp`` extra)."""
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(
        endpoint=otlp_config.endpoint,
        insecure=otlp_config.insecure,
        headers=otlp_config.headers or None,
    )


def setup_telemetry(
    config: TelemetryConfig | None = None,
    metric_readers: Sequence[MetricReader] = (),
) -> dict[str, Any]:
    """Set up OpenTelemetry instrumentation.

    Providers are not installed as the OpenTelemetry globals.

    Args:
        config: Telemetry configuration (uses defaults if None)
        metric_readers: Extra metric readers attached to the MeterProvider

    Returns:
        Dictionary with meter, tracer and metrics instances
    """
    global _telemetry

    if _telemetry is not None:
        return _telemetry

    config = config or TelemetryConfig()

    if not config.enabled:
        _telemetry = {"meter": None, "tracer": None, "metrics": None, "config": config}
        return _telemetry

    resource = Resource.create(
        {
            SERVICE_NAME: config.service_name,
            SERVICE_VERSION: config.service_version,
        }
    )

    meter = None
    toolmesh_metrics = None
    meter_provider = None
    if config.metrics_enabled:
        meter_provider = MeterProvider(metric_readers=list(metric_readers), resource=resource)
        meter = meter_provider.get_meter(config.service_name, config.service_version)
        toolmesh_metrics = ToolmeshMetrics(meter)

    tracer = None
    tracer_provider = None
    if config.tracing_enabled:
        tracer_provider = TracerProvider(resource=resource)
        if config.otlp.enabled:
            span_exporter = _create_otlp_span_exporter(config.otlp)
            tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
        tracer = tracer_provider.get_tracer(config.service_name, config.service_version)

    _telemetry = {
        "meter": meter,
        "tracer": tracer,
        "metrics": toolmesh_metrics,
        "config": config,
        "meter_provider": meter_provider,
        "tracer_provider": tracer_provider,
    }
    return _telemetry


def get_telemetry() -> dict[str, Any] | None:
    """Get the current telemetry instance, or None if not initialized."""
    return _telemetry


def get_tracer() -> trace.Tracer | None:
    """Tracer from the current telemetry state."""
    return _telemetry["tracer"] if _telemetry else None


def get_metrics() -> ToolmeshMetrics | None:
    """Metrics from the current telemetry state."""
    return _telemetry["metrics"] if _telemetry else None


def shutdown_telemetry() -> None:
    """Flush and shut down providers, then reset state."""
    global _telemetry
    if _telemetry:
        for key in ("tracer_provider", "meter_provider"):
            provider = _telemetry.get(key)
            if provider is not None:
                provider.shutdown()
    _telemetry = None


def reset_telemetry() -> None:
    """Reset telemetry state (for testing)."""
    global _telemetry
    _telemetry = None
