"""toolmesh configuration data models."""

from dataclasses import dataclass, field

from toolmesh.types import BackoffType, LogFormat, LogLevel, RetryConfig


@dataclass
class ServerDefinition:
    """Tool server connected at startup."""

    name: str
    url: str
    description: str | None = None


@dataclass
class CatalogRetryConfig(RetryConfig):
    """Background retry of servers that failed their initial catalog fetch."""

    enabled: bool = True
    max_attempts: int = 5
    backoff: BackoffType = BackoffType.EXPONENTIAL
    delay_seconds: float = 30.0
    max_delay_seconds: float = 300.0


@dataclass
class ConnectionConfig:
    """Per-connection timeouts and retry policies."""

    connection_timeout_ms: int = 30_000
    call_timeout_ms: int = 30_000
    close_timeout_seconds: float = 5.0
    tool_retry: RetryConfig = field(default_factory=RetryConfig)
    catalog_retry: CatalogRetryConfig = field(default_factory=CatalogRetryConfig)


@dataclass
class ChatConfig:
    """Chat orchestration configuration."""

    default_model: str = "openai/gpt-4o-mini"
    temperature: float | None = None
    max_tool_rounds: int = 5
    system_prompt: str | None = None
    tool_choice: str = "auto"
    persist_tool_messages: bool = True


@dataclass
class LLMConfig:
    """OpenAI-compatible LLM gateway configuration."""

    base_url: str = "https://openrouter.ai/api/v1"
    api_key: str | None = None
    timeout_seconds: float = 60.0
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class LoggingComponentsConfig:
    """Logging components configuration."""

    connection: bool = True
    registry: bool = True
    chat: bool = True
    tool: bool = True
    gateway: bool = True


@dataclass
class LoggingOptionsConfig:
    """Logging options configuration."""

    show_params: bool = True
    show_results: bool = True
    truncate_at: int = 200


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    components: LoggingComponentsConfig = field(default_factory=LoggingComponentsConfig)
    options: LoggingOptionsConfig = field(default_factory=LoggingOptionsConfig)


@dataclass
class TelemetryOTLPConfig:
    """Telemetry OTLP exporter configuration.

    Attributes:
        enabled: Whether OTLP export is enabled
        endpoint: OTLP collector endpoint (e.g., http://otel-collector:4317)
        insecure: Whether to use insecure connection (no TLS)
        headers: Additional headers for authentication
    """

    enabled: bool = False
    endpoint: str = "http://localhost:4317"
    insecure: bool = True
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class TelemetryConfig:
    """Telemetry configuration."""

    enabled: bool = False
    service_name: str = "toolmesh"
    service_version: str = "0.1.0"
    tracing_enabled: bool = True
    metrics_enabled: bool = True
    otlp: TelemetryOTLPConfig = field(default_factory=TelemetryOTLPConfig)


@dataclass
class ToolmeshConfig:
    """Root configuration object."""

    servers: list[ServerDefinition] = field(default_factory=list)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
