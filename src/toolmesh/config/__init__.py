"""toolmesh configuration - Config loading and models."""

from .loader import (
    ConfigLoader,
    get_config_loader,
    load_config,
    resolve_env_vars,
)
from .models import (
    CatalogRetryConfig,
    ChatConfig,
    ConnectionConfig,
    LLMConfig,
    LoggingComponentsConfig,
    LoggingConfig,
    LoggingOptionsConfig,
    ServerDefinition,
    TelemetryConfig,
    TelemetryOTLPConfig,
    ToolmeshConfig,
)

__all__ = [
    # Config models
    "ToolmeshConfig",
    "ServerDefinition",
    "ConnectionConfig",
    "CatalogRetryConfig",
    "ChatConfig",
    "LLMConfig",
    "LoggingConfig",
    "LoggingComponentsConfig",
    "LoggingOptionsConfig",
    "TelemetryConfig",
    "TelemetryOTLPConfig",
    # Loader
    "ConfigLoader",
    "get_config_loader",
    "load_config",
    "resolve_env_vars",
]
