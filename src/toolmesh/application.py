"""toolmesh Application - wires all components together.

Initialization sequence:

1. Config loading
2. Logger setup
3. Telemetry setup
4. Server registry (connects to configured tool servers)
5. Session store
6. LLM gateway
7. Chat orchestrator and admin service
"""

import asyncio
import dataclasses
import os
import sys
from typing import Any, TextIO

from toolmesh.admin import AdminService
from toolmesh.chat import (
    ChatOrchestrator,
    ChatTurnResult,
    InMemorySessionStore,
    LLMGateway,
    OpenAICompatibleGateway,
    SessionStore,
)
from toolmesh.config import ConfigLoader, TelemetryConfig, ToolmeshConfig
from toolmesh.errors import ToolmeshError
from toolmesh.logging import LogConfig, ToolmeshLogger
from toolmesh.mcp import ServerRegistry
from toolmesh.mcp.registry import ConnectionFactory
from toolmesh.telemetry import setup_telemetry, shutdown_telemetry
from toolmesh.types import LogLevel


class ToolmeshApplication:
    """Builds one registry at startup and injects it into chat and admin."""

    def __init__(
        self,
        config_path: str | None = None,
        config: ToolmeshConfig | None = None,
        log_output: TextIO | None = None,
        gateway: LLMGateway | None = None,
        session_store: SessionStore | None = None,
        connection_factory: ConnectionFactory | None = None,
    ):
        """Initialize application.

        Args:
            config_path: Path to config file (ignored when ``config`` is given)
            config: Preloaded configuration
            log_output: Output stream for logs (default: sys.stderr)
            gateway: LLM gateway (default: OpenAICompatibleGateway from ``llm``)
            session_store: Session store (default: InMemorySessionStore)
            connection_factory: Optional override for building server connections
        """
        self._config_path = config_path
        self._log_output = log_output or sys.stderr
        self._gateway_override = gateway
        self._session_store_override = session_store
        self._connection_factory = connection_factory
        self._initialized = False
        self._retry_task: asyncio.Task[list[str]] | None = None

        # Components (initialized in initialize())
        self.config_loader: ConfigLoader | None = None
        self.config: ToolmeshConfig | None = config
        self.logger: ToolmeshLogger | None = None
        self.registry: ServerRegistry | None = None
        self.sessions: SessionStore | None = None
        self.gateway: LLMGateway | None = None
        self.orchestrator: ChatOrchestrator | None = None
        self.admin: AdminService | None = None
        self.startup_failures: dict[str, ToolmeshError] = {}

    @property
    def retry_task(self) -> "asyncio.Task[list[str]] | None":
        """Background retry of servers that failed at startup, if running."""
        return self._retry_task

    async def initialize(self) -> None:
        """Initialize all components and connect configured servers."""
        if self._initialized:
            return

        # 1. Config
        self.config_loader = ConfigLoader()
        if self.config is None:
            self.config = self.config_loader.load(self._config_path)
        config = self.config

        # 2. Logger
        log_config = LogConfig(
            level=config.logging.level,
            format=config.logging.format,
            show_params=config.logging.options.show_params,
            show_results=config.logging.options.show_results,
            truncate_at=config.logging.options.truncate_at,
            components=dataclasses.asdict(config.logging.components),
            output=self._log_output,
        )
        self.logger = ToolmeshLogger(log_config)

        # 3. Telemetry
        setup_telemetry(self._telemetry_config(config))

        # 4. Server Registry
        self.registry = ServerRegistry(
            settings=config.connection,
            logger=self.logger,
            connection_factory=self._connection_factory,
        )

        # 5. Sessions
        self.sessions = self._session_store_override or InMemorySessionStore()

        # 6. Gateway
        self.gateway = self._gateway_override or OpenAICompatibleGateway(
            config.llm, logger=self.logger
        )

        # 7. Orchestrator & Admin
        self.orchestrator = ChatOrchestrator(
            registry=self.registry,
            gateway=self.gateway,
            sessions=self.sessions,
            config=config.chat,
            logger=self.logger,
        )
        self.admin = AdminService(self.registry, logger=self.logger)

        self.startup_failures = await self.registry.connect_all(config.servers)
        if self.startup_failures and config.connection.catalog_retry.enabled:
            self._retry_task = asyncio.create_task(
                self.registry.retry_failed_servers(
                    config.servers, config.connection.catalog_retry
                )
            )

        self._initialized = True
        self.logger._log(LogLevel.INFO, "registry", "toolmesh initialized")

    def _telemetry_config(self, config: ToolmeshConfig) -> TelemetryConfig:
        telemetry = config.telemetry
        enabled = (
            os.environ.get("TOOLMESH_TELEMETRY_ENABLED", "").lower() == "true"
            or telemetry.enabled
        )
        otlp_endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
        otlp = telemetry.otlp
        if otlp_endpoint:
            otlp = dataclasses.replace(otlp, enabled=True, endpoint=otlp_endpoint)
        return dataclasses.replace(
            telemetry,
            enabled=enabled,
            service_name=os.environ.get("OTEL_SERVICE_NAME", telemetry.service_name),
            otlp=otlp,
        )

    async def chat(
        self, message: str, session_id: str | None = None, **kwargs: Any
    ) -> ChatTurnResult:
        """Process one chat turn.

        Args:
            message: User message
            session_id: Optional existing session
            **kwargs: Passed to ChatOrchestrator.process_turn

        Returns:
            ChatTurnResult
        """
        if not self._initialized or self.orchestrator is None:
            raise RuntimeError("Application not initialized. Call initialize() first.")
        return await self.orchestrator.process_turn(message, session_id=session_id, **kwargs)

    async def shutdown(self) -> None:
        """Stop background retry, close connections and the gateway."""
        if not self._initialized:
            return

        if self._retry_task is not None:
            self._retry_task.cancel()
            try:
                await self._retry_task
            except asyncio.CancelledError:
                pass
            self._retry_task = None

        if self.registry:
            await self.registry.close_all()

        if self._gateway_override is None and isinstance(self.gateway, OpenAICompatibleGateway):
            await self.gateway.aclose()

        shutdown_telemetry()
        self._initialized = False
