"""Server registry - owns all tool server connections and the aggregate catalog."""

import asyncio
from collections.abc import Callable
from typing import Any

from toolmesh.config.models import CatalogRetryConfig, ConnectionConfig, ServerDefinition
from toolmesh.errors import ToolmeshError, create_error, error_from_exception
from toolmesh.logging.logger import ToolmeshLogger
from toolmesh.telemetry import get_metrics, instrument_tool_call, record_tool_result
from toolmesh.types import ConnectionState, ErrorKind, LogLevel

from .connection import ToolServerConnection
from .naming import SEPARATOR, is_valid_segment, split_qualified_name
from .types import CatalogEntry, ServerInfo, ServerStatus, ToolCallResult, ToolDescriptor

# Builds a connection from (server_id, endpoint, description)
ConnectionFactory = Callable[[str, str, str | None], ToolServerConnection]


class ServerRegistry:
    """Single source of truth for server connections and the flattened catalog.

    Mutations (add, remove, close_all) are serialized by one lock and
    replace the dicts wholesale; reads and dispatch never lock.
    """

    def __init__(
        self,
        settings: ConnectionConfig | None = None,
        logger: ToolmeshLogger | None = None,
        connection_factory: ConnectionFactory | None = None,
    ):
        """Initialize server registry.

        Args:
            settings: Connection settings handed to every new connection
            logger: Optional logger
            connection_factory: Builds connections; defaults to ToolServerConnection
        """
        self._settings = settings or ConnectionConfig()
        self._logger = logger
        self._connection_factory = connection_factory or self._default_connection
        self._connections: dict[str, ToolServerConnection] = {}
        self._catalog: dict[str, CatalogEntry] = {}
        self._reserved: set[str] = set()
        # Bumped by close_all; registrations started under an older value are discarded
        self._generation = 0
        self._pending: dict[str, ServerStatus] = {}
        self._lock = asyncio.Lock()

    def _log(self, level: LogLevel, message: str) -> None:
        """Log message if logger available."""
        if self._logger:
            self._logger._log(level, "registry", message)

    def _default_connection(
        self, server_id: str, endpoint: str, description: str | None
    ) -> ToolServerConnection:
        return ToolServerConnection(
            server_id=server_id,
            endpoint=endpoint,
            description=description,
            settings=self._settings,
            logger=self._logger,
        )

    async def add_server(
        self,
        server_id: str,
        endpoint: str,
        description: str | None = None,
    ) -> list[ToolDescriptor]:
        """Register a server and merge its tools into the catalog.

        All-or-nothing: if initialize fails nothing is registered.

        Args:
            server_id: Unique server identifier
            endpoint: Server URL
            description: Optional description

        Returns:
            Tool descriptors merged into the catalog

        Raises:
            ToolmeshError(INVALID_ARGS): Id that is not a valid qualified-name segment
            ToolmeshError(DUPLICATE_SERVER): Id already registered or registering
            ToolmeshError(CONNECTION): close_all ran while the server was initializing
            ToolmeshError: Classified initialize failure
        """
        if not is_valid_segment(server_id):
            raise create_error(
                "INVALID_ARGS",
                tool_name="add_server",
                detail=(
                    f"server id '{server_id}' must be non-empty, must not contain "
                    f"'{SEPARATOR}' and must not start or end with '_'"
                ),
            )

        async with self._lock:
            if server_id in self._connections or server_id in self._reserved:
                raise create_error("DUPLICATE_SERVER", server_id=server_id)
            self._reserved.add(server_id)
            generation = self._generation

        try:
            connection = self._connection_factory(server_id, endpoint, description)
            # Initialize outside the lock; the reservation blocks duplicates
            descriptors = await connection.initialize()

            async with self._lock:
                if generation != self._generation:
                    await connection.close()
                    raise create_error(
                        "CONNECTION",
                        server_id=server_id,
                        detail="Registry was closed while the server was registering",
                    )
                merged = self._merge(connection, descriptors)
                self._connections = {**self._connections, server_id: connection}
                self._pending = {k: v for k, v in self._pending.items() if k != server_id}
        finally:
            self._reserved.discard(server_id)

        metrics = get_metrics()
        if metrics:
            metrics.update_registered_tools(len(merged))

        self._log(LogLevel.INFO, f"Server '{server_id}' registered ({len(merged)} tools)")
        return merged

    def _merge(
        self, connection: ToolServerConnection, descriptors: list[ToolDescriptor]
    ) -> list[ToolDescriptor]:
        catalog = dict(self._catalog)
        merged: list[ToolDescriptor] = []
        for descriptor in descriptors:
            if not is_valid_segment(descriptor.name):
                self._log(
                    LogLevel.WARN,
                    f"Skipping tool '{descriptor.name}' from '{connection.server_id}': "
                    f"name must not contain '{SEPARATOR}' or start or end with '_'",
                )
                continue
            catalog[descriptor.qualified_name] = CatalogEntry(connection, descriptor)
            merged.append(descriptor)
        self._catalog = catalog
        return merged

    async def remove_server(self, server_id: str) -> bool:
        """Purge a server's catalog entries and close its connection.

        Args:
            server_id: Server identifier

        Returns:
            False if the server is unknown, True otherwise
        """
        async with self._lock:
            connection = self._connections.get(server_id)
            if connection is None:
                return False

            removed = sum(1 for e in self._catalog.values() if e.descriptor.server_id == server_id)
            self._catalog = {
                key: entry
                for key, entry in self._catalog.items()
                if entry.descriptor.server_id != server_id
            }
            self._connections = {k: v for k, v in self._connections.items() if k != server_id}
            self._pending = {k: v for k, v in self._pending.items() if k != server_id}

            await connection.close()

        metrics = get_metrics()
        if metrics:
            metrics.update_registered_tools(-removed)

        self._log(LogLevel.INFO, f"Server '{server_id}' removed ({removed} tools purged)")
        return True

    def has_server(self, server_id: str) -> bool:
        return server_id in self._connections

    def list_servers(self) -> list[ServerInfo]:
        """Registered servers with their catalog sizes."""
        catalog = self._catalog
        servers = []
        for server_id, connection in self._connections.items():
            tool_count = sum(1 for e in catalog.values() if e.descriptor.server_id == server_id)
            servers.append(
                ServerInfo(
                    id=server_id,
                    endpoint=connection.endpoint,
                    description=connection.description,
                    tool_count=tool_count,
                )
            )
        return servers

    def list_server_tools(self, server_id: str) -> list[ToolDescriptor]:
        """Catalog entries of one server (empty if unknown)."""
        return [e.descriptor for e in self._catalog.values() if e.descriptor.server_id == server_id]

    def list_all_tools(self) -> list[ToolDescriptor]:
        """Every tool in the aggregate catalog."""
        return [entry.descriptor for entry in self._catalog.values()]

    def get_tool(self, qualified_name: str) -> ToolDescriptor | None:
        entry = self._catalog.get(qualified_name)
        return entry.descriptor if entry else None

    async def dispatch(
        self, qualified_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolCallResult:
        """Route a qualified tool call to its server.

        Args:
            qualified_name: ``server__tool``
            arguments: Tool arguments

        Returns:
            ToolCallResult from the owning connection (tool-level failures,
            including unknown tools, are returned, not raised)

        Raises:
            ToolmeshError(MALFORMED_TOOL_NAME): Name does not split into two parts
            ToolmeshError(SERVER_NOT_FOUND): No server with that id
        """
        parts = split_qualified_name(qualified_name)
        if parts is None:
            raise create_error(
                "MALFORMED_TOOL_NAME", tool_name=qualified_name, separator=SEPARATOR
            )
        server_id, tool_name = parts

        entry = self._catalog.get(qualified_name)
        if entry is not None:
            server_id, tool_name = entry.descriptor.server_id, entry.descriptor.name
        connection = entry.connection if entry else self._connections.get(server_id)
        if connection is None:
            raise create_error("SERVER_NOT_FOUND", server_id=server_id, tool_name=tool_name)

        async with instrument_tool_call(qualified_name, server_id) as span_result:
            result = await connection.call(tool_name, arguments or {})
            record_tool_result(
                span_result, result.ok, result.error.kind.value if result.error else None
            )
        return result

    async def close_all(self) -> None:
        """Close every connection and clear the catalog.

        Registrations still initializing are closed when they finish instead
        of being merged.
        """
        async with self._lock:
            self._generation += 1
            connections = list(self._connections.values())
            removed = len(self._catalog)
            self._connections = {}
            self._catalog = {}
            self._pending = {}

            if connections:
                self._log(LogLevel.INFO, f"Closing {len(connections)} server connections")
                await asyncio.gather(*(c.close() for c in connections), return_exceptions=True)

        metrics = get_metrics()
        if metrics:
            metrics.update_registered_tools(-removed)

    def get_status(self) -> dict[str, ServerStatus]:
        """Status of registered servers plus startup failures awaiting retry."""
        status = {sid: conn.get_status() for sid, conn in self._connections.items()}
        for server_id, pending in self._pending.items():
            status.setdefault(server_id, pending)
        return status

    async def connect_all(self, definitions: list[ServerDefinition]) -> dict[str, ToolmeshError]:
        """Register configured servers concurrently.

        Failures are logged and recorded as Failed; they don't stop others.

        Args:
            definitions: Servers to register

        Returns:
            Dict of server name to the error that prevented registration
        """
        if not definitions:
            self._log(LogLevel.INFO, "No tool servers configured")
            return {}

        self._log(LogLevel.INFO, f"Connecting to {len(definitions)} tool servers")
        results = await asyncio.gather(
            *(self.add_server(d.name, d.url, d.description) for d in definitions),
            return_exceptions=True,
        )

        failures: dict[str, ToolmeshError] = {}
        for definition, result in zip(definitions, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                error = error_from_exception(result, server_id=definition.name)
                failures[definition.name] = error
                self._record_failure(definition, error)
                self._log(LogLevel.ERROR, f"Failed to connect to '{definition.name}': {error}")

        connected = len(definitions) - len(failures)
        self._log(LogLevel.INFO, f"Connected to {connected}/{len(definitions)} servers")
        return failures

    def _record_failure(self, definition: ServerDefinition, error: ToolmeshError) -> None:
        self._pending = {
            **self._pending,
            definition.name: ServerStatus(
                id=definition.name,
                endpoint=definition.url,
                state=ConnectionState.FAILED,
                description=definition.description,
                last_error=str(error),
            ),
        }

    async def retry_failed_servers(
        self,
        definitions: list[ServerDefinition],
        policy: CatalogRetryConfig,
    ) -> list[str]:
        """Retry servers that failed at startup until they connect or attempts run out.

        Intended to run as a background task.

        Args:
            definitions: Configured servers (only Failed ones are retried)
            policy: Attempt count and delay schedule

        Returns:
            Names of servers still failed when retrying stopped
        """
        for attempt in range(1, policy.max_attempts + 1):
            waiting = [d for d in definitions if d.name in self._pending]
            if not waiting:
                return []

            delay = policy.delay_for(attempt)
            self._log(
                LogLevel.INFO,
                f"Retrying {len(waiting)} failed servers in {delay}s "
                f"(attempt {attempt}/{policy.max_attempts})",
            )
            await asyncio.sleep(delay)

            for definition in waiting:
                if definition.name not in self._pending:
                    continue
                try:
                    await self.add_server(definition.name, definition.url, definition.description)
                except ToolmeshError as e:
                    if e.kind == ErrorKind.DUPLICATE_SERVER:
                        # Registered some other way meanwhile
                        self._pending = {
                            k: v for k, v in self._pending.items() if k != definition.name
                        }
                        continue
                    self._record_failure(definition, e)
                    self._log(LogLevel.WARN, f"Retry of '{definition.name}' failed: {e}")

        remaining = [d.name for d in definitions if d.name in self._pending]
        if remaining:
            self._log(LogLevel.ERROR, f"Giving up on servers: {', '.join(remaining)}")
        return remaining

