"""Tool server connection - manages one remote tool server.

Uses the FastMCP client library for MCP protocol support.
"""

import asyncio
import time
from collections.abc import Callable
from contextlib import AsyncExitStack
from datetime import datetime
from typing import Any

from fastmcp.client import Client
from fastmcp.client.transports import ClientTransport, SSETransport, StreamableHttpTransport

from toolmesh.config.models import ConnectionConfig
from toolmesh.errors import ToolmeshError, classify_message, create_error, error_from_exception
from toolmesh.logging.logger import ToolmeshLogger
from toolmesh.types import ConnectionState, ErrorKind, LogLevel

from .content import blocks_to_text, is_error_result, normalize_content
from .pipeline import call_with_retry, with_timeout
from .types import ServerStatus, ToolCallResult, ToolDescriptor

# Builds an (unentered) async-context-manager client for an endpoint
ClientFactory = Callable[[str], Any]

# Kinds initialize() may surface; anything else is reported as UNKNOWN
_INIT_KINDS = {ErrorKind.TIMEOUT, ErrorKind.CONNECTION, ErrorKind.SERVER_ERROR}


class ToolServerConnection:
    """Single tool server connection.

    ``call()`` never raises: every outcome comes back as a
    ``ToolCallResult`` so one failing tool cannot abort a chat turn.
    """

    def __init__(
        self,
        server_id: str,
        endpoint: str,
        description: str | None = None,
        settings: ConnectionConfig | None = None,
        logger: ToolmeshLogger | None = None,
        client_factory: ClientFactory | None = None,
    ):
        """Initialize tool server connection.

        Args:
            server_id: Server identifier (first segment of qualified names)
            endpoint: Server URL
            description: Optional human description
            settings: Timeouts and retry policy
            logger: Optional logger
            client_factory: Builds the MCP client; defaults to a FastMCP Client
        """
        self.server_id = server_id
        self.endpoint = endpoint
        self.description = description
        self.settings = settings or ConnectionConfig()
        self._logger = logger
        self._client_factory = client_factory or self._default_client
        self._state = ConnectionState.DISCONNECTED
        self._tools: dict[str, ToolDescriptor] = {}
        self._last_connected: datetime | None = None
        self._last_error: str | None = None
        self._lock = asyncio.Lock()

        self._client: Any = None
        self._exit_stack: AsyncExitStack | None = None

    def _log(self, level: LogLevel, message: str) -> None:
        """Log message if logger available."""
        if self._logger:
            self._logger._log(level, f"connection.{self.server_id}", message)

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def get_status(self) -> ServerStatus:
        """Get detailed status."""
        return ServerStatus(
            id=self.server_id,
            endpoint=self.endpoint,
            state=self._state,
            description=self.description,
            tool_count=len(self._tools),
            last_error=self._last_error,
            last_connected=self._last_connected.isoformat() if self._last_connected else None,
        )

    def list_tools(self) -> list[ToolDescriptor]:
        """Cached catalog from the last successful initialize (no remote call)."""
        return list(self._tools.values())

    def get_tool(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    async def initialize(self) -> list[ToolDescriptor]:
        """Connect (if not already) and fetch the tool list.

        Both steps share the connection timeout. On any failure the
        connection is torn down and left Disconnected.

        Returns:
            The fetched tool descriptors

        Raises:
            ToolmeshError: TIMEOUT, CONNECTION, SERVER_ERROR or UNKNOWN
        """
        async with self._lock:
            if self._state != ConnectionState.READY:
                self._state = ConnectionState.CONNECTING
                self._log(LogLevel.INFO, f"Connecting to {self.endpoint}")

            try:
                await with_timeout(
                    self._initialize_once(),
                    self.settings.connection_timeout_ms,
                    label=f"initialize '{self.server_id}'",
                    server_id=self.server_id,
                )
            except Exception as e:
                error = self._classify_init_error(e)
                await self._teardown()
                self._tools = {}
                self._state = ConnectionState.DISCONNECTED
                self._last_error = str(error)
                self._log(LogLevel.ERROR, f"Initialize failed: {error}")
                raise error from e

            self._state = ConnectionState.READY
            self._last_connected = datetime.now()
            self._last_error = None
            self._log(LogLevel.INFO, f"Connected successfully ({len(self._tools)} tools)")
            return self.list_tools()

    async def _initialize_once(self) -> None:
        if self._client is None:
            client = self._client_factory(self.endpoint)
            exit_stack = AsyncExitStack()
            self._exit_stack = exit_stack
            await exit_stack.enter_async_context(client)
            self._client = client

        tools_result = await self._client.list_tools()

        tools: dict[str, ToolDescriptor] = {}
        for tool in tools_result:
            schema = getattr(tool, "inputSchema", None)
            tools[tool.name] = ToolDescriptor(
                name=tool.name,
                description=getattr(tool, "description", None) or "",
                input_schema=dict(schema) if schema else {},
                server_id=self.server_id,
            )
        self._tools = tools
        self._log(LogLevel.DEBUG, f"Fetched {len(tools)} tools")

    def _classify_init_error(self, error: BaseException) -> ToolmeshError:
        classified = error_from_exception(error, server_id=self.server_id)
        if classified.kind in _INIT_KINDS:
            return classified
        return create_error(
            "UNKNOWN",
            detail=str(classified),
            server_id=self.server_id,
        )

    def _default_client(self, endpoint: str) -> Client:
        return Client(
            transport=self._get_transport(endpoint),
            timeout=self.settings.call_timeout_ms / 1000,
            name=f"toolmesh-{self.server_id}",
        )

    @staticmethod
    def _get_transport(endpoint: str) -> ClientTransport:
        """Pick the FastMCP transport for an endpoint URL.

        ``.../sse`` endpoints use SSE; everything else is streamable HTTP
        at ``.../mcp``.
        """
        url = endpoint.rstrip("/")
        if url.endswith("/sse"):
            return SSETransport(url=url)
        if not url.endswith("/mcp"):
            url = url + "/mcp"
        return StreamableHttpTransport(url=url)

    async def call(
        self, tool_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolCallResult:
        """Call a tool on this server.

        Never raises. Failures come back with ``error`` set.

        Args:
            tool_name: Unqualified tool name
            arguments: Tool arguments

        Returns:
            ToolCallResult (ok content blocks or classified error)
        """
        arguments = arguments or {}
        start_time = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start_time) * 1000)

        client = self._client
        if self._state != ConnectionState.READY or client is None:
            return ToolCallResult.failure(
                tool_name,
                self.server_id,
                arguments,
                ErrorKind.CONNECTION,
                f"Server '{self.server_id}' is not connected",
            )

        if tool_name not in self._tools:
            return ToolCallResult.failure(
                tool_name,
                self.server_id,
                arguments,
                ErrorKind.TOOL_NOT_FOUND,
                f"Tool '{tool_name}' not found on server '{self.server_id}'",
            )

        try:
            raw = await call_with_retry(
                lambda: client.call_tool_mcp(tool_name, arguments),
                policy=self.settings.tool_retry,
                timeout_ms=self.settings.call_timeout_ms,
                label=f"call '{tool_name}'",
                server_id=self.server_id,
                tool_name=tool_name,
                logger=self._logger,
            )
        except ToolmeshError as e:
            self._log(LogLevel.WARN, f"Tool '{tool_name}' failed: {e}")
            return ToolCallResult.failure(
                tool_name, self.server_id, arguments, e.kind, str(e), elapsed()
            )

        blocks = normalize_content(raw)
        if is_error_result(raw):
            text = blocks_to_text(blocks) or f"Tool '{tool_name}' reported an error"
            kind = ErrorKind(classify_message(text, default=ErrorKind.SERVER_ERROR.value))
            return ToolCallResult.failure(
                tool_name, self.server_id, arguments, kind, text, elapsed()
            )

        return ToolCallResult.success(tool_name, self.server_id, arguments, blocks, elapsed())

    async def close(self) -> None:
        """Tear down the transport. Idempotent; errors are logged, not raised."""
        async with self._lock:
            if self._client is None and self._exit_stack is None:
                self._state = ConnectionState.DISCONNECTED
                return

            self._log(LogLevel.INFO, "Closing connection")
            await self._teardown()
            self._tools = {}
            self._state = ConnectionState.DISCONNECTED
            self._log(LogLevel.INFO, "Closed")

    async def _teardown(self) -> None:
        exit_stack = self._exit_stack
        self._exit_stack = None
        self._client = None
        if exit_stack is None:
            return

        timeout = self.settings.close_timeout_seconds
        try:
            await asyncio.wait_for(exit_stack.aclose(), timeout=timeout)
        except TimeoutError:
            self._log(LogLevel.WARN, f"Timeout ({timeout}s) during close, forcing close")
        except Exception as e:
            self._log(LogLevel.WARN, f"Error during close: {e}")
