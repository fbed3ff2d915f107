"""Administrative operations over the server registry."""

from typing import Any

from toolmesh.errors import ToolmeshError, error_from_exception
from toolmesh.logging.logger import ToolmeshLogger
from toolmesh.mcp.registry import ServerRegistry
from toolmesh.mcp.types import ToolDescriptor
from toolmesh.types import LogLevel

from .models import (
    AddServerResponse,
    ErrorResponse,
    ServerSummary,
    ToolCallResponse,
    ToolSummary,
)


def _tool_summary(descriptor: ToolDescriptor) -> ToolSummary:
    return ToolSummary(
        name=descriptor.name,
        description=descriptor.description,
        full_name=descriptor.qualified_name,
        input_schema=descriptor.input_schema,
    )


class AdminService:
    """Register, remove, inspect and directly call tool servers.

    Failures come back as ``ErrorResponse`` objects instead of exceptions.
    """

    def __init__(self, registry: ServerRegistry, logger: ToolmeshLogger | None = None):
        self.registry = registry
        self._logger = logger

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger:
            self._logger._log(level, "registry", message)

    async def add_server(
        self, name: str, url: str, description: str | None = None
    ) -> AddServerResponse | ErrorResponse:
        """Register a server and report the tools it contributed.

        Args:
            name: Server id
            url: Server endpoint
            description: Optional description

        Returns:
            AddServerResponse, or ErrorResponse (duplicate, connection failure, ...)
        """
        try:
            descriptors = await self.registry.add_server(name, url, description)
        except Exception as e:
            error = error_from_exception(e, server_id=name)
            self._log(LogLevel.WARN, f"Registration of '{name}' failed: {error}")
            return ErrorResponse.from_error(error)

        return AddServerResponse(
            server=name,
            url=url,
            description=description,
            tools=[_tool_summary(d) for d in descriptors],
        )

    async def remove_server(self, server_id: str) -> bool:
        return await self.registry.remove_server(server_id)

    def list_servers(self) -> list[ServerSummary]:
        return [
            ServerSummary(id=s.id, tool_count=s.tool_count, description=s.description)
            for s in self.registry.list_servers()
        ]

    def list_tools(self, server_id: str | None = None) -> list[ToolSummary]:
        """List catalog entries, optionally for one server only."""
        if server_id is not None:
            descriptors = self.registry.list_server_tools(server_id)
        else:
            descriptors = self.registry.list_all_tools()
        return [_tool_summary(d) for d in descriptors]

    async def call_tool(
        self, qualified_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolCallResponse | ErrorResponse:
        """Call a tool directly (for testing/debugging).

        Args:
            qualified_name: ``server__tool``
            arguments: Tool arguments

        Returns:
            ToolCallResponse (ok or tool-level failure), or ErrorResponse for
            malformed names and unknown servers
        """
        try:
            result = await self.registry.dispatch(qualified_name, arguments or {})
        except ToolmeshError as e:
            return ErrorResponse.from_error(e)

        return ToolCallResponse(
            tool_name=qualified_name,
            duration_ms=result.duration_ms,
            ok=result.ok,
            content=[block.to_dict() for block in result.content],
            error=result.error.to_dict() if result.error else None,
        )
