"""Tool server types for toolmesh."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from toolmesh.types import ConnectionState, ErrorKind

from .naming import qualify

if TYPE_CHECKING:
    from .connection import ToolServerConnection


@dataclass
class ToolDescriptor:
    """Tool advertised by a tool server."""

    name: str
    description: str
    input_schema: dict[str, Any]
    server_id: str

    @property
    def qualified_name(self) -> str:
        """Dispatch key across all servers."""
        return qualify(self.server_id, self.name)


@dataclass
class TextContent:
    """Text content block."""

    text: str
    type: str = field(default="text", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ImageContent:
    """Base64 image content block."""

    data: str
    mime_type: str
    type: str = field(default="image", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data, "mimeType": self.mime_type}


@dataclass
class EmbeddedResource:
    """Embedded resource content block."""

    resource: dict[str, Any]
    type: str = field(default="resource", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "resource": self.resource}


ContentBlock = TextContent | ImageContent | EmbeddedResource


@dataclass
class ToolCallError:
    """Classified tool call failure."""

    kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass
class ToolCallResult:
    """Outcome of a tool invocation.

    Exactly one of ``content`` (ok) or ``error`` is meaningful; ``error``
    being set marks the failure variant.
    """

    tool_name: str
    server_id: str
    arguments: dict[str, Any]
    duration_ms: int
    content: list[ContentBlock] = field(default_factory=list)
    error: ToolCallError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def qualified_name(self) -> str:
        return qualify(self.server_id, self.tool_name)

    @classmethod
    def success(
        cls,
        tool_name: str,
        server_id: str,
        arguments: dict[str, Any],
        content: list[ContentBlock],
        duration_ms: int = 0,
    ) -> "ToolCallResult":
        return cls(
            tool_name=tool_name,
            server_id=server_id,
            arguments=arguments,
            duration_ms=duration_ms,
            content=content,
        )

    @classmethod
    def failure(
        cls,
        tool_name: str,
        server_id: str,
        arguments: dict[str, Any],
        kind: ErrorKind,
        message: str,
        duration_ms: int = 0,
    ) -> "ToolCallResult":
        return cls(
            tool_name=tool_name,
            server_id=server_id,
            arguments=arguments,
            duration_ms=duration_ms,
            error=ToolCallError(kind=kind, message=message or kind.value),
        )

    def to_dict(self) -> dict[str, Any]:
        """Tagged wire form: ``{"ok": [...]}`` or ``{"error": {...}}``."""
        if self.error is not None:
            return {"error": self.error.to_dict()}
        return {"ok": [block.to_dict() for block in self.content]}


@dataclass
class ServerStatus:
    """Status of a tool server registration.

    Used for monitoring and diagnostics.
    """

    id: str
    endpoint: str
    state: ConnectionState
    description: str | None = None
    tool_count: int = 0
    last_error: str | None = None
    last_connected: str | None = None


@dataclass(frozen=True)
class CatalogEntry:
    """Aggregate catalog value: owning connection plus descriptor."""

    connection: "ToolServerConnection"
    descriptor: ToolDescriptor


@dataclass
class ServerInfo:
    """Registered server summary."""

    id: str
    endpoint: str
    description: str | None
    tool_count: int
