"""toolmesh tool servers - connections, registry and dispatch."""

from .connection import ToolServerConnection
from .content import normalize_content
from .naming import SEPARATOR, qualify, split_qualified_name
from .pipeline import call_with_retry, with_timeout
from .registry import ServerRegistry
from .types import (
    CatalogEntry,
    ContentBlock,
    EmbeddedResource,
    ImageContent,
    ServerInfo,
    ServerStatus,
    TextContent,
    ToolCallError,
    ToolCallResult,
    ToolDescriptor,
)

__all__ = [
    # Connection
    "ToolServerConnection",
    # Registry
    "ServerRegistry",
    # Pipeline
    "with_timeout",
    "call_with_retry",
    # Naming
    "SEPARATOR",
    "qualify",
    "split_qualified_name",
    # Types
    "ToolDescriptor",
    "ToolCallResult",
    "ToolCallError",
    "ContentBlock",
    "TextContent",
    "ImageContent",
    "EmbeddedResource",
    "ServerInfo",
    "ServerStatus",
    "CatalogEntry",
    "normalize_content",
]
