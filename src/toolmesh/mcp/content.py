"""Normalization of raw tool server results into content blocks."""

import json
from typing import Any

from .types import ContentBlock, EmbeddedResource, ImageContent, TextContent


def _dump(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", exclude_none=True)
    return value


def normalize_block(item: Any) -> ContentBlock:
    """Convert one MCP content item (model, dict or str) to a content block."""
    if isinstance(item, str):
        return TextContent(text=item)

    data = item if isinstance(item, dict) else _dump(item)
    if not isinstance(data, dict):
        return TextContent(text=str(item))

    block_type = data.get("type")
    if block_type == "text":
        return TextContent(text=str(data.get("text", "")))
    if block_type == "image":
        mime_type = data.get("mimeType") or data.get("mime_type") or "application/octet-stream"
        return ImageContent(data=str(data.get("data", "")), mime_type=str(mime_type))
    if block_type == "resource":
        resource = data.get("resource")
        return EmbeddedResource(resource=resource if isinstance(resource, dict) else {})

    # audio, resource links and anything newer are passed to the model as JSON
    return TextContent(text=json.dumps(data, default=str))


def normalize_content(raw: Any) -> list[ContentBlock]:
    """Normalize a call-tool result into content blocks.

    Accepts an object with a ``content`` list (mcp CallToolResult), a plain
    list of items, a dict, or a bare string.
    """
    if raw is None:
        return []

    if hasattr(raw, "content") and isinstance(raw.content, list):
        return [normalize_block(item) for item in raw.content]

    if isinstance(raw, list):
        return [normalize_block(item) for item in raw]

    if isinstance(raw, dict):
        if isinstance(raw.get("content"), list):
            return [normalize_block(item) for item in raw["content"]]
        return [TextContent(text=json.dumps(raw, default=str))]

    if isinstance(raw, str):
        return [TextContent(text=raw)]

    return [TextContent(text=str(raw))]


def is_error_result(raw: Any) -> bool:
    """Whether the server flagged the result as a tool-level error."""
    if isinstance(raw, dict):
        return bool(raw.get("isError") or raw.get("is_error"))
    return bool(getattr(raw, "isError", False) or getattr(raw, "is_error", False))


def blocks_to_text(blocks: list[ContentBlock]) -> str:
    """Concatenate the text blocks of a result."""
    return "\n".join(block.text for block in blocks if isinstance(block, TextContent))
