"""Conversions between the tool catalog, tool results and model-facing text."""

import copy
import json
from typing import Any

from toolmesh.mcp.types import (
    EmbeddedResource,
    ImageContent,
    TextContent,
    ToolCallResult,
    ToolDescriptor,
)


def to_parameters_schema(input_schema: dict[str, Any] | None) -> dict[str, Any]:
    """Copy a tool's input schema, defaulting it to an empty object schema."""
    parameters = copy.deepcopy(input_schema) if input_schema else {}
    parameters.setdefault("type", "object")
    if parameters["type"] == "object" and "properties" not in parameters:
        parameters["properties"] = {}
    return parameters


def to_function_tool(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Map one catalog entry to the chat-completions function tool shape."""
    return {
        "type": "function",
        "function": {
            "name": descriptor.qualified_name,
            "description": descriptor.description,
            "parameters": to_parameters_schema(descriptor.input_schema),
        },
    }


def to_function_tools(descriptors: list[ToolDescriptor]) -> list[dict[str, Any]]:
    return [to_function_tool(d) for d in descriptors]


def render_result(result: ToolCallResult) -> str:
    """Render a tool result as the content of a tool message.

    Errors are rendered as ``{"error": {"kind": ..., "message": ...}}`` so the
    model sees a structured failure instead of the turn aborting.
    """
    if result.error is not None:
        return json.dumps({"error": result.error.to_dict()})

    parts: list[str] = []
    for block in result.content:
        if isinstance(block, TextContent):
            parts.append(block.text)
        elif isinstance(block, ImageContent):
            parts.append(f"[image: {block.mime_type}, {len(block.data)} base64 chars]")
        elif isinstance(block, EmbeddedResource):
            parts.append(json.dumps(block.resource, default=str))
    return "\n".join(parts)
