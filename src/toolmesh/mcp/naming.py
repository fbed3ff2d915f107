"""Qualified tool names: ``<server_id>__<tool_name>``."""

SEPARATOR = "__"


def qualify(server_id: str, tool_name: str) -> str:
    """Build the qualified dispatch key for a server's tool."""
    return f"{server_id}{SEPARATOR}{tool_name}"


def split_qualified_name(qualified_name: str) -> tuple[str, str] | None:
    """Split a qualified name into (server_id, tool_name).

    Exactly two non-empty segments are required.

    Args:
        qualified_name: Name of the form ``server__tool``

    Returns:
        (server_id, tool_name), or None if the name is malformed
    """
    parts = qualified_name.split(SEPARATOR)
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


def is_valid_segment(segment: str) -> bool:
    """Whether a server id or tool name can appear in a qualified name.

    Segments must not contain the separator and must not start or end with
    ``_``, otherwise ``qualify`` output would not split back into the same
    two parts.
    """
    return (
        bool(segment)
        and SEPARATOR not in segment
        and not segment.startswith("_")
        and not segment.endswith("_")
    )
