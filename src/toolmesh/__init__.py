"""toolmesh - MCP tool server aggregation with tool-augmented chat.

Connects to many MCP tool servers, merges their tools into one catalog
addressed as ``server__tool``, and drives chat turns in which an LLM
calls those tools.
"""

from toolmesh.application import ToolmeshApplication

__version__ = "0.1.0"
__all__ = ["__version__", "ToolmeshApplication"]
