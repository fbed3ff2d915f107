"""Test fakes for toolmesh.

- FakeClient / FakeTool: scripted MCP client for connection tests
- FakeGateway: scripted LLM gateway for chat tests
"""

from .fake_client import FakeClient, FakeTool
from .fake_gateway import FakeGateway, reply, tool_call

__all__ = ["FakeClient", "FakeTool", "FakeGateway", "reply", "tool_call"]
