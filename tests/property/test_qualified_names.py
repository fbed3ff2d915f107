"""Property-based tests for qualified tool names and call ordering.

Tests qualify/split round trips, malformed-name rejection, config
validation of server names and routing of registered catalog keys.
"""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tests.mocks import FakeClient, FakeGateway, FakeTool, reply, tool_call
from toolmesh.chat import ChatOrchestrator, InMemorySessionStore
from toolmesh.config import ConfigLoader
from toolmesh.config.models import ConnectionConfig
from toolmesh.errors import ToolmeshError
from toolmesh.mcp import (
    SEPARATOR,
    ServerRegistry,
    ToolServerConnection,
    qualify,
    split_qualified_name,
)
from toolmesh.mcp.naming import is_valid_segment
from toolmesh.types import RetryConfig

# =============================================================================
# Strategies
# =============================================================================

segment = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="-_."),
    min_size=1,
    max_size=20,
).filter(is_valid_segment)

any_name = st.text(alphabet="ab_", max_size=12)


@pytest.mark.property
class TestQualifiedNameProperties:
    """Property tests for qualify/split."""

    @given(segment, segment)
    @settings(max_examples=200)
    def test_round_trip(self, server_id, tool_name):
        assert split_qualified_name(qualify(server_id, tool_name)) == (server_id, tool_name)

    @given(any_name)
    @settings(max_examples=300)
    def test_split_accepts_exactly_two_non_empty_parts(self, name):
        parts = name.split(SEPARATOR)
        expected = len(parts) == 2 and all(parts)
        assert (split_qualified_name(name) is not None) == expected

    @given(any_name)
    def test_valid_segments_have_no_separator_or_edge_underscore(self, name):
        expected = (
            bool(name)
            and SEPARATOR not in name
            and not name.startswith("_")
            and not name.endswith("_")
        )
        assert is_valid_segment(name) == expected

    @given(any_name, any_name)
    @settings(max_examples=300)
    def test_valid_segments_split_back_to_themselves(self, server_id, tool_name):
        parts = split_qualified_name(qualify(server_id, tool_name))
        if is_valid_segment(server_id) and is_valid_segment(tool_name):
            assert parts == (server_id, tool_name)

    @given(st.lists(segment, min_size=1, max_size=6))
    @settings(max_examples=50)
    def test_config_rejects_duplicate_names(self, names):
        servers = [{"name": n, "url": f"http://{i}.local"} for i, n in enumerate(names)]
        result = ConfigLoader().validate({"servers": servers})
        assert result.valid == (len(set(names)) == len(names))


@pytest.mark.property
class TestResultOrderingProperty:
    """Tool results follow model order regardless of latency."""

    @given(st.lists(st.integers(min_value=0, max_value=15), min_size=1, max_size=5))
    @settings(max_examples=15, deadline=None)
    def test_results_follow_call_order(self, delays_ms):
        tools = [
            FakeTool(f"t{i}", result=f"r{i}", delay=delay / 1000)
            for i, delay in enumerate(delays_ms)
        ]
        client = FakeClient(tools)
        settings_ = ConnectionConfig(tool_retry=RetryConfig(max_attempts=1))
        registry = ServerRegistry(
            settings=settings_,
            connection_factory=lambda sid, url, desc: ToolServerConnection(
                sid, url, desc, settings=settings_, client_factory=lambda _: client
            ),
        )
        calls = [tool_call(str(i), f"s__t{i}") for i in range(len(tools))]
        gateway = FakeGateway([reply(None, calls), reply("done")])
        orchestrator = ChatOrchestrator(registry, gateway, InMemorySessionStore())

        async def run():
            await registry.add_server("s", "http://s.local/mcp")
            await orchestrator.process_turn("go")
            await registry.close_all()

        asyncio.run(run())

        tool_messages = [m for m in gateway.requests[1]["messages"] if m.tool_call_id]
        assert [m.content for m in tool_messages] == [f"r{i}" for i in range(len(tools))]


@pytest.mark.property
class TestDispatchRoutingProperty:
    """Every catalog key dispatches to the server and tool it was built from."""

    @given(any_name, st.lists(any_name, min_size=1, max_size=4, unique=True))
    @settings(max_examples=60, deadline=None)
    def test_catalog_keys_route_back(self, server_id, tool_names):
        client = FakeClient([FakeTool(name, result=f"from {name}") for name in tool_names])
        settings_ = ConnectionConfig(tool_retry=RetryConfig(max_attempts=1))
        registry = ServerRegistry(
            settings=settings_,
            connection_factory=lambda sid, url, desc: ToolServerConnection(
                sid, url, desc, settings=settings_, client_factory=lambda _: client
            ),
        )

        valid_tools = {name for name in tool_names if is_valid_segment(name)}

        async def run():
            try:
                await registry.add_server(server_id, "http://s.local/mcp")
            except ToolmeshError:
                assert not is_valid_segment(server_id)
                return
            assert {d.name for d in registry.list_all_tools()} == valid_tools
            for descriptor in registry.list_all_tools():
                result = await registry.dispatch(descriptor.qualified_name, {})
                assert result.ok
                assert result.server_id == server_id
                assert result.content[0].text == f"from {descriptor.name}"
            await registry.close_all()

        asyncio.run(run())

        expected_calls = valid_tools if is_valid_segment(server_id) else set()
        assert {name for name, _ in client.calls} == expected_calls
