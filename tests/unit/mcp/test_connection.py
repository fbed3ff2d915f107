"""Unit tests for ToolServerConnection."""

import asyncio

import pytest
from fastmcp.client.transports import SSETransport, StreamableHttpTransport

from tests.mocks import FakeClient, FakeTool
from toolmesh.config.models import ConnectionConfig
from toolmesh.errors import ToolmeshError
from toolmesh.mcp import TextContent, ToolServerConnection
from toolmesh.types import ConnectionState, ErrorKind


def _connection(client: FakeClient, settings: ConnectionConfig) -> ToolServerConnection:
    return ToolServerConnection(
        server_id="chain",
        endpoint="http://chain.local/mcp",
        description="Blockchain tools",
        settings=settings,
        client_factory=lambda _: client,
    )


class TestInitialize:
    """Tests for initialize()."""

    @pytest.mark.asyncio
    async def test_initialize_fetches_tools(self, fast_settings):
        client = FakeClient(
            [
                FakeTool("gasPrice", description="Current gas price"),
                FakeTool("blockNumber"),
            ]
        )
        connection = _connection(client, fast_settings)

        descriptors = await connection.initialize()

        assert connection.state == ConnectionState.READY
        assert [d.name for d in descriptors] == ["gasPrice", "blockNumber"]
        assert descriptors[0].server_id == "chain"
        assert descriptors[0].description == "Current gas price"
        assert descriptors[0].qualified_name == "chain__gasPrice"
        assert descriptors[0].input_schema["type"] == "object"
        assert connection.get_status().tool_count == 2

    @pytest.mark.asyncio
    async def test_reinitialize_refreshes_tools(self, fast_settings):
        client = FakeClient([FakeTool("a")])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        client.tools["b"] = FakeTool("b")
        descriptors = await connection.initialize()

        assert {d.name for d in descriptors} == {"a", "b"}
        assert client.entered == 1

    @pytest.mark.asyncio
    async def test_connect_failure_is_connection_error(self, fast_settings):
        client = FakeClient(connect_error=ConnectionRefusedError("refused"))
        connection = _connection(client, fast_settings)

        with pytest.raises(ToolmeshError) as exc_info:
            await connection.initialize()

        assert exc_info.value.kind == ErrorKind.CONNECTION
        assert connection.state == ConnectionState.DISCONNECTED
        assert connection.last_error is not None

    @pytest.mark.asyncio
    async def test_slow_list_tools_times_out_and_tears_down(self, fast_settings):
        client = FakeClient([FakeTool("a")], list_delay=5)
        connection = _connection(client, fast_settings)

        with pytest.raises(ToolmeshError) as exc_info:
            await connection.initialize()

        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert connection.state == ConnectionState.DISCONNECTED
        assert client.exited == 1
        assert connection.list_tools() == []

    @pytest.mark.asyncio
    async def test_unclassified_failure_is_unknown(self, fast_settings):
        client = FakeClient(connect_error=ValueError("odd"))
        connection = _connection(client, fast_settings)

        with pytest.raises(ToolmeshError) as exc_info:
            await connection.initialize()
        assert exc_info.value.kind == ErrorKind.UNKNOWN


class TestCall:
    """Tests for call(), which never raises."""

    @pytest.mark.asyncio
    async def test_call_returns_content(self, fast_settings):
        client = FakeClient([FakeTool("gasPrice", result="42 gwei")])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("gasPrice", {"chain": "eth"})

        assert result.ok
        assert result.content == [TextContent(text="42 gwei")]
        assert result.arguments == {"chain": "eth"}
        assert client.calls == [("gasPrice", {"chain": "eth"})]

    @pytest.mark.asyncio
    async def test_call_before_initialize_is_connection_failure(self, fast_settings):
        client = FakeClient([FakeTool("gasPrice")])
        connection = _connection(client, fast_settings)

        result = await connection.call("gasPrice")

        assert result.error.kind == ErrorKind.CONNECTION
        assert client.call_count() == 0

    @pytest.mark.asyncio
    async def test_unknown_tool_is_tool_not_found(self, fast_settings):
        client = FakeClient([FakeTool("gasPrice")])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("nope")

        assert result.error.kind == ErrorKind.TOOL_NOT_FOUND
        assert client.call_count() == 0

    @pytest.mark.asyncio
    async def test_connection_reset_is_retried_then_reported(self, fast_settings):
        tool = FakeTool("gasPrice", failures=[ConnectionResetError("reset by peer")] * 3)
        client = FakeClient([tool])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("gasPrice")

        assert result.error.kind == ErrorKind.CONNECTION
        assert client.call_count("gasPrice") == fast_settings.tool_retry.max_attempts

    @pytest.mark.asyncio
    async def test_transient_failure_recovers(self, fast_settings):
        tool = FakeTool("gasPrice", result="42", failures=[ConnectionResetError()])
        client = FakeClient([tool])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("gasPrice")

        assert result.ok
        assert client.call_count("gasPrice") == 2

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, fast_settings):
        client = FakeClient([FakeTool("slow", delay=5)])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("slow")

        assert result.error.kind == ErrorKind.TIMEOUT
        assert result.duration_ms >= fast_settings.call_timeout_ms

    @pytest.mark.asyncio
    async def test_server_reported_error(self, fast_settings):
        client = FakeClient([FakeTool("broken", result="kaboom", is_error=True)])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("broken")

        assert result.error.kind == ErrorKind.SERVER_ERROR
        assert result.error.message == "kaboom"

    @pytest.mark.asyncio
    async def test_server_reported_error_is_classified_by_text(self, fast_settings):
        client = FakeClient([FakeTool("strict", result="Missing parameter 'x'", is_error=True)])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("strict")

        assert result.error.kind == ErrorKind.INVALID_ARGS

    @pytest.mark.asyncio
    async def test_invalid_argument_mentioning_connection_is_not_retried(self, fast_settings):
        tool = FakeTool(
            "lookup", result="ok", failures=[RuntimeError("invalid argument 'connection_id'")]
        )
        client = FakeClient([tool])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        result = await connection.call("lookup", {"connection_id": 7})

        assert result.error.kind == ErrorKind.INVALID_ARGS
        assert client.call_count("lookup") == 1

    @pytest.mark.asyncio
    async def test_tool_vanished_on_server(self, fast_settings):
        client = FakeClient([FakeTool("gasPrice")])
        connection = _connection(client, fast_settings)
        await connection.initialize()
        del client.tools["gasPrice"]

        result = await connection.call("gasPrice")

        assert result.error.kind == ErrorKind.TOOL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_concurrent_calls(self, fast_settings):
        client = FakeClient([FakeTool("a", result="A", delay=0.02), FakeTool("b", result="B")])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        results = await asyncio.gather(connection.call("a"), connection.call("b"))

        assert [r.content[0].text for r in results] == ["A", "B"]


class TestClose:
    """Tests for close()."""

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fast_settings):
        client = FakeClient([FakeTool("a")])
        connection = _connection(client, fast_settings)
        await connection.initialize()

        await connection.close()
        await connection.close()

        assert client.exited == 1
        assert connection.state == ConnectionState.DISCONNECTED
        assert connection.list_tools() == []

    @pytest.mark.asyncio
    async def test_close_never_initialized(self, fast_settings):
        connection = _connection(FakeClient(), fast_settings)
        await connection.close()
        assert connection.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_call_after_close_is_connection_failure(self, fast_settings):
        client = FakeClient([FakeTool("a")])
        connection = _connection(client, fast_settings)
        await connection.initialize()
        await connection.close()

        result = await connection.call("a")

        assert result.error.kind == ErrorKind.CONNECTION


class TestTransportSelection:
    """Tests for endpoint -> transport mapping."""

    def test_sse_endpoint(self):
        transport = ToolServerConnection._get_transport("http://host:8000/sse")
        assert isinstance(transport, SSETransport)

    def test_streamable_http_appends_mcp(self):
        transport = ToolServerConnection._get_transport("http://host:8000/")
        assert isinstance(transport, StreamableHttpTransport)
        assert transport.url == "http://host:8000/mcp"

    def test_streamable_http_keeps_mcp(self):
        transport = ToolServerConnection._get_transport("http://host:8000/mcp")
        assert transport.url == "http://host:8000/mcp"
