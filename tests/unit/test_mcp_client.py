"""Unit tests for MCPClient connection setup and teardown."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest
from mcp import types

from core.api.openai_client import ChatChunk
from core.client.mcp_client import MCPClient
from core.client.stream_loop import StreamingOrchestrator
from core.client.tool_gateway import ToolInvocationGateway
from exceptions.exceptions import ServerConnectionError
from runtime.models.session_models import TransportKind
from tests.fakes import FakeChatService


@asynccontextmanager
async def refusing_transport(*args, **kwargs):
    raise ConnectionError("connection refused")
    yield  # pragma: no cover


@asynccontextmanager
async def idle_transport(*args, **kwargs):
    yield object(), object()


class FakeClientSession:
    """Stands in for mcp.ClientSession; serves a fixed tool list."""

    tools = []
    exited = 0

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        FakeClientSession.exited += 1
        return False

    async def initialize(self):
        return None

    async def list_tools(self):
        return types.ListToolsResult(tools=self.tools)


@pytest.fixture
def fake_session():
    FakeClientSession.tools = []
    FakeClientSession.exited = 0
    with patch("core.client.mcp_client.sse_client", idle_transport), patch(
        "core.client.mcp_client.ClientSession", FakeClientSession
    ):
        yield FakeClientSession


def make_client(kind=TransportKind.SSE, chat=None):
    return MCPClient(
        server_url="http://localhost:3000/sse",
        transport_kind=kind,
        chat_service=chat or FakeChatService(),
    )


class TestConnect:

    @pytest.mark.asyncio
    async def test_unreachable_server_raises_connection_error(self):
        client = make_client()

        with patch("core.client.mcp_client.sse_client", refusing_transport):
            with pytest.raises(ServerConnectionError) as excinfo:
                await client.connect()

        assert "connection refused" in excinfo.value.details
        assert client.connected is False
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_tool_schemas_are_adapted(self, fake_session):
        fake_session.tools = [
            types.Tool(
                name="greeting",
                inputSchema={"type": "object", "properties": ["name"], "required": 5},
            )
        ]
        client = make_client()

        await client.connect()

        assert client.connected is True
        assert [tool.name for tool in client.tools] == ["greeting"]
        assert client.tools[0].required == []
        await client.disconnect()
        assert fake_session.exited == 1

    @pytest.mark.asyncio
    async def test_descriptor_failure_raises_connection_error(self, fake_session):
        fake_session.tools = [types.Tool(name="greeting", inputSchema={"type": "object"})]
        client = make_client()

        with patch(
            "core.client.mcp_client.descriptor_from_tool",
            side_effect=TypeError("bad schema"),
        ):
            with pytest.raises(ServerConnectionError) as excinfo:
                await client.connect()

        assert "bad schema" in excinfo.value.details
        assert client.connected is False
        assert client.tools == []

        await client.disconnect()
        assert fake_session.exited == 1

    @pytest.mark.asyncio
    async def test_process_query_requires_connection(self):
        with pytest.raises(RuntimeError):
            await make_client().process_query("hello")


class TestDisconnect:

    @pytest.mark.asyncio
    async def test_disconnect_without_connection_is_a_noop(self):
        client = make_client()

        await client.disconnect()
        await client.disconnect()

        assert client.tools == []
        assert client.connected is False

    @pytest.mark.asyncio
    async def test_failing_step_does_not_skip_the_others(self):
        client = make_client(kind=TransportKind.STREAMABLE)
        client.tools = ["stale"]
        client.orchestrator = AsyncMock()
        client.orchestrator.abort = AsyncMock(side_effect=RuntimeError("abort failed"))
        client._get_session_id = lambda: "sess-1"
        client._terminate_remote_session = AsyncMock(side_effect=RuntimeError("DELETE failed"))
        stack = AsyncMock()
        client._exit_stack = stack

        await client.disconnect()

        assert client.tools == []
        assert client.orchestrator is None
        client._terminate_remote_session.assert_awaited_once()
        stack.aclose.assert_awaited_once()
        assert client._exit_stack is None

    @pytest.mark.asyncio
    async def test_sse_transport_skips_remote_termination(self):
        client = make_client(kind=TransportKind.SSE)
        client._get_session_id = lambda: "sess-1"

        with patch("core.client.mcp_client.httpx.AsyncClient") as http_client:
            await client._terminate_remote_session()

        http_client.assert_not_called()


class TestProcessQuery:

    @pytest.mark.asyncio
    async def test_query_goes_through_orchestrator(self):
        chat = FakeChatService([ChatChunk(text="hi there")])
        client = make_client(chat=chat)
        emitted = []

        client.orchestrator = StreamingOrchestrator(
            chat_service=chat,
            gateway=ToolInvocationGateway(AsyncMock()),
            emit=emitted.append,
        )

        result = await client.process_query("hello")

        assert result.text == "hi there"
        assert emitted == ["hi there"]
