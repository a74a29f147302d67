"""MCP client: connects to the bridge server and answers queries with tools.

Lifecycle:
- `connect()` opens the transport (legacy SSE or streamable HTTP), starts
  an MCP ClientSession, lists the server's tools and adapts them into
  model-facing descriptors.
- `process_query()` runs the streaming orchestration loop for one query.
- `disconnect()` tears everything down; it is safe to call at any time and
  any number of times.
"""

import logging
from contextlib import AsyncExitStack
from typing import Callable, List, Optional

import httpx
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

from exceptions.exceptions import ServerConnectionError
from runtime.models.session_models import TransportKind
from core.api.openai_client import ChatService
from core.tools.schema_adapter import ToolDescriptor, descriptor_from_tool
from .conversation import ToolOutcome
from .stream_loop import QueryResult, StreamingOrchestrator
from .tool_gateway import ToolInvocationGateway


logger = logging.getLogger(__name__)

CLIENT_INFO = Implementation(name="mcp-client-cli", version="1.0.0")


class MCPClient:
    """
    Parameters
    ----------
    server_url:
        `.../sse` for the legacy transport, `.../mcp` for streamable HTTP.
    transport_kind:
        Which transport to open.
    chat_service:
        Streaming chat service used by the orchestration loop.
    tool_timeout:
        Per tool call timeout in seconds.
    emit / on_tool_outcome:
        Output hooks passed to the orchestration loop.
    """

    def __init__(
        self,
        server_url: str,
        transport_kind: TransportKind,
        chat_service: ChatService,
        tool_timeout: Optional[float] = None,
        emit: Optional[Callable[[str], None]] = None,
        on_tool_outcome: Optional[Callable[[ToolOutcome], None]] = None,
    ) -> None:
        self.server_url = server_url
        self.transport_kind = transport_kind
        self.chat_service = chat_service
        self.tool_timeout = tool_timeout
        self.emit = emit
        self.on_tool_outcome = on_tool_outcome

        self.session: Optional[ClientSession] = None
        self.tools: List[ToolDescriptor] = []
        self.orchestrator: Optional[StreamingOrchestrator] = None
        self._exit_stack: Optional[AsyncExitStack] = None
        self._get_session_id: Optional[Callable[[], Optional[str]]] = None

    @property
    def connected(self) -> bool:
        return self.session is not None

    async def connect(self) -> None:
        if self._exit_stack is not None:
            raise RuntimeError("MCPClient is already connected")

        self._exit_stack = AsyncExitStack()
        try:
            session = await self._open_session(self._exit_stack)
            await session.initialize()
            tools_result = await session.list_tools()

            tools: List[ToolDescriptor] = []
            for tool in tools_result.tools:
                logger.info("[CLIENT] Tool found: %s %s", tool.name, tool.inputSchema)
                tools.append(descriptor_from_tool(tool))
        except Exception as exc:
            raise ServerConnectionError(self.server_url, str(exc) or type(exc).__name__) from exc

        self.session = session
        self.tools = tools
        logger.info("[CLIENT] Connected using %s transport", self.transport_kind.value)
        logger.info(
            "[CLIENT] Connected to server with tools: %s", [tool.name for tool in self.tools]
        )

        self.orchestrator = StreamingOrchestrator(
            chat_service=self.chat_service,
            gateway=ToolInvocationGateway(session, timeout=self.tool_timeout),
            emit=self.emit,
            on_tool_outcome=self.on_tool_outcome,
        )

    async def _open_session(self, stack: AsyncExitStack) -> ClientSession:
        if self.transport_kind is TransportKind.STREAMABLE:
            # Termination is its own step in disconnect(), so it runs even when
            # closing the exit stack fails.
            read_stream, write_stream, get_session_id = await stack.enter_async_context(
                streamablehttp_client(self.server_url, terminate_on_close=False)
            )
            self._get_session_id = get_session_id
        else:
            read_stream, write_stream = await stack.enter_async_context(
                sse_client(self.server_url)
            )
        return await stack.enter_async_context(
            ClientSession(read_stream, write_stream, client_info=CLIENT_INFO)
        )

    async def process_query(self, query: str) -> QueryResult:
        if self.orchestrator is None:
            raise RuntimeError("MCPClient is not connected")
        return await self.orchestrator.run_query(query, self.tools)

    async def disconnect(self) -> None:
        """Best-effort teardown; every step runs even if an earlier one fails."""
        self.tools = []

        try:
            if self.orchestrator is not None:
                await self.orchestrator.abort()
        except Exception:
            logger.exception("[CLIENT] Failed to abort the pending chat request")

        try:
            await self._terminate_remote_session()
        except Exception:
            logger.exception("[CLIENT] Failed to terminate the remote session")

        try:
            stack, self._exit_stack = self._exit_stack, None
            if stack is not None:
                await stack.aclose()
        except Exception:
            logger.exception("[CLIENT] Failed to close the MCP connection")
        finally:
            self.session = None
            self.orchestrator = None
            self._get_session_id = None

    async def _terminate_remote_session(self) -> None:
        if self.transport_kind is not TransportKind.STREAMABLE or self._get_session_id is None:
            return
        session_id = self._get_session_id()
        if not session_id:
            return
        async with httpx.AsyncClient() as http:
            response = await http.delete(self.server_url, headers={"mcp-session-id": session_id})
        # 405: the server does not support explicit termination.
        if response.status_code not in (200, 202, 204, 405):
            response.raise_for_status()
        logger.info("[CLIENT] Terminated streamable session %s", session_id)
