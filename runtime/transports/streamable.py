"""Streamable-HTTP connection handle.

Thin wrapper around the MCP SDK's StreamableHTTPServerTransport, bound to
one session id. The wrapper gives the registry a uniform `close()` and lets
the negotiation layer ask whether the transport is still usable.
"""

import logging
from contextlib import asynccontextmanager

from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Receive, Scope, Send


logger = logging.getLogger(__name__)


class StreamableConnection:
    """One streamable-HTTP session.

    Parameters
    ----------
    session_id:
        Identifier allocated by the session registry. The transport echoes
        it back to the client in the `mcp-session-id` header.
    json_response:
        If True, POST responses are plain JSON bodies instead of SSE frames.
    """

    def __init__(self, session_id: str, json_response: bool = False) -> None:
        self.session_id = session_id
        self.transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=json_response,
        )

    @property
    def closed(self) -> bool:
        return self.transport.is_terminated

    @asynccontextmanager
    async def connect(self):
        async with self.transport.connect() as (read_stream, write_stream):
            yield read_stream, write_stream

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.transport.handle_request(scope, receive, send)

    async def close(self) -> None:
        if self.transport.is_terminated:
            return
        logger.debug("[MCP] Terminating streamable session %s", self.session_id)
        await self.transport.terminate()
