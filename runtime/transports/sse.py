"""Legacy SSE connection handle.

A legacy session is split over two HTTP endpoints:

- `GET /sse` keeps an event stream open. Its first event is `endpoint`,
  whose data is the URL (including `sessionId`) the client must POST to.
  Every message the server writes afterwards is sent as a `message` event.
- `POST /messages?sessionId=<id>` carries one JSON-RPC message from the
  client, which is delivered to the server through `deliver()`.

Both directions are anyio memory streams. Closing the connection closes
the client->server side, which ends the MCP server loop for this session.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Union

import anyio
from mcp.shared.message import SessionMessage

from exceptions.exceptions import SessionClosedError


logger = logging.getLogger(__name__)


class SseConnection:
    """One legacy SSE session.

    Parameters
    ----------
    session_id:
        Identifier allocated by the session registry.
    messages_path:
        Path of the follow-up message endpoint, advertised to the client in
        the `endpoint` event.
    """

    def __init__(self, session_id: str, messages_path: str = "/messages") -> None:
        self.session_id = session_id
        self.endpoint = f"{messages_path}?sessionId={session_id}"
        self._closed = False

        # client -> server
        self._incoming_writer, self._incoming_reader = anyio.create_memory_object_stream[
            Union[SessionMessage, Exception]
        ](0)
        # server -> client
        self._outgoing_writer, self._outgoing_reader = anyio.create_memory_object_stream[
            SessionMessage
        ](0)

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def connect(self):
        """Expose the server-side ends of both streams to the MCP server."""
        try:
            yield self._incoming_reader, self._outgoing_writer
        finally:
            self._incoming_reader.close()
            self._outgoing_writer.close()

    async def deliver(self, message: Union[SessionMessage, Exception]) -> None:
        if self._closed:
            raise SessionClosedError(self.session_id)
        try:
            await self._incoming_writer.send(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            raise SessionClosedError(self.session_id) from exc

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        """Event stream for the GET /sse response.

        Ends (and closes the session) when the server stops writing or when
        the response is torn down because the peer disconnected.
        """
        try:
            yield {"event": "endpoint", "data": self.endpoint}
            async for session_message in self._outgoing_reader:
                yield {
                    "event": "message",
                    "data": session_message.message.model_dump_json(
                        by_alias=True, exclude_none=True
                    ),
                }
        finally:
            await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug("[SSE] Closing session %s", self.session_id)
        self._incoming_writer.close()
        self._outgoing_reader.close()
