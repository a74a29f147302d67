"""Session host: runs one MCP server loop per registered session.

The host owns:
- the low-level MCP server shared by all sessions
- the SessionRegistry
- an anyio task group, entered through `run()` for the lifetime of the app

Opening a session registers it first and then starts its server task. The
task runs inside the connection's `connect()` context; when that context
ends (peer disconnect, DELETE, server shutdown) the task's cleanup removes
the session from the registry, passing its id explicitly.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional, Tuple, TypeVar

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server

from ..models.session_models import TransportKind
from ..store.session_registry import SessionRegistry


logger = logging.getLogger(__name__)

ConnectionT = TypeVar("ConnectionT")


class McpSessionHost:
    """Bridges the session registry and the MCP server.

    Parameters
    ----------
    server:
        Low-level MCP server used for every session.
    registry:
        Session registry; created if not given.
    json_response:
        Passed to new streamable connections.
    messages_path:
        Path of the legacy follow-up message endpoint.
    """

    def __init__(
        self,
        server: Server,
        registry: Optional[SessionRegistry] = None,
        json_response: bool = False,
        messages_path: str = "/messages",
    ) -> None:
        self.server = server
        self.registry = registry or SessionRegistry()
        self.json_response = json_response
        self.messages_path = messages_path
        self._task_group: Optional[TaskGroup] = None

    @property
    def running(self) -> bool:
        return self._task_group is not None

    @asynccontextmanager
    async def run(self):
        if self._task_group is not None:
            raise RuntimeError("McpSessionHost is already running")
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                logger.info("[SESSION] Session host started")
                try:
                    yield self
                finally:
                    tg.cancel_scope.cancel()
        finally:
            self._task_group = None
            with anyio.CancelScope(shield=True):
                await self.registry.close_all()
            logger.info("[SESSION] Session host stopped")

    async def open_session(
        self,
        kind: TransportKind,
        factory: Callable[[str], ConnectionT],
    ) -> Tuple[str, ConnectionT]:
        """Register a new session and start serving it.

        Returns once the connection's streams are attached to the server,
        so the caller may route the first message straight away.
        """
        if self._task_group is None:
            raise RuntimeError("McpSessionHost is not running; use `async with host.run()`")

        session_id, connection = await self.registry.create(kind, factory)
        try:
            await self._task_group.start(self._serve, kind, session_id, connection)
        except BaseException:
            with anyio.CancelScope(shield=True):
                await self.registry.remove(kind, session_id)
            raise
        return session_id, connection

    async def _serve(
        self,
        kind: TransportKind,
        session_id: str,
        connection,
        *,
        task_status: TaskStatus = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        try:
            async with connection.connect() as (read_stream, write_stream):
                task_status.started()
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        except Exception:
            # Contained to this session: the task group is shared by all of them.
            logger.exception(
                "[SESSION] %s session %s stopped with an error", kind.value, session_id
            )
        finally:
            with anyio.CancelScope(shield=True):
                await self.registry.remove(kind, session_id)
