"""Transport negotiation for the unified streamable-HTTP endpoint (/mcp).

Every request to /mcp is classified on its own, using only the session
registry as shared state:

1. REUSE  - the `mcp-session-id` header resolves to a live streamable
            session: the request goes to that session's transport.
2. CREATE - no session id and the body is an `initialize` request: a new
            streamable session is registered and the request is routed
            through it.
3. REJECT - anything else: 400 with a JSON-RPC error object, registry
            untouched.

GET (notification stream) and DELETE (termination) always need a session
id that resolves; otherwise they are rejected as an invalid session.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from mcp import types
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.types import Message, Receive, Scope, Send

from ..models.api_models import bad_request_no_session
from ..models.session_models import TransportKind
from ..store.session_registry import SessionRegistry
from ..transports.streamable import StreamableConnection
from .session_host import McpSessionHost


logger = logging.getLogger(__name__)

MCP_SESSION_ID_HEADER = "mcp-session-id"
INVALID_SESSION_MESSAGE = "Invalid or missing session ID"


class NegotiationAction(str, Enum):
    REUSE = "reuse"
    CREATE = "create"
    REJECT = "reject"


@dataclass
class Negotiation:
    action: NegotiationAction
    connection: Optional[StreamableConnection] = None


def parse_json_body(body: bytes) -> Any:
    """Decode a request body, returning None when it is not JSON."""
    if not body:
        return None
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def is_initialize_request(payload: Any) -> bool:
    """True if `payload` is a single, well-formed JSON-RPC `initialize` request."""
    if not isinstance(payload, dict):
        return False
    try:
        request = types.JSONRPCRequest.model_validate(payload)
    except ValidationError:
        return False
    if request.method != "initialize":
        return False
    try:
        types.InitializeRequestParams.model_validate(request.params or {})
    except ValidationError:
        return False
    return True


class TransportNegotiator:
    """Decides, per request, whether to reuse, create or reject a session."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    def resolve(self, session_id: Optional[str]) -> Optional[StreamableConnection]:
        connection = self.registry.lookup(TransportKind.STREAMABLE, session_id)
        if connection is None or connection.closed:
            return None
        return connection

    def decide(self, session_id: Optional[str], payload: Any) -> Negotiation:
        if session_id:
            connection = self.resolve(session_id)
            if connection is not None:
                return Negotiation(NegotiationAction.REUSE, connection)
            return Negotiation(NegotiationAction.REJECT)

        if is_initialize_request(payload):
            return Negotiation(NegotiationAction.CREATE)

        return Negotiation(NegotiationAction.REJECT)


def _replay_receive(body: bytes, receive: Receive) -> Receive:
    """Hand an already-read body to the transport, then fall through to `receive`."""
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class StreamableHttpEndpoint:
    """Raw ASGI app mounted at /mcp for every HTTP method."""

    def __init__(self, host: McpSessionHost) -> None:
        self.host = host
        self.negotiator = TransportNegotiator(host.registry)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)

        if request.method != "POST":
            await self._handle_session_request(request.method, session_id, scope, receive, send)
            return

        body = await request.body()
        replay = _replay_receive(body, receive)
        negotiation = self.negotiator.decide(session_id, parse_json_body(body))

        if negotiation.action is NegotiationAction.REUSE:
            await negotiation.connection.handle_request(scope, replay, send)
            return

        if negotiation.action is NegotiationAction.CREATE:
            new_session_id, connection = await self.host.open_session(
                TransportKind.STREAMABLE,
                lambda sid: StreamableConnection(sid, json_response=self.host.json_response),
            )
            logger.info("[MCP] Initialized streamable session %s", new_session_id)
            await connection.handle_request(scope, replay, send)
            return

        logger.warning(
            "[MCP] Rejected POST without a usable session (session_id=%r)", session_id
        )
        response = JSONResponse(bad_request_no_session().model_dump(), status_code=400)
        await response(scope, replay, send)

    async def _handle_session_request(
        self,
        method: str,
        session_id: Optional[str],
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        connection = self.negotiator.resolve(session_id)
        if connection is None:
            logger.warning(
                "[MCP] Rejected %s with invalid session (session_id=%r)", method, session_id
            )
            response = PlainTextResponse(INVALID_SESSION_MESSAGE, status_code=400)
            await response(scope, receive, send)
            return
        await connection.handle_request(scope, receive, send)
