"""HTTP routes for the legacy SSE transport and health checks.

Exposes endpoints like:

- GET  /sse                    -> opens a new legacy session; the session id
                                  is announced in the first `endpoint` event
- POST /messages?sessionId=<id> -> delivers one JSON-RPC message to that
                                  session
- GET  /healthz                -> liveness + live session counts

The streamable-HTTP endpoint (/mcp) is a raw ASGI app, see negotiation.py.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from mcp import types
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse

from exceptions.exceptions import SessionClosedError
from ..models.api_models import HealthResponse
from ..models.session_models import TransportKind
from ..transports.sse import SseConnection
from .session_host import McpSessionHost


logger = logging.getLogger(__name__)

# Router for the legacy transport + health endpoints
router = APIRouter()


# Module-level reference, to be initialized by the server.
_SESSION_HOST: Optional[McpSessionHost] = None


def init_routes(session_host: McpSessionHost) -> None:
    """Initialize the module-level session host used by the route handlers."""
    global _SESSION_HOST
    _SESSION_HOST = session_host


def _require_session_host() -> McpSessionHost:
    if _SESSION_HOST is None or not _SESSION_HOST.running:
        raise HTTPException(
            status_code=500,
            detail="Session host is not running on the server.",
        )
    return _SESSION_HOST


@router.get("/sse")
async def open_sse_session() -> EventSourceResponse:
    """Open a new legacy session.

    Every call opens a fresh session; nothing in the request is inspected.
    The session is registered before the response starts, so the id sent
    in the `endpoint` event is already routable.
    """
    host = _require_session_host()
    session_id, connection = await host.open_session(
        TransportKind.SSE,
        lambda sid: SseConnection(sid, messages_path=host.messages_path),
    )
    logger.info("[SSE] Opened session %s", session_id)
    return EventSourceResponse(connection.events())


@router.post("/messages")
async def post_message(request: Request) -> Response:
    """Deliver one client message to an existing legacy session."""
    host = _require_session_host()
    session_id = request.query_params.get("sessionId")
    connection = host.registry.lookup(TransportKind.SSE, session_id)
    if connection is None:
        logger.warning("[SSE] No transport found for session_id=%r", session_id)
        return PlainTextResponse("No transport found for sessionId", status_code=400)

    body = await request.body()
    try:
        message = types.JSONRPCMessage.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("[SSE] Could not parse message for session %s: %s", session_id, exc)
        return PlainTextResponse("Could not parse message", status_code=400)

    try:
        await connection.deliver(SessionMessage(message))
    except SessionClosedError:
        logger.warning("[SSE] Session %s closed before message delivery", session_id)
        return PlainTextResponse("No transport found for sessionId", status_code=400)

    return PlainTextResponse("Accepted", status_code=202)


# --------------------------------------------------------
# Endpoint: GET /healthz
# --------------------------------------------------------
@router.get("/healthz", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """
    Simple health check endpoint for uptime monitoring.
    """
    sessions = {kind.value: 0 for kind in TransportKind}
    if _SESSION_HOST is not None:
        sessions = {
            kind.value: _SESSION_HOST.registry.count(kind) for kind in TransportKind
        }
    return HealthResponse(status="ok", sessions=sessions)
