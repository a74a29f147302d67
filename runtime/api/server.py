"""
FastAPI application entry point for the MCP tool bridge server.

Responsibilities:
- create the FastAPI app
- construct shared singletons (ToolRegistry, MCP server, SessionRegistry, McpSessionHost)
- run the session host for the lifetime of the app (lifespan)
- include the legacy SSE routes and mount the streamable endpoint at /mcp
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from configs.settings import settings
from runtime.store.session_registry import SessionRegistry
from runtime.tools.greeting import default_tool_registry
from runtime.tools.registry import ToolRegistry, build_mcp_server
from . import session_routes
from .negotiation import StreamableHttpEndpoint
from .session_host import McpSessionHost


MCP_PATH = "/mcp"
MESSAGES_PATH = "/messages"


def build_session_host(
    tool_registry: Optional[ToolRegistry] = None,
    json_response: Optional[bool] = None,
) -> McpSessionHost:
    """Wire the tool registry, MCP server and session registry together."""
    server = build_mcp_server(
        tool_registry or default_tool_registry(),
        name=settings.server_name,
        version=settings.server_version,
    )
    return McpSessionHost(
        server=server,
        registry=SessionRegistry(),
        json_response=settings.json_response if json_response is None else json_response,
        messages_path=MESSAGES_PATH,
    )


def create_app(session_host: Optional[McpSessionHost] = None) -> FastAPI:
    host = session_host or build_session_host()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        async with host.run():
            yield

    app = FastAPI(title="MCP Tool Bridge", lifespan=lifespan)
    app.state.session_host = host

    # Initialize the router module with our shared host, then include it.
    session_routes.init_routes(session_host=host)
    app.include_router(session_routes.router)

    # All methods: POST (messages), GET (notification stream), DELETE (termination).
    app.add_route(MCP_PATH, StreamableHttpEndpoint(host))
    return app


# ---------------------------------------------------------------------------
# Default app, e.g. `uvicorn runtime.api.server:app`
# ---------------------------------------------------------------------------

app = create_app()
