"""Server-side tool registry and MCP server construction.

The registry is the server's tool catalogue: each entry is a name, a
human-readable title and description, a JSON input schema and an async
handler returning MCP content blocks. `build_mcp_server` wires it into a
low-level MCP server so every session (SSE or streamable) sees the same
tool set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from mcp import types
from mcp.server.lowlevel import Server


logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Sequence[types.ContentBlock]]]


@dataclass
class RegisteredTool:
    name: str
    title: Optional[str]
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_schema,
        )


class ToolRegistry:
    """Named tools offered to every client session."""

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def register(
        self,
        name: str,
        *,
        description: str,
        input_schema: Dict[str, Any],
        handler: ToolHandler,
        title: Optional[str] = None,
    ) -> RegisteredTool:
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        tool = RegisteredTool(
            name=name,
            title=title,
            description=description,
            input_schema=input_schema,
            handler=handler,
        )
        self._tools[name] = tool
        logger.debug("[TOOL] Registered tool %s", name)
        return tool

    def list_tools(self) -> List[types.Tool]:
        return [tool.to_mcp_tool() for tool in self._tools.values()]

    async def call(self, name: str, arguments: Optional[Dict[str, Any]]) -> Sequence[types.ContentBlock]:
        tool = self._tools.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")
        return await tool.handler(arguments or {})


def build_mcp_server(
    registry: ToolRegistry,
    name: str = "mcp-server",
    version: str = "1.0.0",
) -> Server:
    """Create the low-level MCP server that serves `registry`."""
    server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return registry.list_tools()

    @server.call_tool()
    async def call_tool(tool_name: str, arguments: Dict[str, Any]) -> Sequence[types.ContentBlock]:
        logger.info("[TOOL] Calling %s with %s", tool_name, arguments)
        return await registry.call(tool_name, arguments)

    return server
