"""Demo `greeting` tool: greets the user by name."""

from typing import Any, Dict, List

from mcp import types

from .registry import ToolRegistry


GREETING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "Name of the person to greet."},
    },
    "required": ["name"],
}


async def greeting(arguments: Dict[str, Any]) -> List[types.TextContent]:
    name = arguments.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("greeting requires a non-empty 'name' argument")
    text = f"Hello, {name}! I'm your AI assistant. How can I assist you today?"
    return [types.TextContent(type="text", text=text)]


def register_greeting(registry: ToolRegistry) -> None:
    registry.register(
        "greeting",
        title="Personalized Greeting Assistant Tool",
        description="Generates a warm and friendly greeting message based on the user's name.",
        input_schema=GREETING_SCHEMA,
        handler=greeting,
    )


def default_tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_greeting(registry)
    return registry
