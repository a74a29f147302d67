#!/usr/bin/env python3
"""
MCP tool bridge CLI

Two commands:

1) serve
   - Start the MCP server (FastAPI + uvicorn) exposing the tool set over
       GET  /sse + POST /messages   (legacy SSE transport)
       ALL  /mcp                    (streamable HTTP transport)

2) chat
   - Connect to a running server, list its tools and open an interactive
     prompt. Each line is sent to the chat model; tool calls in the
     streamed answer are executed against the server.
     Type "exit" or "quit" to stop.

The server can also be started directly, e.g.:

    uvicorn runtime.api.server:app --port 3000
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

import anyio
import anyio.to_thread

# Ensure project root is on sys.path when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from configs.settings import configure_logging, settings
from exceptions.exceptions import ServerConnectionError


logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}

LineReader = Callable[[], Awaitable[Optional[str]]]


async def read_stdin_line() -> Optional[str]:
    """Read one line from stdin without blocking the event loop; None on EOF."""

    def _read() -> Optional[str]:
        try:
            return input("> ")
        except EOFError:
            return None

    return await anyio.to_thread.run_sync(_read)


def _print_tool_outcome(outcome) -> None:
    if outcome.ok:
        print(f"\n[tool] {outcome.request.name} -> {outcome.render()}")
    else:
        print(f"\n[tool] {outcome.request.name} failed: {outcome.error}")


# ---------------------------------------------------------------------------
# chat – interactive client
# ---------------------------------------------------------------------------


async def run_repl(client, read_line: LineReader = read_stdin_line) -> None:
    """
    Forward every input line to `client.process_query` until the user types
    exit/quit (any case) or stdin closes.

    A failing query is reported and the prompt comes back.
    """
    print('Type your queries below. Type "exit" or "quit" to stop.')
    while True:
        line = await read_line()
        if line is None:
            break
        query = line.strip()
        if query.lower() in EXIT_COMMANDS:
            print("Exiting...")
            break
        if not query:
            continue

        try:
            print(f'Processing query: "{query}"...')
            await client.process_query(query)
            print("\nQuery processed successfully.\n")
        except Exception as exc:
            logger.exception("[CLIENT] Error processing query %r", query)
            print(f"Error processing query: {exc}\n")


async def run_chat(client, read_line: LineReader = read_stdin_line) -> int:
    """Connect, run the prompt loop, and always tear down. Returns an exit status."""
    try:
        print("Connecting to MCPClient...")
        await client.connect()
        print("Connection established.")
    except Exception as exc:
        if not isinstance(exc, ServerConnectionError):
            logger.exception("[CLIENT] Unexpected error during setup")
        print(f"An error occurred during setup: {exc}", file=sys.stderr)
        await client.disconnect()
        return 1

    try:
        await run_repl(client, read_line=read_line)
    finally:
        await client.disconnect()
        print("Execution completed. Goodbye!")
    return 0


def cmd_chat(server_url: str, transport: str, model: Optional[str]) -> int:
    # Lazy imports so `serve` works without OPENAI_API_KEY.
    from core.api.openai_client import ChatService
    from core.client.mcp_client import MCPClient
    from runtime.models.session_models import TransportKind

    try:
        chat_service = ChatService(model=model)
    except RuntimeError as exc:
        print(f"An error occurred during setup: {exc}", file=sys.stderr)
        return 1

    client = MCPClient(
        server_url=server_url,
        transport_kind=TransportKind(transport),
        chat_service=chat_service,
        tool_timeout=settings.tool_timeout,
        on_tool_outcome=_print_tool_outcome,
    )
    return anyio.run(run_chat, client)


# ---------------------------------------------------------------------------
# serve – MCP server
# ---------------------------------------------------------------------------


def cmd_serve(host: str, port: int, json_response: bool) -> int:
    import uvicorn

    from runtime.api.server import build_session_host, create_app

    app = create_app(build_session_host(json_response=json_response))
    logger.info("MCP SSE server listening on http://%s:%d/sse", host, port)
    logger.info("MCP streamable HTTP endpoint on http://%s:%d/mcp", host, port)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MCP tool bridge CLI")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level (default: MCP_BRIDGE_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    p_serve = subparsers.add_parser("serve", help="Run the MCP server")
    p_serve.add_argument("--host", default=settings.host, help="Bind address")
    p_serve.add_argument("--port", type=int, default=settings.port, help="Bind port")
    p_serve.add_argument(
        "--json-response",
        action="store_true",
        default=settings.json_response,
        help="Answer streamable POSTs with plain JSON instead of SSE frames",
    )

    # chat
    p_chat = subparsers.add_parser("chat", help="Interactive client for a running server")
    p_chat.add_argument(
        "--server-url",
        default=settings.server_url,
        help="Server URL: .../sse (legacy) or .../mcp (streamable)",
    )
    p_chat.add_argument(
        "--transport",
        choices=["sse", "streamable"],
        default=settings.transport,
        help="Transport to use (default: MCP_BRIDGE_TRANSPORT or 'sse')",
    )
    p_chat.add_argument("--model", default=None, help="Chat model name")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)

    command: str = args.command

    if command == "serve":
        status = cmd_serve(host=args.host, port=args.port, json_response=args.json_response)
    elif command == "chat":
        status = cmd_chat(
            server_url=args.server_url,
            transport=args.transport,
            model=args.model,
        )
    else:
        parser.error(f"Unknown command: {command}")
        return

    sys.exit(status)


if __name__ == "__main__":
    main()
