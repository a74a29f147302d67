"""Unit tests for the interactive client loop in cli/main.py."""

from unittest.mock import AsyncMock

import pytest

from cli.main import build_parser, run_chat, run_repl
from exceptions.exceptions import ServerConnectionError


def scripted_lines(*lines):
    remaining = list(lines)

    async def read_line():
        return remaining.pop(0) if remaining else None

    return read_line


def fake_client():
    client = AsyncMock()
    client.connect = AsyncMock()
    client.disconnect = AsyncMock()
    client.process_query = AsyncMock()
    return client


class TestRepl:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["exit", "quit", "EXIT", "  Quit  "])
    async def test_exit_commands_never_reach_the_chat_service(self, command):
        client = fake_client()

        await run_repl(client, read_line=scripted_lines(command, "ignored"))

        client.process_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_input_is_forwarded(self):
        client = fake_client()

        await run_repl(client, read_line=scripted_lines("hello", "", "greet Ann", "exit"))

        assert [c.args[0] for c in client.process_query.await_args_list] == ["hello", "greet Ann"]

    @pytest.mark.asyncio
    async def test_failing_query_does_not_end_the_session(self, capsys):
        client = fake_client()
        client.process_query.side_effect = [RuntimeError("model offline"), None]

        await run_repl(client, read_line=scripted_lines("one", "two", "quit"))

        assert client.process_query.await_count == 2
        assert "Error processing query: model offline" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_eof_ends_the_session(self):
        client = fake_client()

        await run_repl(client, read_line=scripted_lines())

        client.process_query.assert_not_awaited()


class TestRunChat:

    @pytest.mark.asyncio
    async def test_setup_failure_tears_down_and_returns_nonzero(self):
        client = fake_client()
        client.connect.side_effect = ServerConnectionError("http://localhost:3000/sse", "refused")

        status = await run_chat(client, read_line=scripted_lines("hello"))

        assert status == 1
        client.disconnect.assert_awaited_once()
        client.process_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_setup_error_still_tears_down(self, capsys):
        client = fake_client()
        client.connect.side_effect = TypeError("'int' object is not iterable")

        status = await run_chat(client, read_line=scripted_lines("hello"))

        assert status == 1
        client.disconnect.assert_awaited_once()
        client.process_query.assert_not_awaited()
        assert "An error occurred during setup" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_clean_exit_disconnects(self, capsys):
        client = fake_client()

        status = await run_chat(client, read_line=scripted_lines("exit"))

        assert status == 0
        client.disconnect.assert_awaited_once()
        assert "Execution completed. Goodbye!" in capsys.readouterr().out


class TestParser:

    def test_chat_arguments(self):
        args = build_parser().parse_args(
            ["chat", "--server-url", "http://localhost:3000/mcp", "--transport", "streamable"]
        )
        assert args.command == "chat"
        assert args.transport == "streamable"

    def test_serve_arguments(self):
        args = build_parser().parse_args(["serve", "--port", "8080", "--json-response"])
        assert args.port == 8080
        assert args.json_response is True
