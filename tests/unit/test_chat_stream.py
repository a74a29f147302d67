"""Unit tests for ChatStream: turning OpenAI deltas into ChatChunks."""

from unittest.mock import AsyncMock

import pytest

from core.api.openai_client import ChatService, ChatStream
from exceptions.exceptions import StreamConsumedError
from tests.fakes import RawCompletionStream, completion_chunk, tool_call_fragment


async def collect(stream):
    return [chunk async for chunk in stream]


class TestChatStream:

    @pytest.mark.asyncio
    async def test_text_deltas_pass_through_in_order(self):
        raw = RawCompletionStream(
            [
                completion_chunk(content="Hel"),
                completion_chunk(content="lo\n"),
                completion_chunk(content=""),
                completion_chunk(content="world", finish_reason="stop"),
            ]
        )

        chunks = await collect(ChatStream(raw))

        assert [c.text for c in chunks] == ["Hel", "lo\n", "world"]
        assert all(c.tool_calls == [] for c in chunks)
        assert raw.closed is True

    @pytest.mark.asyncio
    async def test_tool_call_fragments_are_assembled(self):
        raw = RawCompletionStream(
            [
                completion_chunk(tool_calls=[tool_call_fragment(0, "call_a", "greeting", '{"na')]),
                completion_chunk(tool_calls=[tool_call_fragment(0, arguments='me": "Ann"}')]),
                completion_chunk(tool_calls=[tool_call_fragment(1, "call_b", "greeting", "{}")]),
                completion_chunk(finish_reason="tool_calls"),
            ]
        )

        chunks = await collect(ChatStream(raw))

        assert len(chunks) == 1
        calls = chunks[0].tool_calls
        assert [(c.call_id, c.name, c.arguments) for c in calls] == [
            ("call_a", "greeting", {"name": "Ann"}),
            ("call_b", "greeting", {}),
        ]

    @pytest.mark.asyncio
    async def test_complete_calls_without_finish_marker_flush_at_end(self):
        raw = RawCompletionStream(
            [
                completion_chunk(content="Let me check."),
                completion_chunk(tool_calls=[tool_call_fragment(None, "c1", "lookup", '{"k": 1}')]),
            ]
        )

        chunks = await collect(ChatStream(raw))

        assert chunks[0].text == "Let me check."
        assert chunks[1].tool_calls[0].arguments == {"k": 1}

    @pytest.mark.asyncio
    async def test_malformed_arguments_are_flagged(self):
        raw = RawCompletionStream(
            [
                completion_chunk(
                    tool_calls=[tool_call_fragment(0, "c1", "greeting", "{broken")],
                    finish_reason="tool_calls",
                )
            ]
        )

        chunks = await collect(ChatStream(raw))

        call = chunks[0].tool_calls[0]
        assert call.arguments == {}
        assert "Malformed arguments" in call.argument_error

    @pytest.mark.asyncio
    async def test_stream_is_not_restartable(self):
        stream = ChatStream(RawCompletionStream([completion_chunk(content="x")]))
        await collect(stream)

        with pytest.raises(StreamConsumedError):
            await collect(stream)

    @pytest.mark.asyncio
    async def test_aclose_closes_raw_stream_once(self):
        raw = RawCompletionStream([])
        raw.close = AsyncMock()
        stream = ChatStream(raw)

        await stream.aclose()
        await stream.aclose()

        raw.close.assert_awaited_once()


class TestChatService:

    @pytest.mark.asyncio
    async def test_stream_chat_requests_streaming_with_tools(self):
        client = AsyncMock()
        client.chat.completions.create = AsyncMock(return_value=RawCompletionStream([]))
        service = ChatService(client=client, model="test-model")
        tools = [{"type": "function", "function": {"name": "greeting"}}]

        stream = await service.stream_chat([{"role": "user", "content": "hi"}], tools)

        assert isinstance(stream, ChatStream)
        client.chat.completions.create.assert_awaited_once_with(
            model="test-model",
            messages=[{"role": "user", "content": "hi"}],
            stream=True,
            tools=tools,
        )

    @pytest.mark.asyncio
    async def test_tools_are_omitted_when_empty(self):
        client = AsyncMock()
        client.chat.completions.create = AsyncMock(return_value=RawCompletionStream([]))
        service = ChatService(client=client, model="test-model")

        await service.stream_chat([{"role": "user", "content": "hi"}], [])

        _, kwargs = client.chat.completions.create.call_args
        assert "tools" not in kwargs
