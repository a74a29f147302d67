"""
core.api.openai_client

Thin wrapper around the OpenAI Chat Completions API, used in streaming
mode by the client's orchestration loop.

Any OpenAI-compatible server works (set OPENAI_BASE_URL, e.g. a local
Ollama at http://localhost:11434/v1).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from configs.settings import settings
from core.client.conversation import ToolCallRequest
from exceptions.exceptions import StreamConsumedError


logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Client + config
# -------------------------------------------------------------------


def create_async_client() -> AsyncOpenAI:
    """Create an async client from central settings."""
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )


# -------------------------------------------------------------------
# Stream items
# -------------------------------------------------------------------


@dataclass
class ChatChunk:
    """One unit of a streamed answer: some text and/or finished tool calls."""

    text: str = ""
    tool_calls: List[ToolCallRequest] = field(default_factory=list)


@dataclass
class _PendingToolCall:
    call_id: str = ""
    name: str = ""
    arguments: str = ""

    def build(self, position: int) -> ToolCallRequest:
        call_id = self.call_id or f"call_{position}"
        if not self.arguments.strip():
            return ToolCallRequest(call_id=call_id, name=self.name)
        try:
            arguments = json.loads(self.arguments)
        except json.JSONDecodeError as exc:
            return ToolCallRequest(
                call_id=call_id,
                name=self.name,
                argument_error=f"Malformed arguments {self.arguments!r}: {exc}",
            )
        if not isinstance(arguments, dict):
            return ToolCallRequest(
                call_id=call_id,
                name=self.name,
                argument_error=f"Arguments must be a JSON object, got {self.arguments!r}",
            )
        return ToolCallRequest(call_id=call_id, name=self.name, arguments=arguments)


class ChatStream:
    """
    Finite, single-use sequence of ChatChunk for one chat request.

    Text deltas come out as soon as they arrive. Tool calls arrive as
    fragments keyed by index; they are assembled and released together, in
    index order, with the chunk that finishes the model's choice (or at the
    end of the stream if no finish marker was seen).

    The underlying HTTP response is closed when iteration ends, including
    on cancellation, and by `aclose()`.
    """

    def __init__(self, raw_stream: Any) -> None:
        self._raw = raw_stream
        self._consumed = False
        self._closed = False

    def __aiter__(self) -> AsyncIterator[ChatChunk]:
        if self._consumed:
            raise StreamConsumedError()
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChatChunk]:
        pending: Dict[int, _PendingToolCall] = {}
        try:
            async for completion_chunk in self._raw:
                if not completion_chunk.choices:
                    continue
                choice = completion_chunk.choices[0]
                delta = choice.delta
                text = (getattr(delta, "content", None) or "") if delta is not None else ""

                fragments = (getattr(delta, "tool_calls", None) or []) if delta is not None else []
                for position, fragment in enumerate(fragments):
                    index = fragment.index if fragment.index is not None else position
                    slot = pending.setdefault(index, _PendingToolCall())
                    if fragment.id:
                        slot.call_id = fragment.id
                    function = fragment.function
                    if function is not None:
                        if function.name:
                            slot.name += function.name
                        if function.arguments:
                            slot.arguments += function.arguments

                ready: List[ToolCallRequest] = []
                if choice.finish_reason is not None and pending:
                    ready = self._drain(pending)

                if text or ready:
                    yield ChatChunk(text=text, tool_calls=ready)

            if pending:
                yield ChatChunk(tool_calls=self._drain(pending))
        finally:
            await self.aclose()

    @staticmethod
    def _drain(pending: Dict[int, _PendingToolCall]) -> List[ToolCallRequest]:
        calls = [pending[index].build(index) for index in sorted(pending)]
        pending.clear()
        return calls

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._raw, "close", None)
        if close is not None:
            await close()


# -------------------------------------------------------------------
# Chat service
# -------------------------------------------------------------------


class ChatService:
    """
    Issues streaming chat requests.

    Parameters
    ----------
    client : AsyncOpenAI, optional
        Defaults to a client built from settings (requires OPENAI_API_KEY).
    model : str, optional
        Override the default model name.
    temperature : float, optional
        Sampling temperature; the server default when omitted.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> None:
        self._client = client or create_async_client()
        self.model = model or settings.model
        self.temperature = temperature

    async def stream_chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ChatStream:
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": True,
        }
        if tools:
            request["tools"] = tools
        if self.temperature is not None:
            request["temperature"] = self.temperature

        logger.debug("[CLIENT] Chat request: %d messages, %d tools", len(messages), len(tools or []))
        raw_stream = await self._client.chat.completions.create(**request)
        return ChatStream(raw_stream)
