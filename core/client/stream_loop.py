"""Streaming orchestration loop.

For one user query:
- append the user turn
- issue a single streaming chat request with the full history and the
  known tool descriptors
- for every chunk, first emit its text, then run its tool calls one at a
  time, in order, appending one tool-result turn per call
- stop when the stream is exhausted

A failed tool call is recorded and the loop carries on with the next call
and the next chunk. Errors while consuming the stream itself propagate.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from core.api.openai_client import ChatService, ChatStream
from core.tools.schema_adapter import ToolDescriptor, to_function_specs
from .conversation import Conversation, ToolCallRequest, ToolOutcome
from .tool_gateway import ToolInvocationGateway


logger = logging.getLogger(__name__)


def write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


@dataclass
class QueryResult:
    text: str = ""
    outcomes: List[ToolOutcome] = field(default_factory=list)


class StreamingOrchestrator:
    """
    Parameters
    ----------
    chat_service:
        Issues the streaming chat request.
    gateway:
        Executes tool calls.
    conversation:
        Turn history; a fresh one is created if not given.
    emit:
        Output surface for model text. Defaults to stdout, flushed per chunk.
    on_tool_outcome:
        Optional callback invoked after each tool call.
    """

    def __init__(
        self,
        chat_service: ChatService,
        gateway: ToolInvocationGateway,
        conversation: Optional[Conversation] = None,
        emit: Optional[Callable[[str], None]] = None,
        on_tool_outcome: Optional[Callable[[ToolOutcome], None]] = None,
    ) -> None:
        self.chat_service = chat_service
        self.gateway = gateway
        self.conversation = conversation or Conversation()
        self.emit = emit or write_stdout
        self.on_tool_outcome = on_tool_outcome
        self._active_stream: Optional[ChatStream] = None

    @property
    def in_flight(self) -> bool:
        return self._active_stream is not None

    async def run_query(self, query: str, tools: Sequence[ToolDescriptor] = ()) -> QueryResult:
        self.conversation.add_user(query)
        stream = await self.chat_service.stream_chat(
            self.conversation.to_messages(),
            to_function_specs(tools),
        )
        self._active_stream = stream

        result = QueryResult()
        buffered: List[str] = []
        try:
            async for chunk in stream:
                if chunk.text:
                    self.emit(chunk.text)
                    buffered.append(chunk.text)
                    result.text += chunk.text

                if chunk.tool_calls:
                    self.conversation.add_assistant("".join(buffered), chunk.tool_calls)
                    buffered.clear()
                    for request in chunk.tool_calls:
                        result.outcomes.append(await self._run_tool(request))
        finally:
            self._active_stream = None
            await stream.aclose()

        if buffered:
            self.conversation.add_assistant("".join(buffered))
        return result

    async def _run_tool(self, request: ToolCallRequest) -> ToolOutcome:
        outcome = await self.gateway.invoke(request)
        self.conversation.add_tool_result(outcome)
        if self.on_tool_outcome is not None:
            self.on_tool_outcome(outcome)
        return outcome

    async def abort(self) -> None:
        """Close the in-flight chat stream, if any."""
        stream = self._active_stream
        if stream is None:
            return
        self._active_stream = None
        logger.info("[CLIENT] Aborting in-flight chat stream")
        await stream.aclose()
