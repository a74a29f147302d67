"""
Conversation state for one interactive client session.

- ToolCallRequest / ToolOutcome: a model-issued tool call and what came of it
- Turn: one entry of the conversation (user, assistant or tool-result)
- Conversation: the ordered turn list, rendered as chat messages

Nothing here is persisted; the conversation lives as long as the client.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# -------------------------------------------------------------------
# Tool calls
# -------------------------------------------------------------------


@dataclass
class ToolCallRequest:
    """A tool call emitted by the model mid-stream."""

    call_id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    # Set when the model's argument JSON could not be decoded.
    argument_error: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        return {
            "id": self.call_id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


@dataclass
class ToolOutcome:
    """Result of one tool call; a failure never raises."""

    request: ToolCallRequest
    ok: bool
    content: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, request: ToolCallRequest, content: Any) -> "ToolOutcome":
        return cls(request=request, ok=True, content=content)

    @classmethod
    def failure(cls, request: ToolCallRequest, error: str, content: Any = None) -> "ToolOutcome":
        return cls(request=request, ok=False, content=content, error=error)

    def render(self) -> str:
        """Text form of the outcome, as fed back to the model."""
        if not self.ok:
            return f"Error: {self.error}"
        return render_content(self.content)


def render_content(content: Any) -> str:
    """Flatten MCP content blocks into text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for block in content:
        text = getattr(block, "text", None)
        if isinstance(text, str):
            parts.append(text)
        elif hasattr(block, "model_dump_json"):
            parts.append(block.model_dump_json(exclude_none=True))
        else:
            parts.append(str(block))
    return "\n".join(parts)


# -------------------------------------------------------------------
# Turns
# -------------------------------------------------------------------


TurnRole = Literal["user", "assistant", "tool-result"]


class Turn(BaseModel):
    role: TurnRole
    content: str = ""
    tool_calls: List[Dict[str, Any]] = Field(default_factory=list)  # assistant only
    tool_call_id: Optional[str] = None                              # tool-result only
    tool_name: Optional[str] = None
    is_error: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_message(self) -> Dict[str, Any]:
        if self.role == "tool-result":
            return {"role": "tool", "tool_call_id": self.tool_call_id, "content": self.content}
        if self.role == "assistant" and self.tool_calls:
            return {
                "role": "assistant",
                "content": self.content or None,
                "tool_calls": list(self.tool_calls),
            }
        return {"role": self.role, "content": self.content}


class Conversation:
    """Ordered turns of one client session, oldest first."""

    def __init__(self) -> None:
        self.turns: List[Turn] = []

    def add_user(self, text: str) -> Turn:
        return self._append(Turn(role="user", content=text))

    def add_assistant(self, text: str, tool_calls: Optional[List[ToolCallRequest]] = None) -> Turn:
        return self._append(
            Turn(
                role="assistant",
                content=text,
                tool_calls=[call.to_message() for call in tool_calls or []],
            )
        )

    def add_tool_result(self, outcome: ToolOutcome) -> Turn:
        return self._append(
            Turn(
                role="tool-result",
                content=outcome.render(),
                tool_call_id=outcome.request.call_id,
                tool_name=outcome.request.name,
                is_error=not outcome.ok,
            )
        )

    def _append(self, turn: Turn) -> Turn:
        self.turns.append(turn)
        return turn

    def to_messages(self) -> List[Dict[str, Any]]:
        return [turn.to_message() for turn in self.turns]
