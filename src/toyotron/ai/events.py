"""Events emitted by the chat agent while a turn is in progress."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from toyotron.core.types import EventType, FinishReason, ToolCallState


@dataclass(frozen=True)
class AgentEvent:
    type: EventType
    text: Optional[str] = None
    tool_name: Optional[str] = None
    tool_call_id: Optional[str] = None
    state: Optional[ToolCallState] = None
    input: Optional[dict[str, Any]] = None
    output: Optional[dict[str, Any]] = None
    finish_reason: Optional[FinishReason] = None

    @classmethod
    def text_delta(cls, text: str) -> AgentEvent:
        return cls(type=EventType.TEXT, text=text)

    @classmethod
    def tool(
        cls,
        name: str,
        call_id: str,
        state: ToolCallState,
        input: Optional[dict[str, Any]] = None,
        output: Optional[dict[str, Any]] = None,
    ) -> AgentEvent:
        return cls(
            type=EventType.TOOL,
            tool_name=name,
            tool_call_id=call_id,
            state=state,
            input=input,
            output=output,
        )

    @classmethod
    def finish(cls, reason: FinishReason) -> AgentEvent:
        return cls(type=EventType.FINISH, finish_reason=reason)

    def to_dict(self) -> dict[str, Any]:
        """Wire form: camelCase keys, unset fields omitted."""
        data: dict[str, Any] = {
            "type": str(self.type),
            "text": self.text,
            "toolName": self.tool_name,
            "toolCallId": self.tool_call_id,
            "state": str(self.state) if self.state else None,
            "input": self.input,
            "output": self.output,
            "finishReason": str(self.finish_reason) if self.finish_reason else None,
        }
        return {k: v for k, v in data.items() if v is not None}
