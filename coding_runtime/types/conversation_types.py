# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Provider-neutral conversation records.

Messages follow the OpenAI chat shape: every provider adapter converts from
and to this shape at its boundary.
"""

import json

from typing import Any, Literal, Optional
from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]


class FunctionCall(BaseModel):
    name: str
    arguments: str = "{}"  # JSON encoded argument object


class ToolCall(BaseModel):
    """One model-issued request to invoke a tool."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @classmethod
    def create(cls, call_id: str, name: str, arguments: dict[str, Any]) -> "ToolCall":
        return cls(
            id=call_id,
            function=FunctionCall(name=name, arguments=json.dumps(arguments)),
        )


class ConversationMessage(BaseModel):
    """A message in the orchestrator's conversation history."""

    role: Role
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None

    def __str__(self) -> str:
        parts = [f"Message from role={self.role}"]
        if self.content:
            parts.append(self.content)
        for tc in self.tool_calls or []:
            parts.append(f"Tool call {tc.function.name} (id: {tc.id}): {tc.function.arguments}")
        if self.tool_call_id:
            parts.append(f"(tool_call_id: {self.tool_call_id})")
        return "\n".join(parts)


class AssistantResponse(BaseModel):
    """Normalized result of one provider round-trip."""

    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    # Calls a strategy already executed on its own (Gemini's parts sub-loop)
    executed_calls: list[ToolCall] = Field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
