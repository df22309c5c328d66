# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Optional

from ..types.conversation_types import ConversationMessage, ToolCall


class ConversationManager:
    """Append-only message log of one orchestrator.

    Ordering (user, assistant with tool calls, one tool message per call,
    ...) is the caller's responsibility; nothing is validated here.
    """

    def __init__(self):
        self._history: list[ConversationMessage] = []

    def add_user_message(self, content: str) -> None:
        self._history.append(ConversationMessage(role="user", content=content))

    def add_assistant_message(
        self, content: Optional[str], tool_calls: Optional[list[ToolCall]] = None
    ) -> None:
        self._history.append(
            ConversationMessage(role="assistant", content=content, tool_calls=tool_calls or None)
        )

    def add_tool_result(self, content: str, tool_call_id: str) -> None:
        self._history.append(
            ConversationMessage(role="tool", content=content, tool_call_id=tool_call_id)
        )

    def build_messages(self, system_message: ConversationMessage) -> list[ConversationMessage]:
        return [system_message, *self._history]

    def clear_history(self) -> None:
        self._history = []

    def get_history(self) -> list[ConversationMessage]:
        return [m.model_copy(deep=True) for m in self._history]

    def set_history(self, messages: list[ConversationMessage]) -> None:
        self._history = [m.model_copy(deep=True) for m in messages]

    def get_last_message(self) -> Optional[ConversationMessage]:
        return self._history[-1] if self._history else None

    def get_message_count(self) -> int:
        return len(self._history)

    def get_conversation_summary(self) -> str:
        lines = []
        for i, msg in enumerate(self._history, start=1):
            content = f"{msg.content[:100]}..." if msg.content else "[null]"
            tool_calls = f" ({len(msg.tool_calls)} tool calls)" if msg.tool_calls else ""
            tool_call_id = f" (tool_call_id: {msg.tool_call_id})" if msg.tool_call_id else ""
            lines.append(f"{i}. {msg.role.upper()}: {content}{tool_calls}{tool_call_id}")
        return "\n".join(lines)
