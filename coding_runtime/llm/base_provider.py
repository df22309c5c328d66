# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The normalized contract the orchestrator needs from an LLM provider."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..types.conversation_types import AssistantResponse

ChunkCallback = Callable[[str], None]


class LLMProvider(ABC):
    """Base class for the provider adapters.

    `messages` are provider-neutral dicts in the OpenAI chat shape (see
    ConversationMessage), except for the Gemini strategy, which hands its
    provider role/parts contents directly. `schemas` are already converted
    to the provider's tool shape by the SchemaAdapter.
    """

    def __init__(
        self,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @abstractmethod
    def get_provider_name(self) -> str:
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    async def initialize(self) -> bool:
        """Set up the client; returns readiness."""
        return self.is_ready()

    @abstractmethod
    async def send_message_with_tools(
        self, messages: list[dict[str, Any]], schemas: list[dict[str, Any]]
    ) -> AssistantResponse:
        pass

    @abstractmethod
    async def stream_message_with_tools(
        self,
        messages: list[dict[str, Any]],
        schemas: list[dict[str, Any]],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AssistantResponse:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
