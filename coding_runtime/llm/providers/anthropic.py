# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Anthropic messages API provider."""

import os
import json
import logging

from typing import Any, Optional

import anthropic
from anthropic import AsyncAnthropic

from ..base_provider import LLMProvider, ChunkCallback
from ...errors import ProviderError
from ...types.conversation_types import AssistantResponse, FunctionCall, ToolCall

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096


class AnthropicProvider(LLMProvider):

    def __init__(
        self,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[AsyncAnthropic] = None,
    ):
        super().__init__(model, temperature, max_tokens)
        self._client = client

    def get_provider_name(self) -> str:
        return "anthropic"

    def is_ready(self) -> bool:
        return self._client is not None

    async def initialize(self) -> bool:
        if self._client is not None:
            return True
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            logger.error("ANTHROPIC_API_KEY is not set; Anthropic provider unavailable")
            return False
        self._client = AsyncAnthropic(api_key=api_key)
        return True

    def _prepare_messages(
        self, messages: list[dict[str, Any]]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Maps the chat-shaped history into Anthropic's system + content blocks.

        Tool results become `tool_result` blocks inside a user turn; consecutive
        results are merged into that one turn as the API requires.
        """
        system_parts: list[str] = []
        prepared: list[dict[str, Any]] = []
        for msg in messages:
            role = msg["role"]
            content = msg.get("content")
            if role == "system":
                if content:
                    system_parts.append(content)
            elif role == "assistant":
                blocks: list[dict[str, Any]] = []
                if content:
                    blocks.append({"type": "text", "text": content})
                for tc in msg.get("tool_calls") or []:
                    try:
                        tool_input = json.loads(tc["function"]["arguments"] or "{}")
                    except json.JSONDecodeError:
                        tool_input = {}
                    blocks.append({
                        "type": "tool_use",
                        "id": tc["id"],
                        "name": tc["function"]["name"],
                        "input": tool_input,
                    })
                prepared.append({"role": "assistant", "content": blocks or ""})
            elif role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg["tool_call_id"],
                    "content": content or "",
                }
                last = prepared[-1] if prepared else None
                if last and last["role"] == "user" and isinstance(last["content"], list) and all(
                    b.get("type") == "tool_result" for b in last["content"]
                ):
                    last["content"].append(block)
                else:
                    prepared.append({"role": "user", "content": [block]})
            else:
                prepared.append({"role": "user", "content": content or ""})
        return ("\n\n".join(system_parts) or None), prepared

    def _request_args(self, messages: list[dict[str, Any]], schemas: list[dict[str, Any]]) -> dict[str, Any]:
        system, prepared = self._prepare_messages(messages)
        args: dict[str, Any] = {
            "model": self.model,
            "messages": prepared,
            "max_tokens": self.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system:
            args["system"] = system
        if self.temperature is not None:
            args["temperature"] = self.temperature
        if schemas:
            args["tools"] = schemas
        return args

    def _to_response(self, message: Any) -> AssistantResponse:
        text_parts = []
        tool_calls = []
        for block in message.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        function=FunctionCall(name=block.name, arguments=json.dumps(block.input)),
                    )
                )
            else:
                logger.debug(f"Ignoring Anthropic content block of type {block.type}")
        return AssistantResponse(
            content="".join(text_parts) or None,
            tool_calls=tool_calls or None,
        )

    async def send_message_with_tools(
        self, messages: list[dict[str, Any]], schemas: list[dict[str, Any]]
    ) -> AssistantResponse:
        if self._client is None:
            raise ProviderError("Anthropic provider is not initialized")
        try:
            message = await self._client.messages.create(**self._request_args(messages, schemas))
        except anthropic.AnthropicError as e:
            raise ProviderError(f"Anthropic request failed: {e}", cause=e) from e
        return self._to_response(message)

    async def stream_message_with_tools(
        self,
        messages: list[dict[str, Any]],
        schemas: list[dict[str, Any]],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AssistantResponse:
        if self._client is None:
            raise ProviderError("Anthropic provider is not initialized")
        try:
            async with self._client.messages.stream(**self._request_args(messages, schemas)) as stream:
                async for text in stream.text_stream:
                    if on_chunk:
                        on_chunk(text)
                message = await stream.get_final_message()
        except anthropic.AnthropicError as e:
            raise ProviderError(f"Anthropic streaming request failed: {e}", cause=e) from e
        return self._to_response(message)
