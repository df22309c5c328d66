# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""OpenAI chat-completions provider."""

import os
import logging

from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from ..base_provider import LLMProvider, ChunkCallback
from ...errors import ProviderError
from ...types.conversation_types import AssistantResponse, FunctionCall, ToolCall

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Provider implementation for OpenAI-compatible chat completion APIs."""

    def __init__(
        self,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
        base_url: Optional[str] = None,
    ):
        super().__init__(model, temperature, max_tokens)
        self.base_url = base_url
        self._client = client

    def get_provider_name(self) -> str:
        return "openai"

    def is_ready(self) -> bool:
        return self._client is not None

    async def initialize(self) -> bool:
        if self._client is not None:
            return True
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            logger.error("OPENAI_API_KEY is not set; OpenAI provider unavailable")
            return False
        self._client = AsyncOpenAI(api_key=api_key, base_url=self.base_url)
        return True

    def _request_args(self, messages: list[dict[str, Any]], schemas: list[dict[str, Any]]) -> dict[str, Any]:
        args: dict[str, Any] = {"model": self.model, "messages": messages}
        if self.temperature is not None:
            args["temperature"] = self.temperature
        if self.max_tokens:
            args["max_tokens"] = self.max_tokens
        if schemas:
            args["tools"] = schemas
        return args

    async def send_message_with_tools(
        self, messages: list[dict[str, Any]], schemas: list[dict[str, Any]]
    ) -> AssistantResponse:
        if self._client is None:
            raise ProviderError("OpenAI provider is not initialized")
        try:
            response = await self._client.chat.completions.create(
                **self._request_args(messages, schemas)
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}", cause=e) from e

        if not response.choices:
            raise ProviderError("OpenAI returned no choices")
        message = response.choices[0].message
        tool_calls = [
            ToolCall(
                id=tc.id,
                function=FunctionCall(
                    name=tc.function.name,
                    arguments=tc.function.arguments or "{}",
                ),
            )
            for tc in message.tool_calls or []
        ]
        return AssistantResponse(content=message.content, tool_calls=tool_calls or None)

    async def stream_message_with_tools(
        self,
        messages: list[dict[str, Any]],
        schemas: list[dict[str, Any]],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AssistantResponse:
        if self._client is None:
            raise ProviderError("OpenAI provider is not initialized")

        content_parts: list[str] = []
        # Tool call deltas arrive in fragments, keyed by index
        partial_calls: dict[int, dict[str, str]] = {}
        try:
            stream = await self._client.chat.completions.create(
                **self._request_args(messages, schemas), stream=True
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    content_parts.append(delta.content)
                    if on_chunk:
                        on_chunk(delta.content)
                for tc in delta.tool_calls or []:
                    slot = partial_calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                    if tc.id:
                        slot["id"] = tc.id
                    if tc.function is not None:
                        slot["name"] += tc.function.name or ""
                        slot["arguments"] += tc.function.arguments or ""
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI streaming request failed: {e}", cause=e) from e

        tool_calls = [
            ToolCall(
                id=slot["id"] or f"call_{index}",
                function=FunctionCall(name=slot["name"], arguments=slot["arguments"] or "{}"),
            )
            for index, slot in sorted(partial_calls.items())
        ]
        return AssistantResponse(
            content="".join(content_parts) or None,
            tool_calls=tool_calls or None,
        )
