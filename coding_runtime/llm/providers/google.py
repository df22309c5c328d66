# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Google genai SDK provider implementation.

Unlike the other providers this one is fed role/parts contents directly
(built by the Gemini strategy), e.g.
`{"role": "model", "parts": [{"function_call": {"name": ..., "args": {...}}}]}`.
A `system` role entry is lifted out into the system instruction.
"""

import os
import json
import logging

from uuid import uuid4
from typing import Any, Optional

from google import genai
from google.genai import errors, types

from ..base_provider import LLMProvider, ChunkCallback
from ...errors import ProviderError
from ...types.conversation_types import AssistantResponse, FunctionCall, ToolCall

logger = logging.getLogger(__name__)
logger.setLevel(logging.WARNING)


class GoogleProvider(LLMProvider):

    def __init__(
        self,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[genai.Client] = None,
    ):
        super().__init__(model, temperature, max_tokens)
        self._client = client

    def get_provider_name(self) -> str:
        return "gemini"

    def is_ready(self) -> bool:
        return self._client is not None

    async def initialize(self) -> bool:
        if self._client is not None:
            return True
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            logger.error("GEMINI_API_KEY is not set; Gemini provider unavailable")
            return False
        self._client = genai.Client(api_key=api_key)
        return True

    def _prepare_contents(
        self, contents: list[dict[str, Any]]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        system_parts = []
        prepared = []
        for content in contents:
            if content.get("role") == "system":
                system_parts.extend(p.get("text", "") for p in content.get("parts", []))
            else:
                prepared.append(content)
        return ("\n\n".join(system_parts) or None), prepared

    def _config(self, system: str | None, schemas: list[dict[str, Any]]) -> types.GenerateContentConfig:
        tools = [types.Tool(function_declarations=schemas)] if schemas else None
        return types.GenerateContentConfig(
            system_instruction=system,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
            tools=tools,
        )

    def _collect_parts(self, parts: list[Any], text_parts: list[str], tool_calls: list[ToolCall]) -> None:
        for part in parts or []:
            if getattr(part, "function_call", None):
                fc = part.function_call
                fc_args = dict(fc.args or {})
                fc_args.pop("_dummy", None)
                tool_calls.append(
                    ToolCall(
                        id=fc.id or f"gemini_tool_call_{uuid4().hex[-4:]}",
                        function=FunctionCall(
                            name=fc.name or "unknown_tool",
                            arguments=json.dumps(fc_args),
                        ),
                    )
                )
            elif getattr(part, "text", None):
                text_parts.append(part.text)

    async def send_message_with_tools(
        self, messages: list[dict[str, Any]], schemas: list[dict[str, Any]]
    ) -> AssistantResponse:
        if self._client is None:
            raise ProviderError("Gemini provider is not initialized")
        system, contents = self._prepare_contents(messages)
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=self._config(system, schemas),
            )
        except errors.APIError as e:
            raise ProviderError(f"Gemini request failed: {e}", cause=e) from e

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        if response.candidates and response.candidates[0].content is not None:
            self._collect_parts(response.candidates[0].content.parts, text_parts, tool_calls)
        return AssistantResponse(
            content="".join(text_parts) or None,
            tool_calls=tool_calls or None,
        )

    async def stream_message_with_tools(
        self,
        messages: list[dict[str, Any]],
        schemas: list[dict[str, Any]],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AssistantResponse:
        if self._client is None:
            raise ProviderError("Gemini provider is not initialized")
        system, contents = self._prepare_contents(messages)

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self.model,
                contents=contents,
                config=self._config(system, schemas),
            )
            async for chunk in stream:
                if not chunk.candidates or chunk.candidates[0].content is None:
                    continue
                before = len(text_parts)
                self._collect_parts(chunk.candidates[0].content.parts, text_parts, tool_calls)
                if on_chunk:
                    for text in text_parts[before:]:
                        on_chunk(text)
        except errors.APIError as e:
            raise ProviderError(f"Gemini streaming request failed: {e}", cause=e) from e

        return AssistantResponse(
            content="".join(text_parts) or None,
            tool_calls=tool_calls or None,
        )
