# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Per-provider normalization of the tool-calling protocol.

The orchestrator talks to exactly one ProviderStrategy, chosen once when it
is built, and only ever sees AssistantResponse values coming back.
"""

import json
import logging

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..config import settings
from ..errors import ProviderError
from ..llm.base_provider import LLMProvider, ChunkCallback
from ..llm.schema_adapter import convert_to_anthropic, convert_to_gemini, convert_to_openai
from ..tools.execution_handler import ToolExecutionHandler
from ..types.tool_types import ToolInterface
from ..types.conversation_types import AssistantResponse, ConversationMessage, ToolCall

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ProviderStrategy(ABC):

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    @abstractmethod
    async def process_message(
        self,
        messages: list[ConversationMessage],
        tools: list[ToolInterface],
        on_chunk: Optional[ChunkCallback] = None,
        verbose: bool = False,
    ) -> AssistantResponse:
        pass


class OpenAIStrategy(ProviderStrategy):
    """Single request/response exchange with OpenAI-style tool schemas.

    With tools on offer the request is non-streaming, so tool call arguments
    never arrive half-written; without tools the reply is streamed.
    """

    def convert_tools(self, tools: list[ToolInterface]) -> list[dict[str, Any]]:
        return convert_to_openai(tools)

    async def process_message(
        self,
        messages: list[ConversationMessage],
        tools: list[ToolInterface],
        on_chunk: Optional[ChunkCallback] = None,
        verbose: bool = False,
    ) -> AssistantResponse:
        payload = [m.model_dump(exclude_none=True) for m in messages]
        schemas = self.convert_tools(tools)
        if verbose:
            logger.info(
                f"Sending {len(payload)} messages and {len(schemas)} tools to "
                f"{self.provider.get_provider_name()}"
            )
        if schemas:
            return await self.provider.send_message_with_tools(payload, schemas)
        return await self.provider.stream_message_with_tools(payload, [], on_chunk)


class AnthropicStrategy(OpenAIStrategy):

    def convert_tools(self, tools: list[ToolInterface]) -> list[dict[str, Any]]:
        return convert_to_anthropic(tools)


def _parse_json(raw: Optional[str]) -> Any:
    try:
        return json.loads(raw or "{}")
    except json.JSONDecodeError:
        return raw


class GeminiStrategy(ProviderStrategy):
    """Gemini's multi-turn function-calling protocol.

    The model emits `function_call` parts and expects `function_response`
    parts back in a user turn. This strategy runs that exchange itself,
    executing tools directly, and returns once a turn has no function call.
    The calls it ran are reported in `executed_calls`.

    `turn_check`, when set, is called with every call executed so far after
    each turn and may raise to stop the exchange early.
    """

    def __init__(
        self,
        provider: LLMProvider,
        tool_handler: ToolExecutionHandler,
        max_turns: Optional[int] = None,
        turn_check: Optional[Callable[[list[ToolCall]], None]] = None,
    ):
        super().__init__(provider)
        self.tool_handler = tool_handler
        self.max_turns = max_turns or settings.GEMINI_MAX_TOOL_TURNS
        self.turn_check = turn_check

    @staticmethod
    def _function_call_part(call: ToolCall) -> dict[str, Any]:
        args = _parse_json(call.function.arguments)
        return {"function_call": {"name": call.function.name, "args": args if isinstance(args, dict) else {}}}

    @staticmethod
    def _function_response_part(name: str, content: Optional[str]) -> dict[str, Any]:
        return {"function_response": {"name": name, "response": {"result": _parse_json(content)}}}

    def to_contents(self, messages: list[ConversationMessage]) -> list[dict[str, Any]]:
        contents: list[dict[str, Any]] = []
        names_by_call_id: dict[str, str] = {}
        for msg in messages:
            match msg.role:
                case "system":
                    contents.append({"role": "system", "parts": [{"text": msg.content or ""}]})
                case "user":
                    contents.append({"role": "user", "parts": [{"text": msg.content or ""}]})
                case "assistant":
                    parts = [{"text": msg.content}] if msg.content else []
                    for call in msg.tool_calls or []:
                        names_by_call_id[call.id] = call.function.name
                        parts.append(self._function_call_part(call))
                    contents.append({"role": "model", "parts": parts or [{"text": ""}]})
                case "tool":
                    name = names_by_call_id.get(msg.tool_call_id or "", "unknown_tool")
                    part = self._function_response_part(name, msg.content)
                    last = contents[-1] if contents else None
                    if last and last["role"] == "user" and all(
                        "function_response" in p for p in last["parts"]
                    ):
                        last["parts"].append(part)
                    else:
                        contents.append({"role": "user", "parts": [part]})
        return contents

    async def process_message(
        self,
        messages: list[ConversationMessage],
        tools: list[ToolInterface],
        on_chunk: Optional[ChunkCallback] = None,
        verbose: bool = False,
    ) -> AssistantResponse:
        contents = self.to_contents(messages)
        declarations = convert_to_gemini(tools)
        if not declarations:
            return await self.provider.stream_message_with_tools(contents, [], on_chunk)

        executed: list[ToolCall] = []
        for turn in range(self.max_turns):
            response = await self.provider.send_message_with_tools(contents, declarations)
            if not response.tool_calls:
                return AssistantResponse(content=response.content, executed_calls=executed)

            if verbose:
                logger.info(f"Gemini turn {turn}: {len(response.tool_calls)} function call(s)")
            model_parts = [{"text": response.content}] if response.content else []
            model_parts.extend(self._function_call_part(c) for c in response.tool_calls)
            contents.append({"role": "model", "parts": model_parts})

            response_parts = []
            for call in response.tool_calls:
                result = await self.tool_handler.execute_tool_call(call, verbose)
                executed.append(call)
                response_parts.append(self._function_response_part(call.function.name, result.content))
            contents.append({"role": "user", "parts": response_parts})
            if self.turn_check is not None:
                self.turn_check(executed)

        raise ProviderError(f"Gemini function calling did not finish within {self.max_turns} turns")


def create_provider_strategy(
    provider_name: str,
    provider: LLMProvider,
    tool_handler: ToolExecutionHandler,
) -> ProviderStrategy:
    """Pick the strategy for a provider name; unknown names get the OpenAI shape."""
    match provider_name.lower():
        case "anthropic":
            return AnthropicStrategy(provider)
        case "gemini" | "google":
            return GeminiStrategy(provider, tool_handler)
        case "openai":
            return OpenAIStrategy(provider)
        case _:
            logger.warning(f"Unknown provider {provider_name!r}, using the OpenAI strategy")
            return OpenAIStrategy(provider)
