# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The tool orchestration loop.

One `process_message` call alternates provider round-trips and tool
executions until the model replies without tool calls, or until a loop
heuristic, the provider or a cancellation stops it. The history is kept
well formed throughout: every assistant message with tool calls is followed
by exactly one tool message per call.
"""

import json
import time
import asyncio
import logging
import platform

from typing import Iterable, Optional
from datetime import datetime

from ..config import LoopDetectionConfig, settings
from ..errors import LoopDetectedError, OrchestrationCancelled, OrchestrationError, ProviderError
from ..llm.base_provider import ChunkCallback, LLMProvider
from ..tools.execution_handler import ToolExecutionHandler
from ..types.tool_types import ToolInterface
from ..types.conversation_types import ConversationMessage, ToolCall
from ..utils.project_context import ProjectContext
from .conversation import ConversationManager
from .loop_detection import ToolCallRecord, detect_loop
from .strategies import GeminiStrategy, ProviderStrategy, create_provider_strategy

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

BASE_SYSTEM_PROMPT = """You are a coding assistant working in a software project on the user's machine.
Use the tools available to you to inspect and change the project. Call a tool
whenever you need information you do not have; do not guess file contents.
When the task is done, reply with a concise summary of what you did and no
further tool calls."""


class ToolOrchestrator:

    def __init__(
        self,
        provider: LLMProvider,
        tools: Iterable[ToolInterface] = (),
        provider_name: Optional[str] = None,
        agent_id: str = "main-agent",
        loop_config: Optional[LoopDetectionConfig] = None,
        tool_handler: Optional[ToolExecutionHandler] = None,
        strategy: Optional[ProviderStrategy] = None,
    ):
        self.provider = provider
        self.agent_id = agent_id
        self.loop_config = loop_config or settings.LOOP_DETECTION
        self.conversation = ConversationManager()
        self.tool_handler = tool_handler or ToolExecutionHandler(agent_id=agent_id)
        for tool in tools:
            self.tool_handler.register_tool(tool)

        self.provider_name = provider_name or provider.get_provider_name()
        self.strategy = strategy or create_provider_strategy(
            self.provider_name, provider, self.tool_handler
        )
        self._project_context: Optional[ProjectContext] = None
        self._call_history: list[ToolCallRecord] = []
        self._start_time = time.monotonic()
        self._iteration = 0
        if isinstance(self.strategy, GeminiStrategy) and self.strategy.turn_check is None:
            self.strategy.turn_check = self._check_delegated_turn

    # Tool registry ===========================================================

    def register_tool(self, tool: ToolInterface) -> None:
        self.tool_handler.register_tool(tool)

    def get_registered_tools(self) -> list[ToolInterface]:
        return self.tool_handler.get_registered_tools()

    # History ================================================================

    def clear_history(self) -> None:
        self.conversation.clear_history()
        self._call_history = []

    def get_history(self) -> list[ConversationMessage]:
        return self.conversation.get_history()

    def get_conversation_summary(self) -> str:
        return self.conversation.get_conversation_summary()

    def get_tools_used(self) -> list[str]:
        """Distinct tool names called during the last `process_message`, in first-use order."""
        return list(dict.fromkeys(c.tool_name for c in self._call_history))

    # Project context ========================================================

    def set_project_context(self, context: Optional[ProjectContext]) -> None:
        self._project_context = context

    def get_project_context(self) -> Optional[ProjectContext]:
        return self._project_context

    def build_system_message(self) -> ConversationMessage:
        sections = [
            BASE_SYSTEM_PROMPT,
            f"Platform: {platform.system()}. Current date: {datetime.now().strftime('%Y-%m-%d')}.",
        ]
        tools = self.get_registered_tools()
        if tools:
            tool_lines = [f"- {t.name}: {t.description.strip().splitlines()[0]}" for t in tools]
            sections.append("Available tools:\n" + "\n".join(tool_lines))
        if self._project_context is not None:
            sections.append(self._project_context.format_for_prompt())
        return ConversationMessage(role="system", content="\n\n".join(sections))

    # Main loop ==============================================================

    async def process_message(
        self,
        user_input: str,
        on_chunk: Optional[ChunkCallback] = None,
        verbose: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """Run the tool loop for one user turn and return the final answer text.

        Raises:
            ProviderError: the provider is not ready, or a round-trip failed.
            LoopDetectedError: a time, pattern or volume limit was crossed.
            OrchestrationCancelled: `cancel_event` was set.
        """
        if not self.provider.is_ready():
            raise ProviderError(
                f"Provider {self.provider_name} is not ready; call initialize() first"
            )

        self.conversation.add_user_message(user_input)
        self._call_history = []
        self._start_time = time.monotonic()
        iteration = 0

        while True:
            iteration += 1
            self._iteration = iteration
            if cancel_event is not None and cancel_event.is_set():
                raise OrchestrationCancelled("Cancelled before provider call", iteration)

            messages = self.conversation.build_messages(self.build_system_message())
            if verbose:
                logger.info(f"Awaiting completion for iteration {iteration} ...")
            try:
                response = await self.strategy.process_message(
                    messages, self.get_registered_tools(), on_chunk, verbose
                )
            except ProviderError as e:
                if e.iteration is not None:
                    raise
                raise ProviderError(e.message, iteration, e) from e
            except OrchestrationError:
                raise
            except Exception as e:
                logger.error(f"Provider call failed: {e}")
                raise ProviderError(f"Failed to process message: {e}", iteration, e) from e

            for call in response.executed_calls:
                self._record_call(call)
            if response.executed_calls:
                self._check_time_cap(iteration)
                self._check_loop(self._call_history, iteration)

            if not response.tool_calls:
                content = response.content or ""
                self.conversation.add_assistant_message(content)
                return content

            self._check_time_cap(iteration)
            self.conversation.add_assistant_message(response.content, response.tool_calls)
            await self._execute_tool_calls(response.tool_calls, verbose, cancel_event, iteration)
            self._check_loop(self._call_history, iteration)

    def _check_time_cap(self, iteration: int) -> None:
        elapsed = time.monotonic() - self._start_time
        if elapsed > self.loop_config.time_cap_seconds:
            raise LoopDetectedError(
                f"tool loop ran for {elapsed:.0f}s, over the "
                f"{self.loop_config.time_cap_seconds:.0f}s limit",
                iteration,
            )

    def _check_loop(self, history: list[ToolCallRecord], iteration: int) -> None:
        reason = detect_loop(history, self.loop_config)
        if reason:
            logger.warning(f"Stopping orchestration: {reason}")
            raise LoopDetectedError(reason, iteration)

    def _check_delegated_turn(self, executed: list[ToolCall]) -> None:
        """Apply the loop limits between the turns of a strategy that runs tools itself."""
        history = self._call_history + [self._to_record(c) for c in executed]
        self._check_time_cap(self._iteration)
        self._check_loop(history, self._iteration)

    async def _execute_tool_calls(
        self,
        tool_calls: list[ToolCall],
        verbose: bool,
        cancel_event: Optional[asyncio.Event],
        iteration: int,
    ) -> None:
        for index, call in enumerate(tool_calls):
            if cancel_event is not None and cancel_event.is_set():
                # Answer the remaining calls so the history stays well formed
                for pending in tool_calls[index:]:
                    self.conversation.add_tool_result(
                        json.dumps({"error": "Cancelled before execution"}), pending.id
                    )
                raise OrchestrationCancelled("Cancelled during tool execution", iteration)

            result = await self.tool_handler.execute_tool_call(call, verbose, cancel_event)
            self.conversation.add_tool_result(result.content, call.id)
            self._record_call(call)

    @staticmethod
    def _to_record(call: ToolCall) -> ToolCallRecord:
        return ToolCallRecord(tool_name=call.function.name, arguments=call.function.arguments)

    def _record_call(self, call: ToolCall) -> None:
        self._call_history.append(self._to_record(call))
