# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the ToolOrchestrator loop."""
import json
import asyncio
import pytest

from unittest.mock import AsyncMock, Mock

from coding_runtime.config import LoopDetectionConfig
from coding_runtime.errors import LoopDetectedError, OrchestrationCancelled, ProviderError
from coding_runtime.events import EventBus
from coding_runtime.orchestration import ToolOrchestrator
from coding_runtime.orchestration.strategies import (
    AnthropicStrategy,
    GeminiStrategy,
    OpenAIStrategy,
    ProviderStrategy,
)
from coding_runtime.types.conversation_types import AssistantResponse, ToolCall
from coding_runtime.types.event_types import EventType
from coding_runtime.utils.project_context import ProjectContext


def scripted_strategy(*responses) -> Mock:
    strategy = Mock(spec=ProviderStrategy)
    strategy.process_message = AsyncMock(side_effect=list(responses))
    return strategy


class TestToolOrchestrator:

    async def test_end_to_end_echo(self, scripted_provider, echo_tool):
        strategy = scripted_strategy(
            AssistantResponse(tool_calls=[ToolCall.create("call_1", "echo", {"text": "hi"})]),
            AssistantResponse(content="done"),
        )
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool], strategy=strategy)

        result = await orchestrator.process_message("say hi")

        assert result == "done"
        history = orchestrator.get_history()
        assert [m.role for m in history] == ["user", "assistant", "tool", "assistant"]
        assert history[0].content == "say hi"
        assert history[1].tool_calls[0].id == "call_1"
        assert history[2].tool_call_id == "call_1"
        tool_content = json.loads(history[2].content)
        assert tool_content["success"] is True
        assert tool_content["data"] == "hi"
        assert "execution_time" in tool_content["metadata"]
        assert history[3].content == "done"
        assert orchestrator.get_tools_used() == ["echo"]

    async def test_no_tool_calls_is_a_single_round_trip(self, scripted_provider, echo_tool):
        strategy = scripted_strategy(AssistantResponse(content="  plain answer\n"))
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool], strategy=strategy)

        result = await orchestrator.process_message("question")

        assert result == "  plain answer\n"
        assert strategy.process_message.await_count == 1
        assert len(orchestrator.get_history()) == 2

    async def test_missing_content_returns_empty_string(self, scripted_provider):
        strategy = scripted_strategy(AssistantResponse(content=None))
        orchestrator = ToolOrchestrator(scripted_provider(), strategy=strategy)
        assert await orchestrator.process_message("question") == ""

    async def test_not_ready_provider_fails_before_mutation(self, scripted_provider):
        strategy = scripted_strategy()
        orchestrator = ToolOrchestrator(scripted_provider(ready=False), strategy=strategy)

        with pytest.raises(ProviderError):
            await orchestrator.process_message("hello")

        assert orchestrator.get_history() == []
        strategy.process_message.assert_not_called()

    async def test_provider_exception_names_the_iteration(self, scripted_provider, echo_tool):
        strategy = scripted_strategy(
            AssistantResponse(tool_calls=[ToolCall.create("call_1", "echo", {"text": "a"})]),
            RuntimeError("connection reset"),
        )
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool], strategy=strategy)

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.process_message("hello")

        assert exc_info.value.iteration == 2
        assert "Iteration 2" in str(exc_info.value)
        assert "connection reset" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, RuntimeError)

    async def test_unknown_tool_is_reported_to_the_model(self, scripted_provider, echo_tool):
        strategy = scripted_strategy(
            AssistantResponse(tool_calls=[ToolCall.create("call_1", "nope", {})]),
            AssistantResponse(content="sorry"),
        )
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool], strategy=strategy)

        assert await orchestrator.process_message("hello") == "sorry"
        tool_message = orchestrator.get_history()[2]
        payload = json.loads(tool_message.content)
        assert payload["available_tools"] == ["echo"]

    async def test_loop_detection_aborts(self, scripted_provider, echo_tool):
        responses = [
            AssistantResponse(tool_calls=[ToolCall.create(f"call_{i}", "echo", {"text": "again"})])
            for i in range(8)
        ]
        orchestrator = ToolOrchestrator(
            scripted_provider(), [echo_tool], strategy=scripted_strategy(*responses)
        )

        with pytest.raises(LoopDetectedError) as exc_info:
            await orchestrator.process_message("loop forever")

        assert exc_info.value.iteration == 8
        assert "echo" in exc_info.value.reason
        # The history stays well formed: the last tool call has its result
        history = orchestrator.get_history()
        assert history[-1].role == "tool"
        assert history[-1].tool_call_id == "call_7"

    async def test_time_cap_is_checked_before_appending(self, scripted_provider, echo_tool):
        strategy = scripted_strategy(
            AssistantResponse(tool_calls=[ToolCall.create("call_1", "echo", {"text": "a"})]),
        )
        config = LoopDetectionConfig(time_cap_seconds=1e-9)
        orchestrator = ToolOrchestrator(
            scripted_provider(), [echo_tool], loop_config=config, strategy=strategy
        )

        with pytest.raises(LoopDetectedError):
            await orchestrator.process_message("hello")

        assert [m.role for m in orchestrator.get_history()] == ["user"]

    async def test_cancel_before_first_iteration(self, scripted_provider):
        strategy = scripted_strategy()
        orchestrator = ToolOrchestrator(scripted_provider(), strategy=strategy)
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(OrchestrationCancelled):
            await orchestrator.process_message("hello", cancel_event=cancel_event)
        strategy.process_message.assert_not_called()

    async def test_cancel_mid_batch_answers_every_call(self, scripted_provider, echo_tool):
        cancel_event = asyncio.Event()
        calls = [ToolCall.create(f"call_{i}", "echo", {"text": str(i)}) for i in range(3)]
        strategy = scripted_strategy(AssistantResponse(tool_calls=calls))
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool], strategy=strategy)

        async def cancel_after_first(event):
            cancel_event.set()

        event_bus = await EventBus.get_instance()
        event_bus.subscribe(EventType.TOOL_RESULT, cancel_after_first)

        with pytest.raises(OrchestrationCancelled):
            await orchestrator.process_message("hello", cancel_event=cancel_event)

        history = orchestrator.get_history()
        tool_messages = [m for m in history if m.role == "tool"]
        assert [m.tool_call_id for m in tool_messages] == ["call_0", "call_1", "call_2"]
        assert json.loads(tool_messages[0].content)["success"] is True
        assert "Cancelled" in json.loads(tool_messages[1].content)["error"]

    async def test_gemini_executed_calls_count_as_tools_used(self, scripted_provider):
        strategy = scripted_strategy(
            AssistantResponse(
                content="found it",
                executed_calls=[ToolCall.create("g1", "read", {"file_path": "a.py"})],
            )
        )
        orchestrator = ToolOrchestrator(scripted_provider(name="gemini"), strategy=strategy)
        assert await orchestrator.process_message("where?") == "found it"
        assert orchestrator.get_tools_used() == ["read"]

    async def test_executed_calls_feed_loop_detection(self, scripted_provider, echo_tool):
        repeated = [ToolCall.create(f"g{i}", "echo", {"text": "same"}) for i in range(9)]
        strategy = scripted_strategy(AssistantResponse(content="done", executed_calls=repeated))
        orchestrator = ToolOrchestrator(
            scripted_provider(name="gemini"), [echo_tool], strategy=strategy
        )

        with pytest.raises(LoopDetectedError) as exc_info:
            await orchestrator.process_message("loop inside the provider")

        assert "echo" in exc_info.value.reason
        assert [m.role for m in orchestrator.get_history()] == ["user"]

    async def test_executed_calls_respect_the_time_cap(self, scripted_provider):
        strategy = scripted_strategy(
            AssistantResponse(
                content="done",
                executed_calls=[ToolCall.create("g1", "read", {"file_path": "a.py"})],
            )
        )
        orchestrator = ToolOrchestrator(
            scripted_provider(name="gemini"),
            loop_config=LoopDetectionConfig(time_cap_seconds=1e-9),
            strategy=strategy,
        )

        with pytest.raises(LoopDetectedError):
            await orchestrator.process_message("hello")

    async def test_gemini_stops_between_turns(self, scripted_provider, echo_tool):
        turns = [
            AssistantResponse(tool_calls=[ToolCall.create(f"g{i}", "echo", {"text": "same"})])
            for i in range(9)
        ]
        provider = scripted_provider(turns + [AssistantResponse(content="done")], name="gemini")
        orchestrator = ToolOrchestrator(provider, [echo_tool])

        with pytest.raises(LoopDetectedError) as exc_info:
            await orchestrator.process_message("loop forever")

        assert exc_info.value.iteration == 1
        # The eighth identical call trips the streak limit; the ninth turn never runs
        assert len(provider.requests) == 8
        assert [m.role for m in orchestrator.get_history()] == ["user"]

    async def test_system_message_lists_tools_and_project(self, scripted_provider, echo_tool):
        strategy = scripted_strategy(AssistantResponse(content="ok"))
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool], strategy=strategy)
        orchestrator.set_project_context(
            ProjectContext(working_directory="/tmp/proj", summary="proj project")
        )

        await orchestrator.process_message("hello")

        messages = strategy.process_message.await_args.args[0]
        assert messages[0].role == "system"
        assert "- echo:" in messages[0].content
        assert "proj project" in messages[0].content
        assert messages[1].content == "hello"

    async def test_clear_history(self, scripted_provider):
        strategy = scripted_strategy(AssistantResponse(content="ok"))
        orchestrator = ToolOrchestrator(scripted_provider(), strategy=strategy)
        await orchestrator.process_message("hello")

        orchestrator.clear_history()

        assert orchestrator.get_history() == []
        assert orchestrator.get_conversation_summary() == ""

    def test_register_tool_last_write_wins(self, scripted_provider, echo_tool, tmp_path):
        orchestrator = ToolOrchestrator(scripted_provider(), [echo_tool])
        replacement = type(echo_tool)(workdir=tmp_path)
        orchestrator.register_tool(replacement)
        tools = orchestrator.get_registered_tools()
        assert len(tools) == 1
        assert tools[0] is replacement

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("openai", OpenAIStrategy),
            ("anthropic", AnthropicStrategy),
            ("gemini", GeminiStrategy),
            ("something-else", OpenAIStrategy),
        ],
    )
    def test_strategy_chosen_from_provider_name(self, scripted_provider, name, expected):
        orchestrator = ToolOrchestrator(scripted_provider(name=name))
        assert type(orchestrator.strategy) is expected
