# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json
import asyncio
import pytest

from typing import Any

from coding_runtime.events import EventBus
from coding_runtime.tools.execution_handler import ToolExecutionHandler
from coding_runtime.types.conversation_types import ToolCall
from coding_runtime.types.event_types import EventType
from coding_runtime.types.tool_types import ToolInterface, ToolResult


class RawTool(ToolInterface):
    """A tool that bypasses BaseTool's own error capture."""

    def __init__(self, name: str, behaviour):
        self._name = name
        self._behaviour = behaviour

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "raw test tool"

    @property
    def schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def execute(self, args: dict[str, Any]) -> ToolResult:
        return await self._behaviour(args)


def raw_call(call_id: str, name: str, arguments: str) -> ToolCall:
    call = ToolCall.create(call_id, name, {})
    call.function.arguments = arguments
    return call


class TestToolExecutionHandler:

    async def test_successful_call(self, echo_tool, make_call):
        handler = ToolExecutionHandler([echo_tool])

        result = await handler.execute_tool_call(make_call("call_1", "echo", {"text": "hello"}))

        assert result.success is True
        assert result.tool_call_id == "call_1"
        payload = json.loads(result.content)
        assert payload["success"] is True
        assert payload["data"] == "hello"
        assert payload["metadata"]["execution_time"] >= 0

    async def test_unknown_tool_lists_available_tools(self, echo_tool, make_call):
        handler = ToolExecutionHandler([echo_tool])

        result = await handler.execute_tool_call(make_call("call_1", "missing", {}))

        assert result.success is False
        payload = json.loads(result.content)
        assert payload["error"] == 'Tool "missing" not found'
        assert payload["available_tools"] == ["echo"]

    @pytest.mark.parametrize("arguments", ["{not json", "[1, 2]", '"text"'])
    async def test_bad_arguments_are_a_validation_error(self, echo_tool, arguments):
        handler = ToolExecutionHandler([echo_tool])

        result = await handler.execute_tool_call(raw_call("call_1", "echo", arguments))

        assert result.success is False
        assert "echo" in json.loads(result.content)["error"]

    async def test_empty_arguments_default_to_object(self, tmp_path):
        async def ok(args):
            return ToolResult(success=True, output=args)

        handler = ToolExecutionHandler([RawTool("raw", ok)])
        result = await handler.execute_tool_call(raw_call("call_1", "raw", ""))
        assert json.loads(result.content)["data"] == {}

    async def test_tool_exception_is_reported(self):
        async def explode(args):
            raise RuntimeError("disk on fire")

        handler = ToolExecutionHandler([RawTool("raw", explode)])

        result = await handler.execute_tool_call(raw_call("call_1", "raw", "{}"))

        assert result.success is False
        assert "disk on fire" in json.loads(result.content)["error"]

    async def test_tool_reported_failure_is_still_handler_success(self, echo_tool, make_call):
        handler = ToolExecutionHandler([echo_tool])

        result = await handler.execute_tool_call(make_call("call_1", "echo", {"wrong": 1}))

        assert result.success is True
        payload = json.loads(result.content)
        assert payload["success"] is False
        assert "Invalid arguments" in payload["error"]

    async def test_timeout(self):
        async def slow(args):
            await asyncio.sleep(5)
            return ToolResult(success=True)

        handler = ToolExecutionHandler([RawTool("slow", slow)], tool_timeout=0.05)

        result = await handler.execute_tool_call(raw_call("call_1", "slow", "{}"))

        assert result.success is False
        assert "timed out" in json.loads(result.content)["error"]

    async def test_tool_timeout_overrides_handler_timeout(self):
        async def slow(args):
            await asyncio.sleep(0.1)
            return ToolResult(success=True, output="finished")

        patient = RawTool("patient", slow)
        patient.TIMEOUT = 5
        handler = ToolExecutionHandler([patient, RawTool("hasty", slow)], tool_timeout=0.01)

        patient_result = await handler.execute_tool_call(raw_call("call_1", "patient", "{}"))
        hasty_result = await handler.execute_tool_call(raw_call("call_2", "hasty", "{}"))

        assert json.loads(patient_result.content)["data"] == "finished"
        assert hasty_result.success is False
        assert "timed out after 0.01 seconds" in json.loads(hasty_result.content)["error"]

    @pytest.mark.parametrize("output", [42, 2.5, True, ("a", "b")])
    async def test_plain_dict_result_with_any_output(self, output):
        async def count(args):
            return {"success": True, "output": output}

        handler = ToolExecutionHandler([RawTool("count", count)])

        result = await handler.execute_tool_call(raw_call("call_1", "count", "{}"))

        assert result.success is True
        payload = json.loads(result.content)
        assert payload["success"] is True
        assert payload["data"] == (list(output) if isinstance(output, tuple) else output)

    async def test_cancel_event_interrupts_a_running_tool(self):
        cancel_event = asyncio.Event()

        async def slow(args):
            cancel_event.set()
            await asyncio.sleep(5)
            return ToolResult(success=True)

        handler = ToolExecutionHandler([RawTool("slow", slow)])

        result = await handler.execute_tool_call(
            raw_call("call_1", "slow", "{}"), cancel_event=cancel_event
        )

        assert result.success is False
        assert "cancelled" in json.loads(result.content)["error"]

    async def test_publishes_call_and_result_events(self, echo_tool, make_call):
        handler = ToolExecutionHandler([echo_tool], agent_id="tester")

        await handler.execute_tool_call(make_call("call_1", "echo", {"text": "x"}))

        event_bus = await EventBus.get_instance()
        events = event_bus.get_events("tester")
        assert [e.type for e in events] == [EventType.TOOL_CALL, EventType.TOOL_RESULT]
        assert events[0].metadata["name"] == "echo"
        assert events[1].metadata["tool_result"].output == "x"

    def test_registry_management(self, echo_tool, tmp_path):
        handler = ToolExecutionHandler([echo_tool])
        replacement = type(echo_tool)(workdir=tmp_path)

        handler.register_tool(replacement)
        assert handler.get_tool("echo") is replacement
        assert handler.get_tool_names() == ["echo"]

        assert handler.unregister_tool("echo") is True
        assert handler.unregister_tool("echo") is False
        assert handler.get_registered_tools() == []
