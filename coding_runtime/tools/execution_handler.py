# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Execution of model-issued tool calls against a name → tool registry.

`execute_tool_call` never raises for a bad call: an unknown tool, malformed
arguments, a tool that fails or one that blows up all come back as a
ToolExecutionResult whose content the model can read and react to.
"""

import json
import time
import asyncio
import logging

from typing import Any, Iterable, Optional

from ..config import settings
from ..errors import ToolExecutionError, ToolNotFoundError, ToolValidationError
from ..events import EventBus
from ..types.event_types import Event, EventType
from ..types.tool_types import ToolExecutionResult, ToolInterface, ToolResult
from ..types.conversation_types import ToolCall

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ToolExecutionHandler:

    def __init__(
        self,
        tools: Iterable[ToolInterface] = (),
        agent_id: str = "main-agent",
        tool_timeout: Optional[float] = None,
        log_tool_usage: Optional[bool] = None,
    ):
        self.agent_id = agent_id
        self.tool_timeout = tool_timeout if tool_timeout is not None else settings.TOOL_TIMEOUT_SECONDS
        self.log_tool_usage = settings.LOG_TOOL_USAGE if log_tool_usage is None else log_tool_usage
        self._tools: dict[str, ToolInterface] = {}
        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolInterface) -> None:
        if tool.name in self._tools:
            logger.debug(f"Replacing registered tool {tool.name}")
        self._tools[tool.name] = tool

    def unregister_tool(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get_tool(self, name: str) -> Optional[ToolInterface]:
        return self._tools.get(name)

    def get_registered_tools(self) -> list[ToolInterface]:
        return list(self._tools.values())

    def get_tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def parse_arguments(self, call: ToolCall) -> dict[str, Any]:
        raw = call.function.arguments or "{}"
        try:
            args = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse arguments for tool {call.function.name}: {e}")
            raise ToolValidationError(
                f"Invalid JSON arguments for tool {call.function.name}: {e}", cause=e
            ) from e
        if not isinstance(args, dict):
            raise ToolValidationError(
                f"Arguments for tool {call.function.name} must be a JSON object, got {type(args).__name__}"
            )
        return args

    async def execute_tool_call(
        self,
        call: ToolCall,
        verbose: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ToolExecutionResult:
        name = call.function.name
        tool = self._tools.get(name)
        if tool is None:
            err = ToolNotFoundError(name, self.get_tool_names())
            logger.warning(f"{err.message}; available: {err.available_tools}")
            return ToolExecutionResult(
                success=False,
                content=json.dumps({"error": err.message, "available_tools": err.available_tools}),
                tool_call_id=call.id,
            )

        try:
            args = self.parse_arguments(call)
            result, execution_time = await self._run_tool(tool, args, verbose, cancel_event)
        except (ToolValidationError, ToolExecutionError) as e:
            return ToolExecutionResult(
                success=False,
                content=json.dumps({"error": e.message}),
                tool_call_id=call.id,
            )

        return ToolExecutionResult(
            success=True,
            content=result.to_model_content({"execution_time": execution_time}),
            tool_call_id=call.id,
        )

    async def _run_tool(
        self,
        tool: ToolInterface,
        args: dict[str, Any],
        verbose: bool,
        cancel_event: Optional[asyncio.Event],
    ) -> tuple[ToolResult, float]:
        event_bus = await EventBus.get_instance()
        await event_bus.publish(
            Event(
                type=EventType.TOOL_CALL,
                content=json.dumps(args, default=str),
                metadata={"name": tool.name, "args": args},
            ),
            self.agent_id,
        )
        if verbose:
            logger.info(f"Executing tool {tool.name} with args {args}")

        timeout = getattr(tool, "TIMEOUT", None) or self.tool_timeout
        start_time = time.time()
        try:
            async with asyncio.timeout(timeout):
                result = await self._await_unless_cancelled(tool.execute(args), cancel_event, tool.name)
            if not isinstance(result, ToolResult):
                result = ToolResult.model_validate(result)
        except TimeoutError as e:
            raise ToolExecutionError(
                tool.name, f"Tool {tool.name} timed out after {timeout} seconds", e
            ) from e
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.error(f"Error during tool execution: {str(e)}")
            raise ToolExecutionError(tool.name, f"Tool {tool.name} failed: {e}", e) from e
        execution_time = time.time() - start_time

        await event_bus.publish(
            Event(
                type=EventType.TOOL_RESULT,
                content=str(result.output if result.success else result.error),
                metadata={"name": tool.name, "tool_result": result},
            ),
            self.agent_id,
        )
        if self.log_tool_usage:
            logger.info(
                f"tool={tool.name} success={result.success} duration={execution_time:.3f}s "
                f"args={json.dumps(args, default=str)[:200]}"
            )
        if verbose:
            logger.info(f"Tool {tool.name} finished in {execution_time:.2f}s (success={result.success})")

        return result, execution_time

    async def _await_unless_cancelled(
        self, coro, cancel_event: Optional[asyncio.Event], tool_name: str
    ):
        if cancel_event is None:
            return await coro

        tool_task = asyncio.ensure_future(coro)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {tool_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            tool_task.cancel()
            raise
        finally:
            cancel_task.cancel()
        if tool_task in done:
            return tool_task.result()

        tool_task.cancel()
        raise ToolExecutionError(tool_name, f"Execution of {tool_name} was cancelled")
