# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Specialized sub-agents.

A SubAgent wraps an Agent that only sees an allow-listed subset of tools,
prefixes every task with its persona, and reports progress to its parent
over a communication channel. Parent notifications are best-effort: a
failure to deliver one is logged and never fails the task.
"""

import json
import time
import asyncio
import logging
import contextlib

from uuid import uuid4
from typing import Any, Iterable, Optional

from ..errors import AgentNotReadyError, SubAgentError
from ..events import EventBus
from ..communication import SubAgentCommunication
from ..types.tool_types import ToolInterface
from ..types.event_types import Event, EventType
from ..types.subagent_types import (
    MessageType,
    Specialization,
    SubAgentMessage,
    SubAgentState,
    SubAgentStatus,
    TaskDelegation,
    TaskError,
    TaskMetadata,
    TaskResult,
)
from .agent import Agent

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TASK_EXECUTION_ERROR = "TASK_EXECUTION_ERROR"


class SubAgent:

    def __init__(
        self,
        agent: Agent,
        specialization: Specialization | str,
        allowed_tools: Iterable[str],
        tools: Iterable[ToolInterface] = (),
        agent_id: Optional[str] = None,
        persona: Optional[str] = None,
        channel: Optional[SubAgentCommunication] = None,
        parent: Optional[Agent] = None,
        slots: Optional[asyncio.Semaphore] = None,
        verbose: bool = False,
    ):
        self.specialization = str(getattr(specialization, "value", specialization))
        self.id = agent_id or f"{self.specialization}-{uuid4().hex[:8]}"
        self.agent = agent
        self.persona = persona
        self.parent = parent
        self.verbose = verbose
        self._allowed_tools = list(dict.fromkeys(allowed_tools))
        self._candidate_tools = list(tools)
        self._channel = channel
        self._slots = slots
        self._current_task_id: Optional[str] = None
        self._status = SubAgentStatus(
            id=self.id, state=SubAgentState.IDLE, specialization=self.specialization
        )

    async def initialize(self) -> bool:
        """Initialize the inner agent with the allowed tools only."""
        try:
            allowed = set(self._allowed_tools)
            self.agent.tools = [
                t for t in [*self.agent.tools, *self._candidate_tools] if t.name in allowed
            ]
            if not await self.agent.initialize():
                raise SubAgentError(f"Failed to initialize inner agent of {self.id}")

            if self.parent is not None and self.parent.get_project_context() is not None:
                self.agent.set_project_context(self.parent.get_project_context())
        except Exception as e:
            logger.error(f"Failed to initialize sub-agent {self.id}: {e}")
            self._set_state(SubAgentState.ERROR)
            return False

        self._set_state(SubAgentState.IDLE)
        if self.verbose:
            names = [t.name for t in self.agent.get_registered_tools()]
            logger.info(f"Sub-agent {self.id} initialized with tools {names}")
        return True

    def is_ready(self) -> bool:
        return self._status.state == SubAgentState.IDLE and self.agent.is_ready()

    async def process_task(self, delegation: TaskDelegation) -> TaskResult:
        """Run a delegated task. Failures come back in the TaskResult, never as exceptions."""
        if not self.is_ready():
            return TaskResult(
                task_id=delegation.task_id,
                success=False,
                error=TaskError(
                    message="Sub-agent is not ready to process tasks",
                    code=AgentNotReadyError.code,
                ),
            )

        self._current_task_id = delegation.task_id
        self._set_state(SubAgentState.BUSY)
        start_time = time.time()
        await self._publish_agent_call(delegation)

        try:
            async with self._slots or contextlib.nullcontext():
                await self._notify_parent(
                    MessageType.PROGRESS_UPDATE,
                    {"task_id": delegation.task_id, "status": "started"},
                )
                async with asyncio.timeout(delegation.timeout):
                    result = await self.agent.process_message(
                        self._build_input(delegation), verbose=self.verbose
                    )
        except asyncio.CancelledError:
            self._current_task_id = None
            self._set_state(SubAgentState.ERROR)
            raise
        except Exception as e:
            execution_time = time.time() - start_time
            message = str(e) or type(e).__name__
            logger.error(f"Sub-agent {self.id} failed task {delegation.task_id}: {message}")
            await self._notify_parent(
                MessageType.ERROR,
                {"task_id": delegation.task_id, "status": "error", "error": message},
            )
            self._current_task_id = None
            self._set_state(SubAgentState.ERROR)
            await self._publish_agent_result(message, "error", execution_time)
            return TaskResult(
                task_id=delegation.task_id,
                success=False,
                error=TaskError(
                    message=message,
                    code=TASK_EXECUTION_ERROR,
                    details={"execution_time": execution_time},
                ),
            )

        execution_time = time.time() - start_time
        await self._notify_parent(
            MessageType.RESULT,
            {
                "task_id": delegation.task_id,
                "status": "completed",
                "result": result,
                "execution_time": execution_time,
            },
        )
        self._current_task_id = None
        self._set_state(SubAgentState.IDLE)
        await self._publish_agent_result(result, "success", execution_time)
        return TaskResult(
            task_id=delegation.task_id,
            success=True,
            result=result,
            metadata=TaskMetadata(
                tools_used=self.agent.get_tools_used(), execution_time=execution_time
            ),
        )

    def get_status(self) -> SubAgentStatus:
        return self._status.model_copy()

    def get_allowed_tools(self) -> list[str]:
        return list(self._allowed_tools)

    def get_available_tools(self) -> list[ToolInterface]:
        return self.agent.get_registered_tools()

    def get_communication_channel(self) -> Optional[SubAgentCommunication]:
        return self._channel

    async def shutdown(self) -> None:
        if self._status.state == SubAgentState.STOPPED:
            return
        self._set_state(SubAgentState.STOPPED)
        if self._channel is not None:
            await self._channel.close()
        if self.verbose:
            logger.info(f"Sub-agent {self.id} shutdown complete")

    # Internals ==============================================================

    def _build_input(self, delegation: TaskDelegation) -> str:
        sections = []
        if self.persona:
            sections.append(self.persona)
        sections.append(f"Available tools: {', '.join(self._allowed_tools)}")
        if delegation.context:
            sections.append(f"Context: {json.dumps(delegation.context, default=str)}")
        sections.append(f"Task: {delegation.user_input}")
        return "\n\n".join(sections)

    def _set_state(self, state: SubAgentState) -> None:
        self._status = self._status.model_copy(
            update={
                "state": state,
                "current_task_id": self._current_task_id,
                "last_activity": time.time(),
            }
        )

    async def _notify_parent(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        if self._channel is None or self._channel.parent_id is None:
            return
        try:
            await self._channel.send_to_parent(
                SubAgentMessage(type=message_type, from_=self.id, payload=payload)
            )
        except Exception as e:
            logger.warning(f"Failed to send {message_type.value} from sub-agent {self.id}: {e}")

    async def _publish_agent_call(self, delegation: TaskDelegation) -> None:
        event_bus = await EventBus.get_instance()
        await event_bus.publish(
            Event(
                type=EventType.AGENT_CALL,
                content=delegation.user_input,
                metadata={
                    "name": self.specialization,
                    "task_id": delegation.task_id,
                    "args": delegation.model_dump(),
                },
            ),
            self.parent.agent_id if self.parent is not None else self.id,
        )

    async def _publish_agent_result(self, content: str, status: str, execution_time: float) -> None:
        event_bus = await EventBus.get_instance()
        await event_bus.publish(
            Event(
                type=EventType.AGENT_RESULT,
                content=content,
                metadata={
                    "name": self.specialization,
                    "status": status,
                    "execution_time": execution_time,
                },
            ),
            self.id,
        )

    def __repr__(self) -> str:
        return f"SubAgent(id={self.id!r}, specialization={self.specialization!r})"
