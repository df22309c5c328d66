# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The top-level coding agent: a provider, a tool set and an orchestrator."""

import asyncio
import logging

from pathlib import Path
from typing import Iterable, Optional

from ..config import LoopDetectionConfig, settings
from ..errors import ProviderError
from ..events import EventBus
from ..llm import LLMProvider, ChunkCallback, create_provider
from ..tools import default_tools
from ..types.tool_types import ToolInterface
from ..types.event_types import Event, EventType
from ..orchestration import ToolOrchestrator
from ..utils.project_context import ProjectContext, discover_project

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class Agent:

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        tools: Optional[Iterable[ToolInterface]] = None,
        workdir: Path | str | None = None,
        agent_id: str = "main-agent",
        discover: bool = True,
        loop_config: Optional[LoopDetectionConfig] = None,
    ):
        self.agent_id = agent_id
        self.workdir = Path(workdir) if workdir is not None else Path(settings.WORKDIR)
        self.provider = provider or create_provider(
            settings.PROVIDER,
            settings.MODEL,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
        )
        self.tools: list[ToolInterface] = (
            list(tools) if tools is not None else default_tools(self.workdir)
        )
        self.discover = discover
        self.loop_config = loop_config
        self.orchestrator: Optional[ToolOrchestrator] = None
        self._project_context: Optional[ProjectContext] = None

    async def initialize(self) -> bool:
        """Initialize the provider, discover the project and build the orchestrator."""
        try:
            ready = await self.provider.initialize()
        except Exception as e:
            logger.error(f"Failed to initialize provider {self.provider}: {e}")
            return False
        if not ready:
            logger.warning(f"Provider {self.provider} is not ready")
            return False

        if self.discover and self._project_context is None:
            self._project_context = await asyncio.to_thread(discover_project, self.workdir)

        self.orchestrator = ToolOrchestrator(
            self.provider,
            self.tools,
            agent_id=self.agent_id,
            loop_config=self.loop_config,
        )
        self.orchestrator.set_project_context(self._project_context)
        return True

    def is_ready(self) -> bool:
        return self.orchestrator is not None and self.provider.is_ready()

    async def process_message(
        self,
        user_input: str,
        on_chunk: Optional[ChunkCallback] = None,
        verbose: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        if self.orchestrator is None:
            raise ProviderError(f"Agent {self.agent_id} is not initialized")

        response = await self.orchestrator.process_message(
            user_input, on_chunk=on_chunk, verbose=verbose, cancel_event=cancel_event
        )

        event_bus = await EventBus.get_instance()
        await event_bus.publish(
            Event(type=EventType.ASSISTANT_MESSAGE, content=response), self.agent_id
        )
        return response

    def register_tool(self, tool: ToolInterface) -> None:
        self.tools = [t for t in self.tools if t.name != tool.name] + [tool]
        if self.orchestrator is not None:
            self.orchestrator.register_tool(tool)

    def get_registered_tools(self) -> list[ToolInterface]:
        if self.orchestrator is not None:
            return self.orchestrator.get_registered_tools()
        return list(self.tools)

    def get_tools_used(self) -> list[str]:
        return self.orchestrator.get_tools_used() if self.orchestrator else []

    def clear_history(self) -> None:
        """Forget the conversation and the events this agent published."""
        if self.orchestrator is not None:
            self.orchestrator.clear_history()
        if EventBus._instance is not None:
            EventBus._instance.clear_events(self.agent_id)

    def get_conversation_summary(self) -> str:
        return self.orchestrator.get_conversation_summary() if self.orchestrator else ""

    def get_project_context(self) -> Optional[ProjectContext]:
        return self._project_context

    def set_project_context(self, context: Optional[ProjectContext]) -> None:
        self._project_context = context
        if self.orchestrator is not None:
            self.orchestrator.set_project_context(context)

    def __repr__(self) -> str:
        return f"Agent(agent_id={self.agent_id!r}, provider={self.provider!r})"
