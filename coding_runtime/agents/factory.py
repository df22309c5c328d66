# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Creation and tracking of specialized sub-agents.

The factory is an ordinary object: build one per top-level agent (or per
test) and pass it to whatever delegates work. It owns the communication
coordinator and one semaphore per specialization, which caps how many of
that specialization's agents run a task at the same time.
"""

import asyncio
import logging

from uuid import uuid4
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from ..config import settings
from ..errors import SubAgentError
from ..llm import LLMProvider, create_provider
from ..tools import create_tools
from ..communication import CommunicationCoordinator
from ..types.tool_types import ToolInterface
from ..types.subagent_types import (
    Specialization,
    SpecializationConfig,
    SubAgentModelConfig,
    SubAgentState,
    TaskDelegation,
    TaskResult,
)
from .agent import Agent
from .sub_agent import SubAgent
from .specializations import DEFAULT_SPECIALIZATIONS, analyze_task_for_specialization

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ProviderBuilder = Callable[[SubAgentModelConfig], LLMProvider]
ToolBuilder = Callable[[Iterable[str], Path], list[ToolInterface]]


def default_provider_builder(config: SubAgentModelConfig) -> LLMProvider:
    return create_provider(
        config.provider,
        config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )


def _key(specialization: Specialization | str) -> str:
    return str(getattr(specialization, "value", specialization))


class SubAgentFactory:

    def __init__(
        self,
        provider_builder: Optional[ProviderBuilder] = None,
        tool_builder: Optional[ToolBuilder] = None,
        coordinator: Optional[CommunicationCoordinator] = None,
        workdir: Path | str | None = None,
        max_agents: Optional[int] = None,
        verbose: bool = False,
    ):
        self.provider_builder = provider_builder or default_provider_builder
        self.tool_builder = tool_builder or create_tools
        self.coordinator = coordinator or CommunicationCoordinator()
        self.workdir = Path(workdir) if workdir is not None else Path(settings.WORKDIR)
        self.max_agents = max_agents or settings.MAX_SUB_AGENTS
        self.verbose = verbose
        self._custom_configs: dict[str, SpecializationConfig] = {}
        self._agents: dict[str, SubAgent] = {}
        self._slots: dict[str, asyncio.Semaphore] = {}
        self._pending = 0
        self._total_created = 0

    # Specializations ========================================================

    def register_specialization(self, name: Specialization | str, config: SpecializationConfig) -> None:
        key = _key(name)
        self._custom_configs[key] = config
        # Agents created from now on share a semaphore sized for the new config
        self._slots.pop(key, None)
        logger.debug(f"Registered specialization configuration: {key}")

    def get_specialization_config(self, specialization: Specialization | str) -> SpecializationConfig:
        key = _key(specialization)
        if key in self._custom_configs:
            return self._custom_configs[key]
        try:
            return DEFAULT_SPECIALIZATIONS[Specialization(key)]
        except ValueError:
            raise SubAgentError(f"No configuration found for specialization: {key}") from None

    def get_supported_specializations(self) -> list[str]:
        names = [s.value for s in DEFAULT_SPECIALIZATIONS]
        return names + [k for k in self._custom_configs if k not in names]

    def analyze_task_for_specialization(self, task_description: str) -> Specialization:
        return analyze_task_for_specialization(task_description)

    def _slots_for(self, key: str, config: SpecializationConfig) -> asyncio.Semaphore:
        if key not in self._slots:
            self._slots[key] = asyncio.Semaphore(config.max_concurrent_tasks)
        return self._slots[key]

    # Creation ===============================================================

    async def create_specialized_agent(
        self, specialization: Specialization | str, parent: Optional[Agent] = None
    ) -> SubAgent:
        return await self.create_custom_agent(specialization, parent=parent)

    async def create_custom_agent(
        self,
        specialization: Specialization | str,
        agent_id: Optional[str] = None,
        allowed_tools: Optional[list[str]] = None,
        model_config: Optional[SubAgentModelConfig] = None,
        parent: Optional[Agent] = None,
        persona: Optional[str] = None,
    ) -> SubAgent:
        """Create, initialize and track a sub-agent.

        Raises:
            SubAgentError: the specialization is unknown, the agent limit is
                reached, or the sub-agent failed to initialize.
        """
        key = _key(specialization)
        config = self.get_specialization_config(key)
        if len(self._agents) + self._pending >= self.max_agents:
            raise SubAgentError(f"Sub-agent limit of {self.max_agents} reached")

        agent_id = agent_id or f"sub-agent-{uuid4().hex[:8]}"
        parent_id = parent.agent_id if parent is not None else None
        if parent_id is not None and self.coordinator.get_channel(parent_id) is None:
            self.coordinator.create_channel(parent_id)
        channel = self.coordinator.create_channel(agent_id, parent_id)

        self._pending += 1
        try:
            allowed = allowed_tools or config.allowed_tools
            workdir = parent.workdir if parent is not None else self.workdir
            inner = Agent(
                provider=self.provider_builder(model_config or config.llm_config),
                tools=[],
                workdir=workdir,
                agent_id=agent_id,
                discover=parent is None,
            )
            sub_agent = SubAgent(
                inner,
                key,
                allowed,
                tools=self.tool_builder(allowed, workdir),
                agent_id=agent_id,
                persona=persona or config.system_prompt_addition,
                channel=channel,
                parent=parent,
                slots=self._slots_for(key, config),
                verbose=self.verbose,
            )
            initialized = await sub_agent.initialize()
        except Exception as e:
            await self.coordinator.remove_channel(agent_id)
            logger.error(f"Failed to create sub-agent with specialization {key}: {e}")
            raise SubAgentError(f"Failed to create sub-agent with specialization: {key}", e) from e
        except asyncio.CancelledError:
            await self.coordinator.remove_channel(agent_id)
            raise
        finally:
            self._pending -= 1

        if not initialized:
            await self.coordinator.remove_channel(agent_id)
            raise SubAgentError(f"Failed to initialize sub-agent with specialization: {key}")

        self._agents[sub_agent.id] = sub_agent
        self._total_created += 1
        logger.info(f"Created sub-agent {sub_agent.id} with specialization: {key}")
        return sub_agent

    async def create_agent_pool(
        self,
        specialization: Specialization | str,
        size: int,
        parent: Optional[Agent] = None,
    ) -> list[SubAgent]:
        """Create up to `size` agents concurrently; individual failures are logged and skipped."""
        tasks = [
            asyncio.create_task(self.create_specialized_agent(specialization, parent))
            for _ in range(size)
        ]
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            created = [r for r in results if isinstance(r, SubAgent)]
            await asyncio.gather(*(self.remove_agent(a.id) for a in created), return_exceptions=True)
            raise

        agents = []
        for result in results:
            if isinstance(result, SubAgent):
                agents.append(result)
            else:
                logger.error(f"Failed to create sub-agent in pool: {result}")
        logger.info(f"Created agent pool of {len(agents)}/{size} agents for {_key(specialization)}")
        return agents

    async def create_optimized_agent(
        self, task_description: str, parent: Optional[Agent] = None
    ) -> SubAgent:
        specialization = self.analyze_task_for_specialization(task_description)
        return await self.create_specialized_agent(specialization, parent)

    async def delegate_task(
        self,
        task_description: str,
        user_input: Optional[str] = None,
        specialization: Specialization | str | None = None,
        parent: Optional[Agent] = None,
    ) -> TaskResult:
        """Run one task on a fresh sub-agent, removing the agent afterwards."""
        if specialization is None:
            specialization = self.analyze_task_for_specialization(task_description)
        sub_agent = await self.create_specialized_agent(specialization, parent)
        try:
            return await sub_agent.process_task(
                TaskDelegation(description=task_description, user_input=user_input or task_description)
            )
        finally:
            await self.remove_agent(sub_agent.id)

    # Tracking ===============================================================

    def get_agent(self, agent_id: str) -> Optional[SubAgent]:
        return self._agents.get(agent_id)

    def get_all_agents(self) -> list[SubAgent]:
        return list(self._agents.values())

    async def remove_agent(self, agent_id: str) -> None:
        sub_agent = self._agents.pop(agent_id, None)
        if sub_agent is None:
            return
        await sub_agent.shutdown()
        await self.coordinator.remove_channel(agent_id)
        logger.debug(f"Removed sub-agent: {agent_id}")

    async def shutdown_all_agents(self) -> None:
        agents = list(self._agents.items())
        self._agents.clear()
        results = await asyncio.gather(*(a.shutdown() for _, a in agents), return_exceptions=True)
        for (agent_id, _), result in zip(agents, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to shutdown agent {agent_id}: {result}")
        await self.coordinator.shutdown()
        logger.info("All sub-agents shut down")

    def get_factory_stats(self) -> dict[str, Any]:
        by_specialization: dict[str, int] = {}
        for sub_agent in self._agents.values():
            by_specialization[sub_agent.specialization] = by_specialization.get(sub_agent.specialization, 0) + 1
        return {
            "total_agents_created": self._total_created,
            "active_agents": sum(
                1 for a in self._agents.values() if a.get_status().state != SubAgentState.STOPPED
            ),
            "agents_by_specialization": by_specialization,
            "communication_stats": self.coordinator.get_stats(),
        }
