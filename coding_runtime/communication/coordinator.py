# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio
import logging

from typing import Any, Optional

from ..errors import CommunicationError
from ..events import EventBus
from ..types.event_types import Event, EventType
from ..types.subagent_types import SubAgentMessage
from .channel import SubAgentCommunication

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class CommunicationCoordinator:
    """Owns the agent id → channel table and routes messages between channels.

    All mutation happens on the event loop, so the table needs no lock.
    """

    def __init__(self):
        self._channels: dict[str, SubAgentCommunication] = {}
        self._message_count = 0
        self._error_count = 0

    def create_channel(self, agent_id: str, parent_id: Optional[str] = None) -> SubAgentCommunication:
        if agent_id in self._channels:
            logger.warning(f"Replacing existing communication channel for {agent_id}")

        async def route(message: SubAgentMessage) -> None:
            await self.route_message(agent_id, message.to, message)

        channel = SubAgentCommunication(agent_id, parent_id, router=route)
        self._channels[agent_id] = channel
        logger.debug(f"Created communication channel for agent {agent_id}")
        return channel

    def get_channel(self, agent_id: str) -> Optional[SubAgentCommunication]:
        return self._channels.get(agent_id)

    async def remove_channel(self, agent_id: str) -> None:
        channel = self._channels.pop(agent_id, None)
        if channel is not None:
            await channel.close()
            logger.debug(f"Removed communication channel for agent {agent_id}")

    async def route_message(self, from_id: str, to_id: str, message: SubAgentMessage) -> None:
        from_channel = self._channels.get(from_id)
        to_channel = self._channels.get(to_id)
        if from_channel is None or to_channel is None:
            self._error_count += 1
            missing = from_id if from_channel is None else to_id
            raise CommunicationError(f"Cannot route message: missing channel for {missing}")

        if to_channel.parent_id == from_id:
            await to_channel.deliver_from_parent(message)
        else:
            await to_channel.deliver_from_sub_agent(from_id, message)
        self._message_count += 1

        event_bus = await EventBus.get_instance()
        await event_bus.publish(
            Event(
                type=EventType.SUB_AGENT_MESSAGE,
                content=str(message.payload),
                metadata={"message_type": message.type.value, "to": to_id, "message_id": message.id},
            ),
            from_id,
        )

    async def broadcast_message(self, message: SubAgentMessage) -> None:
        """Deliver `message` to every channel except its sender's."""
        targets = [(aid, ch) for aid, ch in self._channels.items() if aid != message.from_]
        results = await asyncio.gather(
            *(ch.deliver_from_parent(message.model_copy(update={"to": aid})) for aid, ch in targets),
            return_exceptions=True,
        )
        for (aid, _), result in zip(targets, results):
            if isinstance(result, Exception):
                self._error_count += 1
                logger.error(f"Broadcast to {aid} failed: {result}")
        self._message_count += len(targets)

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_channels": len(self._channels),
            "active_channels": sum(1 for c in self._channels.values() if c.is_active()),
            "total_messages": self._message_count,
            "error_count": self._error_count,
        }

    async def shutdown(self) -> None:
        channels = list(self._channels.values())
        self._channels.clear()
        await asyncio.gather(*(c.close() for c in channels), return_exceptions=True)
        logger.debug("Communication coordinator shutdown complete")
