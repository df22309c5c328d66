# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Per-agent message channel.

A channel knows its own agent id and, optionally, its parent's. Outbound
messages are handed to a routing callable supplied by the coordinator;
channels never hold references to each other. Messages from the parent are
queued for `receive_from_parent`, messages from sub-agents go to the
callbacks subscribed for that sub-agent.
"""

import time
import asyncio
import inspect
import logging

from collections import Counter, deque
from typing import Any, Awaitable, Callable, Optional

from ..config import settings
from ..errors import ChannelClosedError, CommunicationError
from ..types.subagent_types import SubAgentMessage

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

Router = Callable[[SubAgentMessage], Awaitable[None]]
MessageCallback = Callable[[SubAgentMessage], Any]


class SubAgentCommunication:

    def __init__(
        self,
        agent_id: str,
        parent_id: Optional[str] = None,
        router: Optional[Router] = None,
        history_limit: Optional[int] = None,
    ):
        self.agent_id = agent_id
        self.parent_id = parent_id
        self._router = router
        self._active = True
        self._inbox: asyncio.Queue[SubAgentMessage] = asyncio.Queue()
        self._history: deque[SubAgentMessage] = deque(
            maxlen=history_limit or settings.MESSAGE_HISTORY_LIMIT
        )
        self._subscribers: dict[str, list[MessageCallback]] = {}

    def _check_open(self) -> None:
        if not self._active:
            raise ChannelClosedError(f"Communication channel for {self.agent_id} is closed")

    async def _dispatch(self, message: SubAgentMessage) -> None:
        self._history.append(message)
        if self._router is not None:
            await self._router(message)

    async def send_to_parent(self, message: SubAgentMessage) -> None:
        self._check_open()
        if self.parent_id is None:
            raise CommunicationError(f"Agent {self.agent_id} has no parent configured")

        enriched = message.model_copy(
            update={"from_": self.agent_id, "to": self.parent_id, "timestamp": time.time()}
        )
        await self._dispatch(enriched)
        logger.debug(f"{self.agent_id} sent {message.type.value} to parent {self.parent_id}")

    async def send_to_sub_agent(self, agent_id: str, message: SubAgentMessage) -> None:
        self._check_open()
        enriched = message.model_copy(
            update={"from_": self.agent_id, "to": agent_id, "timestamp": time.time()}
        )
        await self._dispatch(enriched)
        logger.debug(f"{self.agent_id} sent {message.type.value} to sub-agent {agent_id}")

    async def receive_from_parent(
        self, timeout: Optional[float] = None
    ) -> Optional[SubAgentMessage]:
        """Wait for the next message from the parent; None on timeout or when closed."""
        if not self._active:
            return None
        timeout = settings.RECEIVE_TIMEOUT_SECONDS if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._inbox.get(), timeout)
        except TimeoutError:
            return None

    def subscribe_to_sub_agent(self, agent_id: str, callback: MessageCallback) -> None:
        self._subscribers.setdefault(agent_id, []).append(callback)
        logger.debug(f"{self.agent_id} subscribed to messages from {agent_id}")

    def unsubscribe_from_sub_agent(self, agent_id: str) -> None:
        self._subscribers.pop(agent_id, None)
        logger.debug(f"{self.agent_id} unsubscribed from messages from {agent_id}")

    # Inbound, called by the coordinator =====================================

    async def deliver_from_parent(self, message: SubAgentMessage) -> None:
        if not self._active:
            return
        self._history.append(message)
        self._inbox.put_nowait(message)

    async def deliver_from_sub_agent(self, agent_id: str, message: SubAgentMessage) -> None:
        if not self._active:
            return
        self._history.append(message)
        for callback in list(self._subscribers.get(agent_id, [])):
            try:
                result = callback(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in message callback for {agent_id} on {self.agent_id}: {e}")

    # Lifecycle and bookkeeping ==============================================

    def is_active(self) -> bool:
        return self._active

    async def close(self) -> None:
        if not self._active:
            return
        self._active = False
        self._subscribers.clear()
        logger.debug(f"Communication channel closed for agent {self.agent_id}")

    def get_message_history(self) -> list[SubAgentMessage]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def get_stats(self) -> dict[str, Any]:
        by_type = Counter(m.type.value for m in self._history)
        return {
            "total_messages": len(self._history),
            "messages_by_type": dict(by_type),
            "child_agents": len(self._subscribers),
            "is_active": self._active,
        }

    def __repr__(self) -> str:
        return f"SubAgentCommunication(agent_id={self.agent_id!r}, parent_id={self.parent_id!r})"
