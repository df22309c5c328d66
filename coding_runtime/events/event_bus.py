# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Event bus module for centralized event management."""

import asyncio
import logging

from collections import defaultdict, deque
from typing import Callable, Dict, List, Optional, ClassVar
from pydantic import BaseModel, PrivateAttr

from ..config import settings
from ..types.event_types import EventType, Event

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class EventBus(BaseModel):
    """
    Process-wide publish/subscribe bus for agent activity.

    Events are stored per publisher id (an agent id), so the tool usage of a
    single agent or sub-agent can be reconstructed after a run. Each
    publisher keeps its latest EVENT_HISTORY_LIMIT events. Subscribers
    are awaited in registration order; their failures are logged, never
    propagated to the publisher.
    """

    _instance: ClassVar[Optional["EventBus"]] = None
    _lock: ClassVar[Optional[asyncio.Lock]] = None

    _subscribers: Dict[EventType, List[Callable]] = PrivateAttr(
        default_factory=lambda: defaultdict(list)
    )
    _event_store: Dict[str, deque[Event]] = PrivateAttr(default_factory=dict)

    class Config:
        arbitrary_types_allowed = True

    def __new__(cls) -> "EventBus":
        raise TypeError(
            "EventBus should not be instantiated directly. "
            "Use 'await EventBus.get_instance()' instead."
        )

    @classmethod
    async def get_instance(cls) -> "EventBus":
        """Get or create the singleton instance."""
        if not cls._lock:
            cls._lock = asyncio.Lock()

        async with cls._lock:
            if not cls._instance:
                instance = super(EventBus, cls).__new__(cls)
                instance.__init__()
                cls._instance = instance
            return cls._instance

    async def publish(self, event: Event, publisher_id: str) -> None:
        """Publish an event to the bus.

        Args:
            event: The event to publish
            publisher_id: ID of the publishing agent
        """
        logger.debug(f"New event from {publisher_id}: {event.type}")
        event.metadata["publisher_id"] = publisher_id

        if publisher_id not in self._event_store:
            self._event_store[publisher_id] = deque(maxlen=settings.EVENT_HISTORY_LIMIT)
        self._event_store[publisher_id].append(event)

        for callback in list(self._subscribers[event.type]):
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"Error in event subscriber {callback}: {e}")

    def subscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        """Subscribe an async callback to one or more event types."""
        event_types = event_type if isinstance(event_type, (set, list, tuple)) else [event_type]
        for et in event_types:
            logger.debug(f"Subscribing {callback} to {et}")
            self._subscribers[et].append(callback)

    def unsubscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        event_types = event_type if isinstance(event_type, (set, list, tuple)) else [event_type]
        for et in event_types:
            if callback in self._subscribers[et]:
                self._subscribers[et].remove(callback)

    def get_events(self, publisher_id: str) -> List[Event]:
        """Get all events published by a specific agent."""
        return list(self._event_store.get(publisher_id, ()))

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        """Get all events of a specific type across all publishers."""
        events = []
        for publisher_events in self._event_store.values():
            events.extend([e for e in publisher_events if e.type == event_type])
        return events

    def clear_events(self, publisher_id: str) -> None:
        self._event_store.pop(publisher_id, None)

    def clear(self) -> None:
        """Clear all events and subscribers (mainly for testing)."""
        self._event_store.clear()
        self._subscribers.clear()
