# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Utility functions for working with the event bus."""

from collections import Counter

from .event_bus import EventBus
from ..types.tool_types import ToolResult
from ..types.event_types import EventType, Event


async def log_to_stdout(event: Event):
    """Print agent activity to stdout, one truncated line per event."""

    max_content_len = 50
    prefix_width = 17

    def truncate(text: str, length: int = max_content_len) -> str:
        text = text.replace("\n", " ")
        return f"{text[:length]}..." if len(text) > length else text

    def format_output(prefix: str, content: str, metadata: str = "") -> None:
        print(
            f"{prefix:<{prefix_width}s} => {content}{' | ' + metadata if metadata else ''}"
        )

    event_content = truncate(str(event.content))
    publisher = event.metadata.get("publisher_id", "")

    if event.type == EventType.TOOL_CALL:
        name = event.metadata.get("name", "unknown tool")
        args = truncate(str(event.metadata.get("args", {})))
        format_output(event.type.value, f"{name}, {args}", publisher)
    elif event.type == EventType.TOOL_RESULT:
        result = event.metadata.get("tool_result")
        if not isinstance(result, ToolResult):
            format_output(event.type.value, event_content, publisher)
            return
        name = event.metadata.get("name", "unknown tool")
        duration = result.metadata.get("execution_time", 0.0)
        content = f"{name}, success: {result.success}, duration: {duration:.1f}, {event_content}"
        format_output(event.type.value, content, publisher)
    elif event.type == EventType.AGENT_RESULT:
        status = event.metadata.get("status", "unknown")
        duration = event.metadata.get("execution_time", 0.0)
        format_output(
            event.type.value,
            f"status: {status}, duration: {duration:.1f}, {truncate(event.content, 20)}",
            publisher,
        )
    else:
        format_output(event.type.value, event_content, publisher)


async def get_tool_usage(agent_id: str) -> dict[str, int]:
    """Count the tool calls an agent has published, by tool name."""
    event_bus = await EventBus.get_instance()
    counts = Counter(
        e.metadata.get("name", "unknown")
        for e in event_bus.get_events(agent_id)
        if e.type == EventType.TOOL_CALL
    )
    return dict(counts)
