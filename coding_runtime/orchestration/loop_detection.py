# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Heuristics for spotting a model stuck in a tool-calling loop.

Everything here is a pure function of the calls executed so far in one
`process_message` run, so it can be tested without an orchestrator.
"""

import json

from typing import Any, Optional, Sequence
from pydantic import BaseModel

from ..config import LoopDetectionConfig


class ToolCallRecord(BaseModel):
    tool_name: str
    arguments: str  # raw JSON, as issued by the model


def _values_match(a: Any, b: Any, prefix_chars: int) -> bool:
    if a == b:
        return True
    if isinstance(a, str) and isinstance(b, str):
        return a.startswith(b[:prefix_chars]) or b.startswith(a[:prefix_chars])
    return False


def _character_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    same = sum(1 for x, y in zip(a, b) if x == y)
    return same / longest


def argument_similarity(args_a: str, args_b: str, prefix_chars: int = 10) -> float:
    """Fraction of argument keys whose values match, in [0, 1].

    Falls back to position-wise character matching when either side is not
    a JSON object.
    """
    try:
        parsed_a = json.loads(args_a)
        parsed_b = json.loads(args_b)
    except (json.JSONDecodeError, TypeError):
        return _character_similarity(args_a or "", args_b or "")
    if not isinstance(parsed_a, dict) or not isinstance(parsed_b, dict):
        return _character_similarity(args_a, args_b)

    keys = set(parsed_a) | set(parsed_b)
    if not keys:
        return 1.0
    matches = sum(
        1
        for key in keys
        if key in parsed_a
        and key in parsed_b
        and _values_match(parsed_a[key], parsed_b[key], prefix_chars)
    )
    return matches / len(keys)


def _calls_similar(a: ToolCallRecord, b: ToolCallRecord, config: LoopDetectionConfig) -> bool:
    return (
        a.tool_name == b.tool_name
        and argument_similarity(a.arguments, b.arguments, config.prefix_match_chars)
        >= config.similarity_threshold
    )


def _find_repeated_pattern(
    history: Sequence[ToolCallRecord], config: LoopDetectionConfig
) -> Optional[str]:
    for length in range(config.min_pattern_length, config.max_pattern_length + 1):
        if len(history) < 2 * length:
            break
        recent = history[-length:]
        previous = history[-2 * length : -length]
        # A pattern of one tool name is a streak, handled separately
        if len({c.tool_name for c in recent}) < 2:
            continue
        if all(_calls_similar(a, b, config) for a, b in zip(recent, previous)):
            names = " -> ".join(c.tool_name for c in recent)
            return f"repeating pattern of {length} tool calls ({names})"
    return None


def _find_streak(
    history: Sequence[ToolCallRecord], config: LoopDetectionConfig
) -> Optional[str]:
    if not history:
        return None
    tool_name = history[-1].tool_name
    streak = 0
    for call in reversed(history):
        if call.tool_name != tool_name:
            break
        streak += 1

    exploratory = tool_name in config.exploratory_tools
    limit = config.exploratory_streak_limit if exploratory else config.streak_limit
    if streak >= limit:
        kind = "exploratory tool" if exploratory else "tool"
        return f"{kind} '{tool_name}' called {streak} times in a row (limit {limit})"
    return None


def detect_loop(
    history: Sequence[ToolCallRecord], config: Optional[LoopDetectionConfig] = None
) -> Optional[str]:
    """Return a human-readable reason if the call history looks like a loop."""
    config = config or LoopDetectionConfig()

    if len(history) > config.max_total_calls:
        return f"too many tool calls ({len(history)} > {config.max_total_calls})"

    return _find_repeated_pattern(history, config) or _find_streak(history, config)
