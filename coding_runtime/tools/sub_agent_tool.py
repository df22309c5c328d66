# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import TYPE_CHECKING, Optional
from pydantic import BaseModel, Field

from .base_tool import BaseTool
from ..config import settings
from ..types.tool_types import ToolResult

if TYPE_CHECKING:
    from ..agents import Agent, SubAgentFactory


class SubAgentTool(BaseTool):
    """Hands a question about the codebase to a read-only search sub-agent."""

    TOOL_NAME = "sub_agent"
    TOOL_DESCRIPTION = """Find and summarize codebase context using a focused sub-agent.

The sub-agent runs once, non-interactively, with read-only tools. It cannot ask
follow-up questions, so make the query specific and self-contained.
"""
    # A delegation runs a whole tool loop, bounded by the loop time cap
    TIMEOUT = settings.LOOP_DETECTION.time_cap_seconds + 30
    STANDALONE = False

    class Arguments(BaseModel):
        query: str = Field(
            ...,
            min_length=5,
            max_length=2000,
            description="What context or explanation is needed from the codebase?",
        )

    def __init__(
        self,
        factory: "SubAgentFactory",
        parent: Optional["Agent"] = None,
        specialization: str = "search",
    ):
        super().__init__(workdir=parent.workdir if parent is not None else None)
        self.factory = factory
        self.parent = parent
        self.specialization = specialization

    async def run(self, arguments: Arguments) -> ToolResult:
        prompt = (
            "You are invoked in a one-shot, non-interactive mode and cannot ask for "
            "clarification. Give the most complete, self-contained answer you can to "
            f"the following query.\n\nQUERY: {arguments.query}"
        )
        result = await self.factory.delegate_task(
            arguments.query,
            user_input=prompt,
            specialization=self.specialization,
            parent=self.parent,
        )
        if not result.success:
            error = result.error
            return ToolResult(
                success=False,
                error=f"Failed to find context: {error.message if error else 'unknown error'}",
            )
        metadata = result.metadata.model_dump() if result.metadata else {}
        return ToolResult(success=True, output=result.result, metadata=metadata)
