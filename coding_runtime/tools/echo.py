# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from pydantic import BaseModel, Field

from .base_tool import BaseTool
from ..types.tool_types import ToolResult


class EchoTool(BaseTool):
    """Returns its input. Handy for checking the tool-calling plumbing."""

    TOOL_NAME = "echo"
    TOOL_DESCRIPTION = "Echo the provided text back unchanged."

    class Arguments(BaseModel):
        text: str = Field(..., description="The text to echo back")

    async def run(self, arguments: Arguments) -> ToolResult:
        return ToolResult(success=True, output=arguments.text)
