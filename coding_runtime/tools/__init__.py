# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
A module of Agent tools
"""

import logging

from pathlib import Path
from typing import Iterable

from .base_tool import BaseTool, tool_registry
from .echo import EchoTool
from .file_tools import ReadTool, WriteTool
from .directory_tools import GlobTool, LSTool
from .execute_command import BashTool
from .ripgrep_tool import RipgrepTool
from .sub_agent_tool import SubAgentTool
from .execution_handler import ToolExecutionHandler

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

toolkits: dict[str, list[type[BaseTool]]] = dict(
    coding=[ReadTool, WriteTool, LSTool, GlobTool, RipgrepTool, BashTool],
    read_only=[ReadTool, LSTool, GlobTool, RipgrepTool],
)


def create_tools(names: Iterable[str], workdir: Path | str | None = None) -> list[BaseTool]:
    """Instantiate registered tools by name; unknown names raise KeyError.

    ripgrep is skipped when the `rg` binary is not installed. Tools that need
    collaborators beyond a working directory (STANDALONE = False) are skipped
    with a warning; build those directly.
    """
    tools = []
    for name in names:
        tool_cls = tool_registry[name]
        if not tool_cls.STANDALONE:
            logger.warning(f"Skipping tool {name}: it cannot be built from a working directory alone")
            continue
        if tool_cls is RipgrepTool and not RipgrepTool.is_available():
            continue
        tools.append(tool_cls(workdir=workdir))
    return tools


def default_tools(workdir: Path | str | None = None) -> list[BaseTool]:
    return create_tools((t.TOOL_NAME for t in toolkits["coding"]), workdir)


__all__ = [
    "BaseTool",
    "tool_registry",
    "EchoTool",
    "ReadTool",
    "WriteTool",
    "GlobTool",
    "LSTool",
    "BashTool",
    "RipgrepTool",
    "SubAgentTool",
    "ToolExecutionHandler",
    "toolkits",
    "create_tools",
    "default_tools",
]
