# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import shlex
import asyncio
import logging

from pydantic import BaseModel, Field

from .base_tool import BaseTool
from ..types.tool_types import ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_OUTPUT_CHARS = 30_000


class BashTool(BaseTool):
    """Tool for executing shell commands that are guaranteed to return."""

    TOOL_NAME = "bash"
    TOOL_DESCRIPTION = """
Execute a bash command that returns within a timeout, from the working directory
unless another directory is given.

Commands that run indefinitely (servers, watchers) are not supported: they are
killed when the timeout elapses.

Example usage:
- compiling or running programs
- running tests
- git status, git diff
"""

    class Arguments(BaseModel):
        command: str = Field(
            ...,
            description="A single or multi-line bash command to be run in the terminal.",
            min_length=1,
        )
        directory: str | None = Field(
            default=None,
            description="The directory from which to execute the command",
        )
        timeout: float = Field(
            default=60.0,
            description="Seconds to wait for the command to return. Must be between 1 and 600.",
            ge=1.0,
            le=600.0,
        )

    def prepare_command(self, arguments: Arguments) -> str:
        directory = self.resolve_path(arguments.directory) if arguments.directory else self.workdir
        script_lines = [
            "set -e",  # Exit on any error
            f"cd {shlex.quote(str(directory))}",
            arguments.command,
        ]
        return "\n".join(script_lines)

    async def run(self, arguments: Arguments) -> ToolResult:
        process = await asyncio.create_subprocess_exec(
            "bash",
            "-c",
            self.prepare_command(arguments),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=arguments.timeout
            )
        except asyncio.TimeoutError:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                process.kill()  # Force kill if terminate didn't work
            return ToolResult(
                success=False,
                error=f"Command timed out after {arguments.timeout} seconds",
            )

        out = stdout.decode(errors="replace")[-MAX_OUTPUT_CHARS:]
        err = stderr.decode(errors="replace")[-MAX_OUTPUT_CHARS:]
        output = f"<stdout>{out}</stdout>\n<stderr>{err}</stderr>\n<exit_code>{process.returncode}</exit_code>"

        if process.returncode != 0:
            return ToolResult(
                success=False,
                output=output,
                error=f"Command exited with code {process.returncode}",
                metadata={"exit_code": process.returncode},
            )
        return ToolResult(
            success=True,
            output=output,
            metadata={"exit_code": process.returncode},
        )
