# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import re
import shutil
import asyncio
import logging

from pydantic import BaseModel, Field

from .base_tool import BaseTool
from ..types.tool_types import ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_LINE_RE = re.compile(r"^(.*?):(\d+):(.*)$")


class RipgrepTool(BaseTool):
    """Tool for searching files using ripgrep with line numbers"""

    TOOL_NAME = "ripgrep"
    TOOL_DESCRIPTION = """Search file contents with ripgrep (rg) using a regular expression.

- Respects .gitignore files
- Optional glob filter to restrict which files are searched (e.g. '*.py')
- Results are grouped by file with line numbers in the left gutter
- The total number of matches is capped; narrow the path or pattern for more
"""

    class Arguments(BaseModel):
        pattern: str = Field(..., description="The regular expression to search for")
        path: str = Field(default=".", description="The directory or file to search in")
        glob: str | None = Field(default=None, description="Only search files matching this glob")
        case_sensitive: bool = Field(default=True, description="Whether the search is case-sensitive")
        max_matches: int = Field(default=50, ge=1, le=1000, description="Maximum total number of matches to return")

    @staticmethod
    def is_available() -> bool:
        return shutil.which("rg") is not None

    def _format_matches(self, rg_output: str, max_matches: int) -> tuple[str, int, int]:
        files: dict[str, list[tuple[int, str]]] = {}
        total = 0
        for line in rg_output.splitlines():
            m = _LINE_RE.match(line)
            if not m:
                continue
            total += 1
            if total > max_matches:
                continue
            filepath, line_num, content = m.group(1), int(m.group(2)), m.group(3)
            files.setdefault(filepath, []).append((line_num, content))

        if not files:
            return "No matches found.", 0, 0

        blocks = []
        for filepath, matches in files.items():
            width = len(str(max(n for n, _ in matches)))
            body = "\n".join(f"{str(n).rjust(width)} | {c}" for n, c in matches)
            blocks.append(f"{filepath}\n{body}")

        output = "\n\n".join(blocks)
        omitted = max(0, total - max_matches)
        if omitted:
            output += (
                f"\n\nNote: {omitted} additional matches were omitted due to the global limit. "
                "Search a more specific path for more results."
            )
        return output, total, omitted

    async def run(self, arguments: Arguments) -> ToolResult:
        root = self.resolve_path(arguments.path)
        if not root.exists():
            return ToolResult(success=False, error=f"Path does not exist: {root}")

        cmd = ["rg", "--color", "never", "--line-number", "--no-heading", "--with-filename"]
        if not arguments.case_sensitive:
            cmd.append("--ignore-case")
        if arguments.glob:
            cmd.extend(["--glob", arguments.glob])
        cmd.extend(["--regexp", arguments.pattern, str(root)])

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.workdir),
            )
        except FileNotFoundError:
            return ToolResult(
                success=False,
                error="ripgrep (rg) is not installed on this system",
            )
        stdout, stderr = await process.communicate()

        # rg exits with 1 when nothing matched
        if process.returncode not in (0, 1):
            return ToolResult(
                success=False,
                error=f"ripgrep failed: {stderr.decode(errors='replace').strip()}",
            )

        logger.debug(f"Raw ripgrep output:\n{stdout.decode(errors='replace')}")
        output, total, omitted = self._format_matches(
            stdout.decode(errors="replace"), arguments.max_matches
        )
        return ToolResult(
            success=True,
            output=output,
            metadata={"total_matches": total, "omitted_matches": omitted},
        )
