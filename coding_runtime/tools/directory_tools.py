# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import fnmatch

from pathlib import Path
from pydantic import BaseModel, Field

from .base_tool import BaseTool
from ..types.tool_types import ToolResult

DEFAULT_IGNORES = ["node_modules", ".git", "dist", "build", "coverage", "__pycache__", ".venv"]


def _is_ignored(path: Path, root: Path, patterns: list[str]) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        parts = path.parts
    return any(fnmatch.fnmatch(part, pat) for part in parts for pat in patterns)


class LSTool(BaseTool):
    TOOL_NAME = "ls"
    TOOL_DESCRIPTION = """List the contents of a directory.

Directories are listed first and marked with a trailing slash; file sizes are
shown in bytes. Common build and VCS directories are skipped unless
`show_hidden` is set.
"""

    class Arguments(BaseModel):
        path: str = Field(default=".", description="The directory to list")
        show_hidden: bool = Field(default=False, description="Whether to include dotfiles and ignored directories")
        ignore: list[str] = Field(default=[], description="Extra glob patterns to exclude (e.g. '*.pyc')")

    async def run(self, arguments: Arguments) -> ToolResult:
        path = self.resolve_path(arguments.path)
        if not path.exists():
            return ToolResult(success=False, error=f"Directory does not exist: {path}")
        if not path.is_dir():
            return ToolResult(success=False, error=f"Path is not a directory: {path}")

        patterns = list(arguments.ignore)
        if not arguments.show_hidden:
            patterns += DEFAULT_IGNORES + [".*"]

        entries = [
            p for p in path.iterdir()
            if not _is_ignored(p, path, patterns)
        ]
        entries.sort(key=lambda p: (not p.is_dir(), p.name.lower()))

        lines = []
        for entry in entries:
            if entry.is_dir():
                lines.append(f"{entry.name}/")
            else:
                lines.append(f"{entry.name} ({entry.stat().st_size} bytes)")

        return ToolResult(
            success=True,
            output="\n".join(lines) if lines else "(empty directory)",
            metadata={"path": str(path), "entries": len(entries)},
        )


class GlobTool(BaseTool):
    TOOL_NAME = "glob"
    TOOL_DESCRIPTION = """Find files whose paths match a glob pattern, such as '**/*.py'.

Results are relative to the search directory, most recently modified first.
"""

    class Arguments(BaseModel):
        pattern: str = Field(..., description="The glob pattern to match, e.g. 'src/**/*.ts'")
        path: str = Field(default=".", description="The directory to search from")
        max_results: int = Field(default=200, ge=1, le=5000, description="Maximum number of paths to return")

    async def run(self, arguments: Arguments) -> ToolResult:
        root = self.resolve_path(arguments.path)
        if not root.is_dir():
            return ToolResult(success=False, error=f"Path is not a directory: {root}")

        matches = [
            p for p in root.glob(arguments.pattern)
            if p.is_file() and not _is_ignored(p, root, DEFAULT_IGNORES)
        ]
        matches.sort(key=lambda p: p.stat().st_mtime, reverse=True)

        total = len(matches)
        shown = [str(p.relative_to(root)) for p in matches[: arguments.max_results]]
        output = "\n".join(shown) if shown else "No files matched"
        if total > arguments.max_results:
            output += f"\n... {total - arguments.max_results} more matches omitted"

        return ToolResult(
            success=True,
            output=output,
            metadata={"total_matches": total, "pattern": arguments.pattern},
        )
