# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from pydantic import BaseModel, Field

from .base_tool import BaseTool
from ..types.tool_types import ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_FILE_SIZE = 5 * 1024 * 1024


class ReadTool(BaseTool):
    TOOL_NAME = "read"
    TOOL_DESCRIPTION = """Read a text file and return its contents with line numbers.

Use `offset` and `limit` to page through large files. Line numbers are 1-based
and shown in the left gutter; they are not part of the file content.
"""

    class Arguments(BaseModel):
        file_path: str = Field(..., description="Path of the file, absolute or relative to the working directory")
        offset: int = Field(default=1, ge=1, description="First line to return (1-based)")
        limit: int = Field(default=2000, ge=1, le=10000, description="Maximum number of lines to return")

    async def run(self, arguments: Arguments) -> ToolResult:
        path = self.resolve_path(arguments.file_path)
        if not path.exists():
            return ToolResult(success=False, error=f"File does not exist: {path}")
        if not path.is_file():
            return ToolResult(success=False, error=f"Path is not a file: {path}")
        size = path.stat().st_size
        if size > MAX_FILE_SIZE:
            return ToolResult(
                success=False,
                error=f"File is too large to read ({size} bytes, limit {MAX_FILE_SIZE})",
            )

        lines = path.read_text(errors="replace").splitlines()
        start = arguments.offset - 1
        selected = lines[start : start + arguments.limit]
        width = len(str(start + len(selected)))
        numbered = "\n".join(
            f"{i:>{width}} | {line}" for i, line in enumerate(selected, start=arguments.offset)
        )
        return ToolResult(
            success=True,
            output=numbered,
            metadata={
                "path": str(path),
                "total_lines": len(lines),
                "truncated": start + arguments.limit < len(lines),
            },
        )


class WriteTool(BaseTool):
    TOOL_NAME = "write"
    TOOL_DESCRIPTION = """Write content to a file, replacing it if it exists.

Parent directories are created as needed. Always read a file before
overwriting it so that no existing content is lost by accident.
"""

    class Arguments(BaseModel):
        file_path: str = Field(..., description="Path of the file, absolute or relative to the working directory")
        content: str = Field(..., description="The full new content of the file")

    async def run(self, arguments: Arguments) -> ToolResult:
        path = self.resolve_path(arguments.file_path)
        if path.exists() and path.is_dir():
            return ToolResult(success=False, error=f"Path is a directory: {path}")

        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(arguments.content)
        logger.info(f"Wrote {len(arguments.content)} characters to {path}")

        action = "Updated" if existed else "Created"
        return ToolResult(
            success=True,
            output=f"{action} {path}",
            metadata={"path": str(path), "bytes_written": len(arguments.content.encode())},
        )
