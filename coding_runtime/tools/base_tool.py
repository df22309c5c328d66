# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import time
import logging

from abc import abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Optional
from pydantic import BaseModel, ValidationError

from ..config import settings
from ..types.tool_types import ToolInterface, ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# Every concrete tool class, by TOOL_NAME
tool_registry: dict[str, type["BaseTool"]] = {}


class BaseTool(ToolInterface):
    """Base class for the built-in tools.

    A subclass declares its TOOL_NAME and TOOL_DESCRIPTION, a pydantic
    `Arguments` model (which doubles as the JSON schema handed to the model)
    and an async `run`. Argument validation, timing and exception capture
    happen here so that `run` only deals with the happy path and its own
    expected failures.

    `TIMEOUT`, when set, replaces the execution handler's global tool timeout
    for this tool.
    A tool whose constructor takes more than `workdir` sets STANDALONE to
    False so `create_tools` leaves it out.
    """

    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str]
    Arguments: ClassVar[type[BaseModel]]
    TIMEOUT: ClassVar[Optional[float]] = None
    STANDALONE: ClassVar[bool] = True

    def __init__(self, workdir: Path | str | None = None):
        self.workdir = Path(workdir) if workdir is not None else Path(settings.WORKDIR)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if getattr(cls, "TOOL_NAME", None):
            tool_registry[cls.TOOL_NAME] = cls

    @property
    def name(self) -> str:
        return self.TOOL_NAME

    @property
    def description(self) -> str:
        return self.TOOL_DESCRIPTION.strip()

    @property
    def schema(self) -> dict[str, Any]:
        schema = self.Arguments.model_json_schema()
        schema.pop("title", None)
        return schema

    def resolve_path(self, path: str) -> Path:
        """Resolve a possibly relative path against the tool's working directory."""
        p = Path(path).expanduser()
        return p if p.is_absolute() else self.workdir / p

    async def execute(self, args: dict[str, Any]) -> ToolResult:
        start_time = time.time()
        try:
            arguments = self.Arguments.model_validate(args)
        except ValidationError as e:
            return ToolResult(
                success=False,
                error=f"Invalid arguments for {self.TOOL_NAME}: {e}",
                metadata={"duration": time.time() - start_time},
            )

        try:
            result = await self.run(arguments)
        except Exception as e:
            logger.error(f"Error during tool execution: {str(e)}")
            result = ToolResult(success=False, error=f"{type(e).__name__}: {e}")

        result.metadata.setdefault("duration", time.time() - start_time)
        return result

    @abstractmethod
    async def run(self, arguments: Any) -> ToolResult:
        """Execute the tool's functionality on validated arguments."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.TOOL_NAME!r}, workdir={str(self.workdir)!r})"
