# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import json

from abc import ABC, abstractmethod
from typing import Any
from pydantic import BaseModel, Field


class ToolResult(BaseModel):
    """Represents the result of a tool execution."""

    success: bool
    output: Any = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    invocation_id: str = Field(default_factory=lambda: os.urandom(4).hex())

    def to_model_content(self, extra_metadata: dict[str, Any] | None = None) -> str:
        """The JSON payload the model sees in the tool message."""
        metadata = {**self.metadata, **(extra_metadata or {})}
        if self.success:
            payload = {"success": True, "data": self.output, "metadata": metadata}
        else:
            payload = {"success": False, "error": self.error, "metadata": metadata}
        return json.dumps(payload, default=str)

    def to_plain_string(self, tool_name: str = "tool"):
        tool_response_str = f"{tool_name} response:"
        tool_response_str += f"\nSuccess: {self.success}"
        if self.output is not None:
            output = self.output if isinstance(self.output, str) else json.dumps(self.output, indent=2, default=str)
            tool_response_str += f"\nResult: {output}"
        if self.error is not None:
            tool_response_str += f"\nErrors: {self.error}"
        duration = self.metadata.get("execution_time")
        if duration is not None:
            tool_response_str += f"\nDuration: {duration:.3f}"
        return tool_response_str


class ToolExecutionResult(BaseModel):
    """What the execution handler hands back to the orchestrator.

    `success` describes the handler (did it find, run and report the tool),
    not the tool: a tool that reports failure still gives success=True here.
    """

    success: bool
    content: str
    tool_call_id: str


class ToolInterface(ABC):
    """The contract every tool satisfies."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def schema(self) -> dict[str, Any]:
        """JSON schema of the tool's argument object."""
        pass

    @abstractmethod
    async def execute(self, args: dict[str, Any]) -> ToolResult:
        pass

    def get_function_call_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.schema,
        }
