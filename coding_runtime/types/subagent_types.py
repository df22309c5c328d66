# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import time

from enum import Enum
from uuid import uuid4
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class Specialization(str, Enum):
    """Built-in sub-agent roles."""

    CODE = "code"  # generation, refactoring, simple edits
    TEST = "test"  # test generation, runners, coverage
    DEBUG = "debug"  # stack traces, root cause analysis
    DOCS = "docs"  # documentation, comments, READMEs
    SEARCH = "search"  # code discovery, pattern matching
    VALIDATION = "validation"  # linting, type checking, builds
    GENERAL = "general"  # full tool access


class SubAgentState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    ERROR = "error"
    STOPPED = "stopped"


class MessageType(str, Enum):
    TASK_DELEGATION = "task_delegation"
    PROGRESS_UPDATE = "progress_update"
    RESULT = "result"
    ERROR = "error"
    STATUS = "status"


class SubAgentModelConfig(BaseModel):
    provider: str
    model: str
    profile: Literal["fast", "balanced", "reasoning"] = "balanced"
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class SpecializationConfig(BaseModel):
    allowed_tools: list[str]
    llm_config: SubAgentModelConfig
    system_prompt_addition: Optional[str] = None
    max_concurrent_tasks: int = Field(default=1, ge=1)


class SubAgentMessage(BaseModel):
    """A message between agents. Frozen: enrich with model_copy(update=...)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: f"msg_{uuid4().hex[:12]}")
    type: MessageType
    from_: str = Field(default="", alias="from")
    to: str = ""
    payload: Any = None
    timestamp: float = Field(default_factory=time.time)


class TaskDelegation(BaseModel):
    task_id: str = Field(default_factory=lambda: f"task_{uuid4().hex[:8]}")
    description: str
    user_input: str
    required_tools: Optional[list[str]] = None
    priority: Literal["low", "medium", "high"] = "medium"
    timeout: Optional[float] = None
    context: dict[str, Any] = Field(default_factory=dict)


class TaskError(BaseModel):
    message: str
    code: str
    details: Optional[dict[str, Any]] = None


class TaskMetadata(BaseModel):
    tools_used: list[str] = Field(default_factory=list)
    execution_time: float = 0.0
    tokens_used: Optional[int] = None


class TaskResult(BaseModel):
    task_id: str
    success: bool
    result: Optional[str] = None
    error: Optional[TaskError] = None
    metadata: Optional[TaskMetadata] = None


class SubAgentStatus(BaseModel):
    id: str
    state: SubAgentState
    specialization: str
    current_task_id: Optional[str] = None
    last_activity: float = Field(default_factory=time.time)
