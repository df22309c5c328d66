# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Exception hierarchy for the runtime.

Tool-side errors (validation, unknown tool, execution) are recoverable: the
execution handler turns them into tool messages so the model can react.
Orchestration errors are fatal for the current `process_message` call.
"""


class AgentRuntimeError(Exception):
    """Base class for all runtime errors."""

    code: str = "RUNTIME_ERROR"

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ToolValidationError(AgentRuntimeError):
    """Malformed tool arguments."""

    code = "VALIDATION_ERROR"


class ToolNotFoundError(AgentRuntimeError):
    code = "TOOL_NOT_FOUND"

    def __init__(self, tool_name: str, available_tools: list[str]):
        super().__init__(f'Tool "{tool_name}" not found')
        self.tool_name = tool_name
        self.available_tools = available_tools


class ToolExecutionError(AgentRuntimeError):
    code = "TOOL_EXECUTION_ERROR"

    def __init__(self, tool_name: str, message: str, cause: Exception | None = None):
        super().__init__(message, cause)
        self.tool_name = tool_name


class OrchestrationError(AgentRuntimeError):
    """The orchestration loop cannot make progress."""

    code = "ORCHESTRATION_ERROR"

    def __init__(
        self,
        message: str,
        iteration: int | None = None,
        cause: Exception | None = None,
    ):
        if iteration is not None:
            message = f"Iteration {iteration}: {message}"
        super().__init__(message, cause)
        self.iteration = iteration


class ProviderError(OrchestrationError):
    """Network, model or readiness failure of the LLM provider."""

    code = "PROVIDER_ERROR"


class LoopDetectedError(OrchestrationError):
    """A time, pattern or volume threshold on tool calls was crossed."""

    code = "LOOP_DETECTED"

    def __init__(self, reason: str, iteration: int | None = None):
        super().__init__(f"Loop detected: {reason}", iteration)
        self.reason = reason


class OrchestrationCancelled(OrchestrationError):
    code = "CANCELLED"


class SubAgentError(AgentRuntimeError):
    code = "SUB_AGENT_ERROR"


class AgentNotReadyError(SubAgentError):
    """Only used to name the error code; returned in a TaskResult, never raised."""

    code = "AGENT_NOT_READY"


class CommunicationError(AgentRuntimeError):
    code = "COMMUNICATION_ERROR"


class ChannelClosedError(CommunicationError):
    code = "CHANNEL_CLOSED"
