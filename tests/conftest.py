# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Shared fakes for the test suite."""
import pytest

from typing import Any, Optional

from coding_runtime.llm.base_provider import LLMProvider
from coding_runtime.tools.echo import EchoTool
from coding_runtime.types.conversation_types import AssistantResponse, ToolCall


class ScriptedProvider(LLMProvider):
    """Returns queued responses in order and records every request it receives.

    A queued exception is raised instead of returned.
    """

    def __init__(self, responses=(), name: str = "openai", ready: bool = True):
        super().__init__(model="scripted-model")
        self.responses = list(responses)
        self.name = name
        self.ready = ready
        self.requests: list[tuple[list[Any], list[dict[str, Any]]]] = []
        self.initialize_calls = 0

    def get_provider_name(self) -> str:
        return self.name

    def is_ready(self) -> bool:
        return self.ready

    async def initialize(self) -> bool:
        self.initialize_calls += 1
        return self.ready

    async def send_message_with_tools(self, messages, schemas) -> AssistantResponse:
        self.requests.append((messages, schemas))
        if not self.responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def stream_message_with_tools(self, messages, schemas, on_chunk=None) -> AssistantResponse:
        response = await self.send_message_with_tools(messages, schemas)
        if on_chunk is not None and response.content:
            on_chunk(response.content)
        return response


def tool_call(call_id: str, name: str, arguments: Optional[dict[str, Any]] = None) -> ToolCall:
    return ToolCall.create(call_id, name, arguments or {})


@pytest.fixture
def scripted_provider():
    """The ScriptedProvider class, for building providers with custom scripts."""
    return ScriptedProvider


@pytest.fixture
def make_call():
    return tool_call


@pytest.fixture
def echo_tool(tmp_path):
    return EchoTool(workdir=tmp_path)
