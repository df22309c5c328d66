# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Provider-specific implementations for different LLM services."""

from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .google import GoogleProvider

__all__ = [
    "AnthropicProvider",
    "OpenAIProvider",
    "GoogleProvider",
]
