# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
An LLM coding-assistant runtime: tool orchestration over several model
providers, plus specialized sub-agents that can be delegated work.
"""

from .config import settings
from .agents import Agent, SubAgent, SubAgentFactory
from .orchestration import ToolOrchestrator
from .llm import create_provider

__all__ = ["settings", "Agent", "SubAgent", "SubAgentFactory", "ToolOrchestrator", "create_provider"]
