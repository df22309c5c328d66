# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .agent import Agent
from .sub_agent import SubAgent
from .factory import SubAgentFactory
from .specializations import DEFAULT_SPECIALIZATIONS, analyze_task_for_specialization

__all__ = [
    "Agent",
    "SubAgent",
    "SubAgentFactory",
    "DEFAULT_SPECIALIZATIONS",
    "analyze_task_for_specialization",
]
