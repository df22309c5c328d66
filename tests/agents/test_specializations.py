# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import pytest

from coding_runtime.agents.specializations import (
    DEFAULT_SPECIALIZATIONS,
    analyze_task_for_specialization,
)
from coding_runtime.tools.base_tool import tool_registry
from coding_runtime.types.subagent_types import Specialization


@pytest.mark.parametrize(
    "task,expected",
    [
        ("Fix the failing test in test_parser.py", Specialization.DEBUG),
        ("Add a README section for installation", Specialization.DOCS),
        ("Find where the logger is configured", Specialization.SEARCH),
        ("Run the LINTER over the package", Specialization.VALIDATION),
        ("Write unit tests for the parser", Specialization.TEST),
        ("Implement a cache class", Specialization.CODE),
        ("Say hello", Specialization.GENERAL),
        ("", Specialization.GENERAL),
    ],
)
def test_analyze_task_for_specialization(task, expected):
    assert analyze_task_for_specialization(task) == expected


def test_every_specialization_has_a_default():
    assert set(DEFAULT_SPECIALIZATIONS) == set(Specialization)


def test_default_tools_exist():
    for config in DEFAULT_SPECIALIZATIONS.values():
        assert set(config.allowed_tools) <= set(tool_registry)


def test_search_is_read_only():
    search = DEFAULT_SPECIALIZATIONS[Specialization.SEARCH]
    assert "write" not in search.allowed_tools
    assert "bash" not in search.allowed_tools
    assert search.llm_config.profile == "fast"
