# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Built-in sub-agent specializations and the keyword task classifier."""

from ..types.subagent_types import Specialization, SpecializationConfig, SubAgentModelConfig

FAST_MODEL = "claude-3-5-haiku-latest"
STRONG_MODEL = "claude-3-7-sonnet-latest"


def _model(profile: str, temperature: float, max_tokens: int) -> SubAgentModelConfig:
    return SubAgentModelConfig(
        provider="anthropic",
        model=FAST_MODEL if profile == "fast" else STRONG_MODEL,
        profile=profile,
        temperature=temperature,
        max_tokens=max_tokens,
    )


DEFAULT_SPECIALIZATIONS: dict[Specialization, SpecializationConfig] = {
    Specialization.CODE: SpecializationConfig(
        allowed_tools=["read", "write", "glob", "ripgrep"],
        llm_config=_model("fast", 0.1, 4096),
        system_prompt_addition="You are a code generation specialist focused on clean, efficient implementations.",
        max_concurrent_tasks=3,
    ),
    Specialization.TEST: SpecializationConfig(
        allowed_tools=["read", "write", "bash", "glob"],
        llm_config=_model("fast", 0.1, 4096),
        system_prompt_addition="You are a test specialist focused on comprehensive testing and coverage.",
        max_concurrent_tasks=2,
    ),
    Specialization.DEBUG: SpecializationConfig(
        allowed_tools=["read", "bash", "ripgrep", "ls"],
        llm_config=_model("reasoning", 0.0, 8192),
        system_prompt_addition="You are a debugging specialist focused on root cause analysis and problem solving.",
        max_concurrent_tasks=1,
    ),
    Specialization.DOCS: SpecializationConfig(
        allowed_tools=["read", "write", "glob"],
        llm_config=_model("fast", 0.3, 4096),
        system_prompt_addition="You are a documentation specialist focused on clear, comprehensive documentation.",
        max_concurrent_tasks=3,
    ),
    Specialization.SEARCH: SpecializationConfig(
        allowed_tools=["glob", "ripgrep", "ls"],
        llm_config=_model("fast", 0.0, 2048),
        system_prompt_addition="You are a search specialist focused on efficient code discovery and pattern matching.",
        max_concurrent_tasks=5,
    ),
    Specialization.VALIDATION: SpecializationConfig(
        allowed_tools=["bash", "read", "ls"],
        llm_config=_model("fast", 0.0, 2048),
        system_prompt_addition="You are a validation specialist focused on code quality and build verification.",
        max_concurrent_tasks=2,
    ),
    Specialization.GENERAL: SpecializationConfig(
        allowed_tools=["read", "write", "bash", "glob", "ripgrep", "ls"],
        llm_config=_model("balanced", 0.2, 8192),
        system_prompt_addition="You are a general-purpose assistant with full capabilities.",
        max_concurrent_tasks=2,
    ),
}

# Checked in order; the first category with a matching keyword wins
TASK_KEYWORDS: list[tuple[Specialization, tuple[str, ...]]] = [
    (Specialization.DEBUG, ("debug", "error", "fix", "bug", "troubleshoot")),
    (Specialization.DOCS, ("document", "readme", "comment", "docs", "explain")),
    (Specialization.SEARCH, ("find", "search", "locate", "discover", "pattern")),
    (Specialization.VALIDATION, ("lint", "validate", "check", "verify", "build")),
    (Specialization.TEST, ("test", "spec", "coverage")),
    (Specialization.CODE, ("implement", "create", "add", "refactor", "function", "class")),
]


def analyze_task_for_specialization(task_description: str) -> Specialization:
    """Pick a specialization by case-insensitive substring match on keywords."""
    task = task_description.lower()
    for specialization, keywords in TASK_KEYWORDS:
        if any(keyword in task for keyword in keywords):
            return specialization
    return Specialization.GENERAL
