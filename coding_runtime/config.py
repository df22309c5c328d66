# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Runtime settings, read from CODING_RUNTIME_* environment variables.

Values may also come from a `.env` file in the current directory. The CLI
additionally loads that file into the process environment (python-dotenv).

Vendor API keys are not held here: the openai, anthropic and google-genai
clients read OPENAI_API_KEY, ANTHROPIC_API_KEY and
GEMINI_API_KEY / GOOGLE_API_KEY themselves.
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoopDetectionConfig(BaseModel):
    """Thresholds for the runaway tool-call heuristics.

    The defaults are empirical. Override per orchestrator, or through
    e.g. CODING_RUNTIME_LOOP_DETECTION__STREAK_LIMIT=10.
    """

    similarity_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    min_pattern_length: int = Field(default=2, ge=1)
    max_pattern_length: int = Field(default=5, ge=1)
    streak_limit: int = Field(default=8, ge=1)
    exploratory_streak_limit: int = Field(default=12, ge=1)
    exploratory_tools: set[str] = Field(
        default_factory=lambda: {"read", "glob", "ripgrep", "ls"}
    )
    max_total_calls: int = Field(default=50, ge=1)
    time_cap_seconds: float = Field(default=600.0, gt=0)
    prefix_match_chars: int = Field(default=10, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CODING_RUNTIME_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"
    LOG_TOOL_USAGE: bool = False

    # Default model for the top-level agent
    PROVIDER: str = "anthropic"
    MODEL: str = "claude-3-7-sonnet-latest"
    TEMPERATURE: float = 0.2
    MAX_TOKENS: int = 8192

    WORKDIR: Path = Field(default_factory=Path.cwd)

    TOOL_TIMEOUT_SECONDS: float = 120.0
    GEMINI_MAX_TOOL_TURNS: int = 10

    # Events kept per publisher on the event bus
    EVENT_HISTORY_LIMIT: int = 2000

    # Sub-agent messaging
    RECEIVE_TIMEOUT_SECONDS: float = 5.0
    MESSAGE_HISTORY_LIMIT: int = 1000
    MAX_SUB_AGENTS: int = 10

    LOOP_DETECTION: LoopDetectionConfig = Field(default_factory=LoopDetectionConfig)


settings = Settings()
