# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .conversation import ConversationManager
from .loop_detection import ToolCallRecord, argument_similarity, detect_loop
from .strategies import (
    ProviderStrategy,
    OpenAIStrategy,
    AnthropicStrategy,
    GeminiStrategy,
    create_provider_strategy,
)
from .orchestrator import ToolOrchestrator

__all__ = [
    "ConversationManager",
    "ToolCallRecord",
    "argument_similarity",
    "detect_loop",
    "ProviderStrategy",
    "OpenAIStrategy",
    "AnthropicStrategy",
    "GeminiStrategy",
    "create_provider_strategy",
    "ToolOrchestrator",
]
