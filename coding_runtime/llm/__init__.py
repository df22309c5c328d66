# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Optional

from .base_provider import LLMProvider, ChunkCallback
from .providers import AnthropicProvider, GoogleProvider, OpenAIProvider

DEFAULT_MODELS = {
    "anthropic": "claude-3-7-sonnet-latest",
    "openai": "gpt-4o",
    "gemini": "gemini-2.0-flash",
}

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GoogleProvider,
    "google": GoogleProvider,
}


def create_provider(
    provider: str,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> LLMProvider:
    """Build an (uninitialized) provider adapter by name."""
    name = provider.lower()
    provider_cls = _PROVIDERS.get(name)
    if provider_cls is None:
        raise ValueError(
            f"Unknown provider {provider!r}; expected one of {sorted(_PROVIDERS)}"
        )
    if model is None:
        model = DEFAULT_MODELS["gemini" if name == "google" else name]
    return provider_cls(model=model, temperature=temperature, max_tokens=max_tokens)


__all__ = [
    "LLMProvider",
    "ChunkCallback",
    "AnthropicProvider",
    "GoogleProvider",
    "OpenAIProvider",
    "DEFAULT_MODELS",
    "create_provider",
]
