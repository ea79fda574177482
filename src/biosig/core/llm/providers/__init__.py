"""Completion provider implementations."""

from biosig.core.llm.providers.anthropic import AnthropicProvider
from biosig.core.llm.providers.gemini import GeminiProvider
from biosig.core.llm.providers.mock import FlakyProvider, MockProvider
from biosig.core.llm.providers.openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "FlakyProvider",
    "GeminiProvider",
    "MockProvider",
    "OpenAIProvider",
]
