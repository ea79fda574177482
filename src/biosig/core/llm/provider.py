"""Completion provider protocol: abstract interface for stage LLM calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class ProviderResponse:
    """Response from a completion provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for completion calls."""

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 16384,
        temperature: float = 0.3,
    ) -> ProviderResponse: ...


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    base_url: str = "",
) -> LLMProvider:
    """Factory function to create a completion provider by name.

    Args:
        provider_name: "gemini", "anthropic", "openai", or "mock"
        api_key: API key for the provider (already resolved by the credential manager).
        model: Model identifier override.
        base_url: REST base URL override (gemini only).

    Returns:
        An LLMProvider instance.
    """
    if provider_name == "gemini":
        from biosig.core.llm.providers.gemini import GEMINI_BASE_URL, GeminiProvider

        return GeminiProvider(
            api_key=api_key,
            model=model or "gemini-2.5-flash",
            base_url=base_url or GEMINI_BASE_URL,
        )
    elif provider_name == "anthropic":
        from biosig.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model or "claude-sonnet-4-5-20250929")
    elif provider_name == "openai":
        from biosig.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model or "gpt-4o")
    elif provider_name == "mock":
        from biosig.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
