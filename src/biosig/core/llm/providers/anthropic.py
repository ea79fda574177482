"""Anthropic Claude provider."""

from __future__ import annotations

import time

from biosig.core.llm.errors import CompletionTransportError
from biosig.core.llm.provider import ProviderResponse


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5-20250929") -> None:
        import anthropic

        self._errors = anthropic
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 16384,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        start = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_message,
                messages=[{"role": "user", "content": user_message}],
            )
        except self._errors.APIError as exc:
            raise CompletionTransportError(
                f"Anthropic request failed: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        if not response.content:
            raise CompletionTransportError("Anthropic returned an empty message")
        return ProviderResponse(
            content=response.content[0].text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
            latency_ms=elapsed_ms,
        )
