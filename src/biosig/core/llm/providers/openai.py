"""OpenAI GPT provider."""

from __future__ import annotations

import time

from biosig.core.llm.errors import CompletionTransportError
from biosig.core.llm.provider import ProviderResponse


class OpenAIProvider:
    """OpenAI provider using the OpenAI SDK."""

    def __init__(self, api_key: str, model: str = "gpt-4o") -> None:
        import openai

        self._errors = openai
        self.client = openai.AsyncOpenAI(api_key=api_key, max_retries=0)
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
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system_message},
                    {"role": "user", "content": user_message},
                ],
            )
        except self._errors.APIError as exc:
            raise CompletionTransportError(
                f"OpenAI request failed: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        if not response.choices:
            raise CompletionTransportError("OpenAI returned no choices")
        content = response.choices[0].message.content or ""
        usage = response.usage
        return ProviderResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self.model,
            latency_ms=elapsed_ms,
        )
