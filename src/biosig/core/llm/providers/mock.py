"""Mock completion providers for testing."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from biosig.core.llm.errors import CompletionTransportError
from biosig.core.llm.provider import ProviderResponse


class MockProvider:
    """Mock provider for testing. Returns a canned response.

    ``responder`` (optional) computes the content from the user message, so a
    single mock can answer every pipeline stage differently.
    """

    def __init__(
        self,
        response_content: str = "Mock LLM response.",
        responder: Callable[[str], str] | None = None,
    ) -> None:
        self.response_content = response_content
        self.responder = responder
        self.last_system_message: str = ""
        self.last_user_message: str = ""
        self.user_messages: list[str] = []
        self.call_count: int = 0

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 16384,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        self.last_system_message = system_message
        self.last_user_message = user_message
        self.user_messages.append(user_message)
        self.call_count += 1
        content = self.responder(user_message) if self.responder else self.response_content
        return ProviderResponse(
            content=content,
            input_tokens=len(system_message.split()) + len(user_message.split()),
            output_tokens=len(content.split()),
            model="mock",
            latency_ms=0.0,
        )


class FlakyProvider(MockProvider):
    """Mock provider that fails with a transport error on the first N calls."""

    def __init__(
        self,
        failures: int,
        response_content: str = "Mock LLM response.",
        status_codes: Sequence[int] = (503,),
    ) -> None:
        super().__init__(response_content=response_content)
        self.failures = failures
        self.status_codes = list(status_codes)

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 16384,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        if self.call_count < self.failures:
            status = self.status_codes[self.call_count % len(self.status_codes)]
            self.call_count += 1
            raise CompletionTransportError(f"Injected failure ({status})", status_code=status)
        return await super().generate(system_message, user_message, max_tokens, temperature)
