"""Completion client: one stage call to the external service with retry and timeout."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from biosig.core.config.settings import Settings, get_settings
from biosig.core.llm.credentials import (
    CredentialManager,
    SettingsCredentialManager,
    resolve_api_key,
)
from biosig.core.llm.errors import CompletionTransportError
from biosig.core.llm.provider import LLMProvider, ProviderResponse, create_provider
from biosig.core.llm.retry import RetryPolicy, with_retry
from biosig.core.llm.system_prompt import build_full_system_prompt
from biosig.core.prompts.models import AssembledPrompt

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """Raw answer text of a successful call plus bookkeeping."""

    content: str
    model: str
    attempts: int
    elapsed_ms: float
    usage: dict[str, int] = field(default_factory=dict)


class CompletionClient:
    """Sends assembled stage prompts to a provider under a RetryPolicy."""

    def __init__(
        self,
        provider: LLMProvider,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self._sleep = sleep

    async def complete(
        self,
        prompt: AssembledPrompt,
        policy: RetryPolicy,
        *,
        stage: str = "",
        max_output_tokens: int | None = None,
    ) -> CompletionResult:
        """Call the provider, retrying transport failures and timeouts.

        Raises CompletionTransportError (with ``attempts``) once the policy is
        exhausted.
        """
        full_system = build_full_system_prompt(prompt.system_message)
        max_tokens = max_output_tokens or policy.max_output_tokens

        async def attempt() -> ProviderResponse:
            try:
                return await asyncio.wait_for(
                    self.provider.generate(
                        system_message=full_system,
                        user_message=prompt.user_message,
                        max_tokens=max_tokens,
                        temperature=policy.temperature,
                    ),
                    timeout=policy.timeout_seconds,
                )
            except asyncio.TimeoutError as exc:
                raise CompletionTransportError(
                    f"Request timed out after {policy.timeout_ms}ms"
                ) from exc

        start = time.monotonic()
        outcome = await with_retry(
            attempt,
            policy,
            sleep=self._sleep,
            label=f"Completion call for stage {stage or '?'}",
        )
        elapsed_ms = (time.monotonic() - start) * 1000
        response = outcome.value

        logger.info(
            "Completion call: stage=%s, model=%s, tokens=%d+%d, attempts=%d, latency=%.0fms",
            stage,
            response.model,
            response.input_tokens,
            response.output_tokens,
            outcome.attempts,
            response.latency_ms,
        )

        return CompletionResult(
            content=response.content,
            model=response.model,
            attempts=outcome.attempts,
            elapsed_ms=elapsed_ms,
            usage={
                "input_tokens": response.input_tokens,
                "output_tokens": response.output_tokens,
            },
        )


def create_completion_client(
    settings: Settings | None = None,
    credentials: CredentialManager | None = None,
) -> CompletionClient:
    """Build a client for the configured provider.

    The credential is checked here, before any request is made, so a missing
    or unverified key fails fast with CompletionConfigError.
    """
    settings = settings or get_settings()
    manager = credentials or SettingsCredentialManager(settings)
    api_key = resolve_api_key(manager, settings.llm_provider)
    provider = create_provider(
        settings.llm_provider,
        api_key=api_key,
        model=settings.model_for_provider(),
        base_url=settings.gemini_base_url if settings.llm_provider == "gemini" else "",
    )
    return CompletionClient(provider)
