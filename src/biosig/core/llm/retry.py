"""Retry-with-backoff combinator for completion calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from biosig.core.llm.errors import CompletionTransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Per-stage call policy.

    ``max_retries`` is the total number of attempts; the delay before attempt
    ``n+1`` is ``retry_delay_ms * backoff_multiplier**n``.
    """

    model: str = "gemini-2.5-flash"
    max_retries: int = 3
    retry_delay_ms: int = 1000
    timeout_ms: int = 90_000
    backoff_multiplier: float = 2.0
    max_output_tokens: int = 16384
    temperature: float = 0.3

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


DEFAULT_POLICY = RetryPolicy()

SYNTHESIS_POLICY = RetryPolicy(
    max_retries=2,
    retry_delay_ms=2000,
    timeout_ms=180_000,
    max_output_tokens=32768,
)


@dataclass
class RetryOutcome(Generic[T]):
    """Value returned by the operation plus how many attempts it took."""

    value: T
    attempts: int
    delays: list[float]


def delay_for_attempt(policy: RetryPolicy, attempt: int) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
    return policy.retry_delay_ms * (policy.backoff_multiplier ** attempt) / 1000


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: tuple[type[BaseException], ...] = (CompletionTransportError,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
) -> RetryOutcome[T]:
    """Run ``operation`` until it succeeds or ``policy.max_retries`` attempts fail.

    Exceptions outside ``retry_on`` propagate immediately. After the last
    attempt the final error is re-raised with an ``attempts`` attribute.
    """
    attempts_allowed = max(1, policy.max_retries)
    delays: list[float] = []

    for attempt in range(attempts_allowed):
        try:
            value = await operation()
        except retry_on as exc:
            logger.warning(
                "%s failed (attempt %d/%d): %s",
                label,
                attempt + 1,
                attempts_allowed,
                exc,
            )
            if attempt == attempts_allowed - 1:
                exc.attempts = attempts_allowed  # type: ignore[attr-defined]
                exc.delays = delays  # type: ignore[attr-defined]
                raise
            delay = delay_for_attempt(policy, attempt)
            delays.append(delay)
            await sleep(delay)
            continue
        return RetryOutcome(value=value, attempts=attempt + 1, delays=delays)

    raise RuntimeError(f"{label}: retry loop ended without a result")
