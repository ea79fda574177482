"""Analysis stage state machine and per-stage result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from biosig.core.prompts.models import AssembledPrompt

STAGE_ORDER = ["mental", "physical", "stress", "comprehensive"]
SYNTHESIS_STAGE = "comprehensive"

# Schema each stage's JSON answer must satisfy before it is trusted
STAGE_REQUIRED_FIELDS = {
    "mental": ["score", "status", "analysis", "keyMetrics", "recommendations", "concerns"],
    "physical": ["score", "status", "analysis", "keyMetrics", "recommendations", "concerns"],
    "stress": ["score", "status", "analysis", "keyMetrics", "stressFactors", "recommendations"],
    "comprehensive": [
        "overallScore",
        "personalizedSummary",
        "immediateActions",
        "shortTermGoals",
        "longTermStrategy",
        "occupationSpecificAdvice",
        "followUpPlan",
    ],
}


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    StageStatus.PENDING: {StageStatus.RUNNING},
    StageStatus.RUNNING: {StageStatus.SUCCEEDED, StageStatus.FAILED},
    StageStatus.SUCCEEDED: set(),
    StageStatus.FAILED: set(),
}


class InvalidStageTransition(RuntimeError):
    """A stage was moved out of order (e.g. finished before it started)."""


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Parsed:
    """The stage answer parsed and passed schema validation."""

    data: dict[str, Any]


@dataclass(frozen=True)
class ParseError:
    """The answer arrived but is not usable structured data. Never retried."""

    reason: str
    missing: list[str] = field(default_factory=list)
    error: BaseException | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class TransportError:
    """The service could not deliver an answer within the retry policy."""

    reason: str
    attempts: int = 0
    status_code: int | None = None
    error: BaseException | None = field(default=None, compare=False, repr=False)


StageResult = Union[Parsed, ParseError, TransportError]


# ---------------------------------------------------------------------------
# Stage record
# ---------------------------------------------------------------------------

@dataclass
class AnalysisStage:
    """One request/response round trip (plus retries) of the pipeline."""

    name: str
    status: StageStatus = StageStatus.PENDING
    prompt: AssembledPrompt | None = None
    raw_response: str | None = None
    result: StageResult | None = None
    attempts: int = 0
    elapsed_ms: float = 0.0

    def _transition(self, new_status: StageStatus) -> None:
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStageTransition(
                f"Stage {self.name!r}: cannot go from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def start(self, prompt: AssembledPrompt) -> None:
        self._transition(StageStatus.RUNNING)
        self.prompt = prompt

    def succeed(self, raw_response: str, data: dict[str, Any], attempts: int, elapsed_ms: float) -> Parsed:
        self._transition(StageStatus.SUCCEEDED)
        self.raw_response = raw_response
        self.result = Parsed(data)
        self.attempts = attempts
        self.elapsed_ms = elapsed_ms
        return self.result

    def fail(
        self,
        result: ParseError | TransportError,
        attempts: int,
        elapsed_ms: float,
        raw_response: str | None = None,
    ) -> ParseError | TransportError:
        self._transition(StageStatus.FAILED)
        self.result = result
        self.raw_response = raw_response
        self.attempts = attempts
        self.elapsed_ms = elapsed_ms
        return result

    @property
    def data(self) -> dict[str, Any]:
        """Parsed answer of a succeeded stage."""
        if not isinstance(self.result, Parsed):
            raise InvalidStageTransition(f"Stage {self.name!r} has no parsed result ({self.status.value})")
        return self.result.data

    def summary(self) -> dict[str, Any]:
        return {
            "stage": self.name,
            "status": self.status.value,
            "attempts": self.attempts,
            "elapsedMs": round(self.elapsed_ms, 1),
        }
