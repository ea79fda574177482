"""Shared test fixtures for the biosignal analysis tests."""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("NORMS_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from biosig.core.llm.client import CompletionClient  # noqa: E402
from biosig.core.llm.providers.mock import MockProvider  # noqa: E402
from biosig.core.prompts.models import (  # noqa: E402
    OutputField,
    StageTemplate,
    TemplateFraming,
    TemplateGuardrails,
)
from biosig.core.prompts.registry import TemplateRegistry  # noqa: E402
from biosig.domains.analysis.domain_logic.session import (  # noqa: E402
    MeasurementSession,
    PersonalInfo,
    QualityMetrics,
)
from biosig.domains.analysis.pipeline.stages import STAGE_ORDER, STAGE_REQUIRED_FIELDS  # noqa: E402


# ---------------------------------------------------------------------------
# Measurement data (male 30-39 norm means)
# ---------------------------------------------------------------------------

NOMINAL_EEG: dict[str, float] = {
    "focusIndex": 2.10,
    "relaxationIndex": 0.20,
    "stressIndex": 3.50,
    "cognitiveLoad": 0.55,
    "emotionalStability": 0.61,
    "hemisphericBalance": 0.00,
}

NOMINAL_PPG: dict[str, float] = {
    "heartRate": 71.0,
    "rmssd": 36.0,
    "sdnn": 50.0,
    "pnn50": 15.0,
    "lfHfRatio": 2.1,
    "spo2": 98.0,
}

STEADY_ACCELEROMETER: dict[str, float] = {
    "stability": 90,
    "intensity": 90,
    "averageMovement": 90,
    "maxMovement": 90,
    "tremor": 90,
    "postureStability": 90,
}


def make_session(
    age: int = 34,
    gender: str = "male",
    occupation: str | None = "engineer",
    eeg: dict[str, float] | None = None,
    ppg: dict[str, float] | None = None,
    accelerometer: dict[str, float] | None = None,
) -> MeasurementSession:
    """Create a measurement session with nominal values by default."""
    return MeasurementSession.from_values(
        PersonalInfo(age=age, gender=gender, occupation=occupation),
        eeg=dict(NOMINAL_EEG if eeg is None else eeg),
        ppg=dict(NOMINAL_PPG if ppg is None else ppg),
        accelerometer=QualityMetrics.from_dict(STEADY_ACCELEROMETER if accelerometer is None else accelerometer),
    )


@pytest.fixture
def session() -> MeasurementSession:
    return make_session()


# ---------------------------------------------------------------------------
# Stage templates
# ---------------------------------------------------------------------------

def make_test_template(stage: str, max_output_tokens: int | None = None) -> StageTemplate:
    """Create a stage template declaring exactly the required fields."""
    return StageTemplate(
        id=f"test.{stage}",
        version="1.0",
        stage=stage,
        display_name=f"Test: {stage}",
        instruction=f"Analyze the {stage} data.",
        framing=TemplateFraming(role="Test analyst", perspective="Test perspective", tone="neutral"),
        reasoning_steps=["Read the data", "Draw conclusions"],
        focus_areas=[stage],
        output_fields=[OutputField(name=name, type="string") for name in STAGE_REQUIRED_FIELDS[stage]],
        guardrails=TemplateGuardrails(
            disclaimers=["Not medical advice."],
            prohibited_actions=["diagnose conditions"],
        ),
        max_output_tokens=max_output_tokens,
    )


@pytest.fixture
def registry() -> TemplateRegistry:
    """Registry with one test template per pipeline stage."""
    reg = TemplateRegistry()
    for stage in STAGE_ORDER:
        reg.register(make_test_template(stage))
    return reg


# ---------------------------------------------------------------------------
# Canned stage answers
# ---------------------------------------------------------------------------

STAGE_ANSWERS: dict[str, dict[str, Any]] = {
    "mental": {
        "score": 78,
        "status": "good",
        "analysis": "Focus and relaxation are balanced; stress load sits mid-range.",
        "keyMetrics": {"focusIndex": "balanced", "stressIndex": "normal"},
        "recommendations": ["Take short breaks every hour.", "Keep a regular sleep schedule.", "Try box breathing."],
        "concerns": [],
    },
    "physical": {
        "score": 82,
        "status": "good",
        "analysis": "Heart rate and HRV are in a healthy range.",
        "keyMetrics": {"heartRate": "normal", "rmssd": "healthy"},
        "recommendations": ["Walk 30 minutes a day.", "Stay hydrated."],
        "concerns": [],
    },
    "stress": {
        "score": 65,
        "status": "fair",
        "analysis": "Mild sympathetic dominance under moderate cognitive load.",
        "keyMetrics": {"lfHfRatio": "slightly elevated"},
        "stressFactors": ["Long working hours"],
        "recommendations": ["Schedule recovery time after work."],
    },
    "comprehensive": {
        "overallScore": 76,
        "personalizedSummary": "Overall you are in good shape with moderate stress.",
        "immediateActions": [f"immediate {i}" for i in range(6)],
        "shortTermGoals": [f"short {i}" for i in range(9)],
        "longTermStrategy": [f"long {i}" for i in range(9)],
        "occupationSpecificAdvice": [f"work {i}" for i in range(12)],
        "followUpPlan": ["Re-measure in two weeks."],
    },
}


def fenced(data: dict[str, Any]) -> str:
    """Wrap a JSON answer in prose and a fenced block, as models tend to reply."""
    return f"Here is the analysis.\n\n```json\n{json.dumps(data, indent=2)}\n```\n"


def stage_responder(answers: dict[str, dict[str, Any]] | None = None):
    """Responder answering each stage prompt with its canned JSON."""
    answers = answers or STAGE_ANSWERS

    def respond(user_message: str) -> str:
        for stage in STAGE_ORDER:
            if user_message.startswith(f"## Request ({stage})"):
                return fenced(answers[stage])
        return "no idea"

    return respond


async def _no_sleep(_: float) -> None:
    return None


@pytest.fixture
def mock_provider() -> MockProvider:
    """Mock provider answering every stage with STAGE_ANSWERS."""
    return MockProvider(responder=stage_responder())


@pytest.fixture
def completion_client(mock_provider: MockProvider) -> CompletionClient:
    """CompletionClient over the mock provider, with retry sleeps disabled."""
    return CompletionClient(mock_provider, sleep=_no_sleep)


@pytest.fixture
def session_factory():
    """The make_session builder, for tests that vary the subject or signals."""
    return make_session


@pytest.fixture
def stage_answers() -> dict[str, dict[str, Any]]:
    """A fresh deep copy of STAGE_ANSWERS that tests may edit."""
    return copy.deepcopy(STAGE_ANSWERS)


@pytest.fixture
def responder_factory():
    """The stage_responder builder, for tests that swap one stage answer."""
    return stage_responder
