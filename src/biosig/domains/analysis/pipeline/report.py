"""Final report assembly from the four stage answers.

Stage answers are trusted only after schema validation, but list fields may
still be short or hold non-string items; slicing and coercion here tolerate
that.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from biosig.domains.analysis.domain_logic.quality_models import AdvancedQualityResult
from biosig.domains.analysis.domain_logic.risk_models import RiskAssessment
from biosig.domains.analysis.domain_logic.session import MeasurementSession
from biosig.domains.analysis.pipeline.context import NormalizedMetrics

MAX_PROBLEM_AREAS = 3
MAX_KEY_FINDINGS = 5
MAX_RISK_FACTORS = 5
PROBLEM_SCORE_BELOW = 70
HIGH_SEVERITY_BELOW = 50
STRENGTH_SCORE_FROM = 80

HEALTH_GRADES = [
    (90, "excellent"),
    (80, "good"),
    (70, "fair"),
    (60, "caution"),
    (50, "poor"),
]
HEALTH_GRADE_FLOOR = "critical"

# (slice start, slice end) of the synthesis lists for each domain block
DOMAIN_SLICES = {
    "mental": (0, 2),
    "physical": (2, 4),
    "stress": (4, 6),
}

DISCLAIMER = (
    "This report is based on a one-minute screening measurement and is not a "
    "medical diagnosis. Consult a healthcare professional about any concern."
)


@dataclass(frozen=True)
class DomainAnalysis:
    score: float
    status: str
    analysis: str
    key_metrics: dict[str, Any]
    immediate_actions: list[str]
    short_term_goals: list[str]
    long_term_strategy: list[str]
    concerns: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProblemArea:
    category: str
    severity: str  # high | medium
    score: float
    description: str
    details: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisReport:
    """Terminal aggregate handed to rendering and storage collaborators."""

    session_id: str
    generated_at: datetime
    overall_score: float
    overall_grade: str
    summary: str
    key_findings: list[str]
    risk_factors: list[str]
    strengths: list[str]
    mental: DomainAnalysis
    physical: DomainAnalysis
    stress: DomainAnalysis
    problem_areas: list[ProblemArea]
    personalized_recommendations: dict[str, dict[str, list[str]]]
    follow_up_actions: list[str]
    quality: AdvancedQualityResult
    risk: RiskAssessment
    normalized_metrics: dict[str, dict[str, Any]]
    metadata: dict[str, Any] = field(default_factory=dict)
    disclaimer: str = DISCLAIMER

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["generated_at"] = self.generated_at.isoformat()
        return data


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _num(val: Any, default: float = 0.0) -> float:
    """Safely convert to float, returning default for None or non-numeric."""
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def _strings(val: Any) -> list[str]:
    """Coerce a stage list field into a list of strings."""
    if val is None:
        return []
    if isinstance(val, str):
        return [val] if val.strip() else []
    if isinstance(val, dict):
        return [f"{k}: {v}" for k, v in val.items()]
    try:
        return [str(item) for item in val if item is not None and str(item).strip()]
    except TypeError:
        return [str(val)]


def _slice(items: list[str], start: int, end: int) -> list[str]:
    return items[start:end]


def health_grade(score: float) -> str:
    for threshold, grade in HEALTH_GRADES:
        if score >= threshold:
            return grade
    return HEALTH_GRADE_FLOOR


# ---------------------------------------------------------------------------
# Problem areas
# ---------------------------------------------------------------------------

def _mental_details(metrics: dict[str, float]) -> list[str]:
    details = []
    if metrics.get("focusIndex") is not None and metrics["focusIndex"] < 1.8:
        details.append("Concentration is below the normal range.")
    if metrics.get("stressIndex") is not None and metrics["stressIndex"] > 4.0:
        details.append("Brain stress index is elevated.")
    if metrics.get("relaxationIndex") is not None and metrics["relaxationIndex"] < 0.18:
        details.append("Relaxation is reduced.")
    return details


def _physical_details(metrics: dict[str, float]) -> list[str]:
    details = []
    if metrics.get("spo2") is not None and metrics["spo2"] < 95:
        details.append("Oxygen saturation is below 95%.")
    if metrics.get("rmssd") is not None and metrics["rmssd"] < 20:
        details.append("Parasympathetic activity (RMSSD) is low.")
    if metrics.get("sdnn") is not None and metrics["sdnn"] < 30:
        details.append("Heart rate variability (SDNN) is low.")
    hr = metrics.get("heartRate")
    if hr is not None and not 60 <= hr <= 100:
        details.append("Resting heart rate is outside 60-100 BPM.")
    return details


def _stress_details(metrics: dict[str, float]) -> list[str]:
    details = []
    if metrics.get("stressIndex") is not None and metrics["stressIndex"] > 4.0:
        details.append("EEG stress index is above 4.0.")
    if metrics.get("lfHfRatio") is not None and metrics["lfHfRatio"] > 3.0:
        details.append("Sympathetic dominance (LF/HF above 3.0).")
    return details


_PROBLEM_RULES = [
    ("mental", "concerns", "Mental health", _mental_details),
    ("physical", "concerns", "Physical health", _physical_details),
    ("stress", "stressFactors", "Stress management", _stress_details),
]


def identify_problem_areas(
    outputs: dict[str, dict[str, Any]],
    metric_values: dict[str, float],
) -> list[ProblemArea]:
    """Flag domains with a low score or reported concerns, most severe first."""
    problems: list[ProblemArea] = []
    for stage, concern_key, label, refine in _PROBLEM_RULES:
        data = outputs.get(stage) or {}
        score = _num(data.get("score"), default=100.0)
        concerns = _strings(data.get(concern_key))
        if score >= PROBLEM_SCORE_BELOW and not concerns:
            continue

        details = refine(metric_values)
        if details:
            description = f"{label}: {' '.join(details)}"
        elif concerns:
            description = f"{label}: {concerns[0]}"
        else:
            description = f"{label} score is {score:.0f}, below the healthy range."
        problems.append(
            ProblemArea(
                category=stage,
                severity="high" if score < HIGH_SEVERITY_BELOW else "medium",
                score=score,
                description=description,
                details=details + concerns,
            )
        )

    problems.sort(key=lambda p: (p.severity != "high", p.score))
    return problems[:MAX_PROBLEM_AREAS]


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def _domain(data: dict[str, Any], synthesis: dict[str, Any], stage: str, concern_key: str) -> DomainAnalysis:
    start, end = DOMAIN_SLICES[stage]
    key_metrics = data.get("keyMetrics")
    return DomainAnalysis(
        score=_num(data.get("score")),
        status=str(data.get("status", "")),
        analysis=str(data.get("analysis", "")),
        key_metrics=key_metrics if isinstance(key_metrics, dict) else {"summary": key_metrics},
        immediate_actions=_slice(_strings(synthesis.get("immediateActions")), start, end),
        short_term_goals=_slice(_strings(synthesis.get("shortTermGoals")), start, end),
        long_term_strategy=_slice(_strings(synthesis.get("longTermStrategy")), start, end),
        concerns=_strings(data.get(concern_key)),
    )


def personalized_recommendations(synthesis: dict[str, Any]) -> dict[str, dict[str, list[str]]]:
    """Distribute the synthesis lists into fixed buckets by index slices."""
    immediate = _strings(synthesis.get("immediateActions"))
    short_term = _strings(synthesis.get("shortTermGoals"))
    long_term = _strings(synthesis.get("longTermStrategy"))
    occupation = _strings(synthesis.get("occupationSpecificAdvice"))
    return {
        "immediate": {
            "lifestyle": immediate[0:3],
            "exercise": immediate[3:6],
        },
        "shortTerm": {
            "lifestyle": short_term[0:3],
            "exercise": short_term[3:6],
            "stressManagement": short_term[6:9],
        },
        "longTerm": {
            "lifestyle": long_term[0:3],
            "exercise": long_term[3:6],
            "mentalCare": long_term[6:9],
        },
        "occupationSpecific": {
            "workplaceStrategies": occupation[0:3],
            "timeManagement": occupation[3:6],
            "environmentalChanges": occupation[6:9],
            "colleagueInteraction": occupation[9:12],
        },
    }


def assemble_report(
    outputs: dict[str, dict[str, Any]],
    session: MeasurementSession,
    quality: AdvancedQualityResult,
    risk: RiskAssessment,
    normalized: NormalizedMetrics,
    metadata: dict[str, Any] | None = None,
) -> AnalysisReport:
    """Merge the four validated stage answers into one AnalysisReport."""
    mental = outputs["mental"]
    physical = outputs["physical"]
    stress = outputs["stress"]
    synthesis = outputs["comprehensive"]

    overall_score = max(0.0, min(100.0, _num(synthesis.get("overallScore"))))

    key_findings = (
        _strings(mental.get("recommendations"))[:2]
        + _strings(physical.get("recommendations"))[:2]
        + _strings(stress.get("recommendations"))[:2]
    )[:MAX_KEY_FINDINGS]
    risk_factors = list(
        dict.fromkeys(
            _strings(mental.get("concerns"))
            + _strings(physical.get("concerns"))
            + _strings(stress.get("stressFactors"))
        )
    )[:MAX_RISK_FACTORS]
    strengths = [
        f"{name.capitalize()} indicators are in good shape (score {_num(data.get('score')):.0f})."
        for name, data in (("mental", mental), ("physical", physical), ("stress", stress))
        if _num(data.get("score")) >= STRENGTH_SCORE_FROM
    ]

    return AnalysisReport(
        session_id=session.session_id,
        generated_at=datetime.now(timezone.utc),
        overall_score=overall_score,
        overall_grade=health_grade(overall_score),
        summary=str(synthesis.get("personalizedSummary", "")),
        key_findings=key_findings,
        risk_factors=risk_factors,
        strengths=strengths,
        mental=_domain(mental, synthesis, "mental", "concerns"),
        physical=_domain(physical, synthesis, "physical", "concerns"),
        stress=_domain(stress, synthesis, "stress", "stressFactors"),
        problem_areas=identify_problem_areas(outputs, session.metric_values()),
        personalized_recommendations=personalized_recommendations(synthesis),
        follow_up_actions=_strings(synthesis.get("followUpPlan")),
        quality=quality,
        risk=risk,
        normalized_metrics={name: score.to_dict() for name, score in normalized.metrics.items()},
        metadata=dict(metadata or {}),
    )
