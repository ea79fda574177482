"""Prompt context builders for each analysis stage.

Every builder returns plain JSON-serializable data; nothing here mutates the
session or the scoring results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from biosig.domains.analysis.domain_logic.metric_catalog import metrics_for_channel
from biosig.domains.analysis.domain_logic.norm_models import StandardizedScore
from biosig.domains.analysis.domain_logic.norm_table import NormTable, default_norm_table
from biosig.domains.analysis.domain_logic.normalizer import (
    apply_occupation_adjustment,
    combine_scores,
    standardize,
    standardize_many,
)
from biosig.domains.analysis.domain_logic.quality_models import AdvancedQualityResult
from biosig.domains.analysis.domain_logic.risk_models import (
    CATEGORY_LABELS,
    CATEGORY_NORM_METRICS,
    RiskAssessment,
)
from biosig.domains.analysis.domain_logic.risk_scorer import age_weights
from biosig.domains.analysis.domain_logic.session import MeasurementSession

ANALYSIS_EXCERPT_CHARS = 100

STRESS_METRICS = ["stressIndex", "relaxationIndex", "heartRate", "rmssd", "sdnn", "lfHfRatio"]


@dataclass(frozen=True)
class NormalizedMetrics:
    """Standardized scores for the measured metrics and the category risks."""

    metrics: dict[str, StandardizedScore]
    risks: dict[str, StandardizedScore]
    risk_composite: StandardizedScore | None = None
    notes: list[str] = field(default_factory=list)


def normalize_measurements(
    session: MeasurementSession,
    risks: RiskAssessment,
    table: NormTable | None = None,
) -> NormalizedMetrics:
    """Standardize raw metrics and risk scores against the subject's group."""
    if table is None:
        table = default_norm_table()
    info = session.personal_info
    metrics = standardize_many(session.metric_values(), info.gender, info.age, table)

    risk_scores = {
        category: standardize(
            profile.risk_score, CATEGORY_NORM_METRICS[category], info.gender, info.age, table
        )
        for category, profile in risks.profiles.items()
    }
    weights = age_weights(info.age)
    composite = combine_scores(
        [risk_scores[c] for c in risk_scores],
        [weights[c] for c in risk_scores],
    )
    composite = apply_occupation_adjustment(composite, info.occupation)

    notes = [name for name, score in metrics.items() if not score.age_gender_adjusted]
    return NormalizedMetrics(metrics=metrics, risks=risk_scores, risk_composite=composite, notes=notes)


# ---------------------------------------------------------------------------
# Shared blocks
# ---------------------------------------------------------------------------

def quality_context(quality: AdvancedQualityResult) -> dict[str, Any]:
    return {
        "overallScore": quality.overall_score,
        "reliability": quality.reliability,
        "confidence": quality.confidence_level,
        "grade": quality.quality_grade,
        "warnings": quality.warnings,
    }


def _metric_rows(
    session: MeasurementSession,
    names: list[str],
    normalized: NormalizedMetrics,
) -> list[dict[str, Any]]:
    samples = {**session.eeg, **session.ppg}
    rows = []
    for name in names:
        sample = samples.get(name)
        if sample is None:
            continue
        row = sample.to_dict()
        score = normalized.metrics.get(name)
        if score is not None and score.age_gender_adjusted:
            row["percentile"] = score.percentile
            row["grade"] = score.grade
            row["comparison"] = score.grade_description
        rows.append(row)
    return rows


def _risk_rows(risks: RiskAssessment, normalized: NormalizedMetrics, categories: list[str]) -> list[dict[str, Any]]:
    rows = []
    for category in categories:
        profile = risks.profiles[category]
        score = normalized.risks.get(category)
        rows.append(
            {
                "category": CATEGORY_LABELS[category],
                "riskScore": profile.risk_score,
                "confidence": profile.confidence,
                "percentile": score.percentile if score else None,
                "eegMarkers": profile.eeg_markers,
                "ppgMarkers": profile.ppg_markers,
            }
        )
    return rows


# ---------------------------------------------------------------------------
# Per-stage context
# ---------------------------------------------------------------------------

def build_stage_context(
    stage: str,
    session: MeasurementSession,
    quality: AdvancedQualityResult,
    risks: RiskAssessment,
    normalized: NormalizedMetrics,
) -> dict[str, Any]:
    """Data block for one stage prompt."""
    context: dict[str, Any] = {
        "subject": session.personal_info.to_dict(),
        "measurementQuality": quality_context(quality),
    }

    if stage == "mental":
        context["eegMetrics"] = _metric_rows(session, metrics_for_channel("eeg"), normalized)
        context["riskIndicators"] = _risk_rows(risks, normalized, ["mood", "attention", "impulse"])
    elif stage == "physical":
        context["ppgMetrics"] = _metric_rows(session, metrics_for_channel("ppg"), normalized)
    elif stage == "stress":
        context["stressMetrics"] = _metric_rows(session, STRESS_METRICS, normalized)
        context["riskIndicators"] = _risk_rows(risks, normalized, ["exhaustion"])
    else:
        overall = risks.overall
        context["riskAssessment"] = {
            "totalRiskScore": overall.total_risk_score,
            "mentalHealthScore": overall.mental_health_score,
            "riskLevel": overall.risk_level,
            "primaryConcern": overall.primary_concern,
            "followUpNeeded": overall.follow_up_needed,
        }
        if normalized.risk_composite is not None:
            context["riskAssessment"]["peerComparison"] = normalized.risk_composite.grade_description
    return context


def summarize_prior_stages(outputs: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Short summary of every finished stage for the next stage's prompt."""
    summary: dict[str, Any] = {}
    for stage, data in outputs.items():
        entry = {
            "score": data.get("score", data.get("overallScore")),
            "status": data.get("status"),
            "analysisExcerpt": str(data.get("analysis", ""))[:ANALYSIS_EXCERPT_CHARS],
        }
        if "stressFactors" in data:
            entry["stressFactors"] = data.get("stressFactors") or []
        else:
            entry["concerns"] = data.get("concerns") or []
        summary[stage] = entry
    return summary
