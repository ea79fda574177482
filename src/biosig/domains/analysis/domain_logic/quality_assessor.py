"""Deterministic measurement quality assessment from accelerometer summaries.

Each compute function takes the accelerometer summary and returns a 0-100
sub-score. All functions are pure and never raise; missing fields fall back
to PERMISSIVE_DEFAULTS.
"""

from __future__ import annotations

import logging
import math

from biosig.domains.analysis.domain_logic.quality_models import (
    CONFIDENCE_MEAN_WEIGHT,
    CONFIDENCE_MIN_WEIGHT,
    DEFAULT_RECOMMENDATION,
    FACTOR_NAMES,
    IMPROVEMENT_TIPS,
    INTEGRITY_LOGIC_PENALTY,
    INTEGRITY_MISSING_PENALTY,
    INTEGRITY_RANGE_PENALTY,
    INTEGRITY_REQUIRED_FIELDS,
    PERMISSIVE_DEFAULTS,
    QUALITY_GRADE_FLOOR,
    QUALITY_GRADE_THRESHOLDS,
    QUALITY_WEIGHTS,
    RELIABILITY_FLOOR,
    RELIABILITY_THRESHOLDS,
    REMEASURE_OVERALL_BELOW,
    REMEASURE_STABILITY_BELOW,
    STABILITY_GATE_FLOOR,
    STABILITY_GATE_FULL,
    WARNING_THRESHOLDS,
    AdvancedQualityResult,
    EnvironmentalFactors,
    QualityFactors,
    RemeasurementSuggestion,
)
from biosig.domains.analysis.domain_logic.session import QualityMetrics

logger = logging.getLogger(__name__)


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def _round(value: float) -> int:
    """Round half up (scores are reported as whole numbers)."""
    return int(math.floor(value + 0.5))


def _value(metrics: QualityMetrics, name: str) -> float:
    raw = getattr(metrics, name)
    if raw is None or not math.isfinite(raw):
        return PERMISSIVE_DEFAULTS[name]
    return float(raw)


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------

def compute_signal_stability(metrics: QualityMetrics) -> float:
    """Sensor stability with a tremor penalty, stretched by band."""
    score = min(_value(metrics, "stability") + 20, 100)
    score -= min(_value(metrics, "tremor") * 0.3, 10)

    if score >= 70:
        score = min(score * 1.1, 100)
    elif score >= 50:
        pass
    elif score >= 30:
        score *= 0.95
    else:
        score *= 0.9
    return _clamp(score)


def compute_noise_level(metrics: QualityMetrics) -> float:
    """100 = no noise. Penalizes intensity and spiky movement (max/avg)."""
    score = 100.0
    intensity = _value(metrics, "intensity")
    if intensity > 85:
        score -= 25
    elif intensity > 65:
        score -= 15
    elif intensity > 40:
        score -= 5

    avg = _value(metrics, "average_movement")
    peak = _value(metrics, "max_movement")
    ratio = peak / avg if avg > 0 else 1.0
    if ratio > 8:
        score -= 10
    elif ratio > 5:
        score -= 5
    return _clamp(score)


def compute_movement_consistency(metrics: QualityMetrics) -> float:
    score = 95.0
    avg = _value(metrics, "average_movement")
    if avg > 2.0:
        score -= 10
    elif avg > 1.0:
        score -= 3
    elif avg > 0.6:
        score -= 1

    variability = _value(metrics, "max_movement") - avg
    if variability > 2.5:
        score -= 5
    elif variability > 1.5:
        score -= 2

    tremor = _value(metrics, "tremor")
    if tremor > 80:
        score -= min((tremor - 80) * 0.05, 3)
    return _clamp(score)


def compute_posture_quality(metrics: QualityMetrics) -> float:
    score = min(_value(metrics, "posture_stability") + 40, 100)
    avg = _value(metrics, "average_movement")
    if avg > 1.5:
        score *= 0.97
    elif avg > 1.0:
        score *= 0.99

    if score >= 50:
        score = min(score * 1.15, 100)
    elif score >= 25:
        score = min(score * 1.1, 100)
    else:
        score *= 0.99
    return _clamp(score)


def compute_data_integrity(metrics: QualityMetrics) -> float:
    """Field presence, value range and logical consistency checks."""
    score = 100.0
    for name in INTEGRITY_REQUIRED_FIELDS:
        if getattr(metrics, name) is None:
            score -= INTEGRITY_MISSING_PENALTY

    if metrics.stability is not None and not 0 <= metrics.stability <= 100:
        score -= INTEGRITY_RANGE_PENALTY
    if metrics.intensity is not None and not 0 <= metrics.intensity <= 100:
        score -= INTEGRITY_RANGE_PENALTY
    if metrics.average_movement is not None and not 0 <= metrics.average_movement <= 10:
        score -= INTEGRITY_RANGE_PENALTY

    if (
        metrics.max_movement is not None
        and metrics.average_movement is not None
        and metrics.max_movement < metrics.average_movement
    ):
        score -= INTEGRITY_LOGIC_PENALTY
    return _clamp(score)


# ---------------------------------------------------------------------------
# Tiers and descriptions
# ---------------------------------------------------------------------------

def reliability_tier(overall_score: float) -> str:
    for threshold, tier in RELIABILITY_THRESHOLDS:
        if overall_score >= threshold:
            return tier
    return RELIABILITY_FLOOR


def quality_grade(overall_score: float) -> str:
    for threshold, grade in QUALITY_GRADE_THRESHOLDS:
        if overall_score >= threshold:
            return grade
    return QUALITY_GRADE_FLOOR


def analyze_environment(metrics: QualityMetrics) -> EnvironmentalFactors:
    avg = _value(metrics, "average_movement")
    if avg < 0.3:
        ambient = "low"
    elif avg < 0.8:
        ambient = "medium"
    else:
        ambient = "high"

    stability = _value(metrics, "stability")
    if stability >= 90:
        consistency = "excellent"
    elif stability >= 70:
        consistency = "good"
    elif stability >= 50:
        consistency = "fair"
    else:
        consistency = "poor"

    intensity = _value(metrics, "intensity")
    if intensity < 20:
        interference = "none"
    elif intensity < 40:
        interference = "minimal"
    elif intensity < 60:
        interference = "moderate"
    else:
        interference = "significant"

    return EnvironmentalFactors(
        ambient_movement=ambient,
        measurement_consistency=consistency,
        external_interference=interference,
    )


_FACTOR_LABELS = {
    "signal_stability": "Signal stability",
    "noise_level": "Noise level",
    "movement_consistency": "Movement consistency",
    "posture_quality": "Posture quality",
    "data_integrity": "Data integrity",
}


def _describe_factor(name: str, score: float) -> str:
    label = _FACTOR_LABELS[name]
    if score >= 80:
        verdict = "very good; the signal is barely affected"
    elif score >= 60:
        verdict = "acceptable; minor artifacts may be present"
    elif score >= 40:
        verdict = "reduced; some readings may be distorted"
    else:
        verdict = "poor; results from this recording are unreliable"
    return f"{label} {score:.1f}/100: {verdict}."


def _warnings(metrics: QualityMetrics, factors: dict[str, float]) -> list[str]:
    warnings: list[str] = []
    if factors["signal_stability"] < WARNING_THRESHOLDS["signal_stability"]:
        warnings.append("Low signal stability: excessive movement was detected during the measurement.")
    if factors["noise_level"] < WARNING_THRESHOLDS["noise_level"]:
        warnings.append("High noise level detected. Please improve the measurement environment.")
    if factors["movement_consistency"] < WARNING_THRESHOLDS["movement_consistency"]:
        warnings.append("Movement was inconsistent. Measure again while staying still.")
    if factors["posture_quality"] < WARNING_THRESHOLDS["posture_quality"]:
        warnings.append("Posture was unstable. Re-measuring in a comfortable position is advised.")
    if factors["data_integrity"] < WARNING_THRESHOLDS["data_integrity"]:
        warnings.append("Data integrity problems detected. Interpret the results with care.")
    if _value(metrics, "intensity") > WARNING_THRESHOLDS["intensity"]:
        warnings.append("Strong external interference was detected during the measurement.")
    if _value(metrics, "average_movement") > WARNING_THRESHOLDS["average_movement"]:
        warnings.append("Active movement was detected. Stay still while measuring.")
    return warnings


def _recommendations(metrics: QualityMetrics, factors: dict[str, float]) -> list[str]:
    recs: list[str] = []
    if factors["signal_stability"] < 70:
        recs.append("Sit comfortably and keep movement to a minimum while measuring.")
    if factors["noise_level"] < 70:
        recs.append("Measure in a quiet, stable environment.")
    if factors["movement_consistency"] < 50:
        recs.append("Hold the same posture throughout and avoid sudden movements.")
    if factors["posture_quality"] < 50:
        recs.append("Sit in a chair with a backrest during the measurement.")
    if _value(metrics, "tremor") > 30:
        recs.append("Relax your wrists and arms and keep a natural posture.")
    if _value(metrics, "intensity") > 50:
        recs.append("Avoid external vibration or impacts during the measurement.")
    return recs or [DEFAULT_RECOMMENDATION]


def _remeasurement(overall: int, factors: dict[str, float]) -> RemeasurementSuggestion:
    stability = factors["signal_stability"]
    is_recommended = overall < REMEASURE_OVERALL_BELOW or stability < REMEASURE_STABILITY_BELOW
    if not is_recommended:
        return RemeasurementSuggestion(is_recommended=False)

    reasons: list[str] = []
    if overall < REMEASURE_OVERALL_BELOW:
        reasons.append(f"Overall measurement quality is low ({overall}/100).")
    if stability < REMEASURE_STABILITY_BELOW:
        reasons.append(f"Signal stability is insufficient ({stability:.1f}/100).")
    if factors["noise_level"] < 30:
        reasons.append("A high noise level was detected.")
    if factors["movement_consistency"] < 30:
        reasons.append("Movement consistency is low.")
    return RemeasurementSuggestion(
        is_recommended=True,
        reasons=reasons,
        improvement_tips=list(IMPROVEMENT_TIPS),
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def assess_quality(metrics: QualityMetrics) -> AdvancedQualityResult:
    """Grade motion-artifact interference for one measurement.

    Pipeline:
        1. Five independent sub-scores
        2. Weighted sum, gated by signal stability
        3. Reliability tier, confidence, environment
        4. Warnings, recommendations, remeasurement advice
    """
    factors = {
        "signal_stability": compute_signal_stability(metrics),
        "noise_level": compute_noise_level(metrics),
        "movement_consistency": compute_movement_consistency(metrics),
        "posture_quality": compute_posture_quality(metrics),
        "data_integrity": compute_data_integrity(metrics),
    }

    weighted = sum(QUALITY_WEIGHTS[name] * factors[name] for name in FACTOR_NAMES)
    gate = _clamp(factors["signal_stability"] / STABILITY_GATE_FULL, STABILITY_GATE_FLOOR, 1.0)
    overall = _round(_clamp(weighted * gate))

    scores = list(factors.values())
    confidence = _round(
        CONFIDENCE_MIN_WEIGHT * min(scores) + CONFIDENCE_MEAN_WEIGHT * (sum(scores) / len(scores))
    )

    quality_factors = QualityFactors(
        signal_stability=round(factors["signal_stability"], 1),
        noise_level=round(factors["noise_level"], 1),
        movement_consistency=round(factors["movement_consistency"], 1),
        posture_quality=round(factors["posture_quality"], 1),
        data_integrity=round(factors["data_integrity"], 1),
        overall_score=overall,
        reliability=reliability_tier(overall),
        environmental_factors=analyze_environment(metrics),
    )

    remeasurement = _remeasurement(overall, factors)
    if remeasurement.is_recommended:
        logger.warning(
            "Remeasurement recommended: overall=%d, stability=%.1f",
            overall,
            factors["signal_stability"],
        )

    return AdvancedQualityResult(
        factors=quality_factors,
        confidence_level=confidence,
        quality_grade=quality_grade(overall),
        warnings=_warnings(metrics, factors),
        recommendations=_recommendations(metrics, factors),
        remeasurement=remeasurement,
        detailed_analysis={name: _describe_factor(name, factors[name]) for name in FACTOR_NAMES},
    )
