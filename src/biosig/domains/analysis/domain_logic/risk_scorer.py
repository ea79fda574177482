"""Deterministic biomarker risk scoring: EEG/PPG metrics -> category risk profiles.

Each compute function takes flat ``{metric: value}`` maps and returns a
RiskProfile. Sub-indicators are bounded linear or ratio transforms of one or
two metrics, always clamped to [0, 100]. Missing metrics fall back to
METRIC_DEFAULTS.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from biosig.domains.analysis.domain_logic.risk_models import (
    AGE_RECOMMENDATIONS,
    AGE_RISK_WEIGHTS,
    ALL_GOOD_BELOW,
    ALL_GOOD_RECOMMENDATIONS,
    CATEGORIES,
    CONFIDENCE_FLOOR,
    CONFIDENCE_WEIGHTS,
    EEG_BLOCK_WEIGHTS,
    FEMALE_RECOMMENDATION,
    FOLLOW_UP_CATEGORY_ABOVE,
    FOLLOW_UP_TOTAL_ABOVE,
    MAX_RECOMMENDATIONS,
    METRIC_DEFAULTS,
    NO_PRIMARY_CONCERN,
    OLDEST_AGE_RISK_WEIGHTS,
    PRIMARY_CONCERN_THRESHOLD,
    RECOMMENDATION_HIGH,
    RECOMMENDATION_MID,
    RECOMMENDATION_TEMPLATES,
    RECOMMENDATION_TRIGGER,
    RESHAPE_CENTER,
    RESHAPE_HIGH,
    RESHAPE_LOW,
    RESHAPE_SCALE,
    RISK_LEVEL_CEILING,
    RISK_LEVELS,
    SUB_INDICATOR_WEIGHTS,
    OverallAssessment,
    RiskAssessment,
    RiskProfile,
    SignalQualitySummary,
)
from biosig.domains.analysis.domain_logic.quality_models import AdvancedQualityResult
from biosig.domains.analysis.domain_logic.session import PersonalInfo

logger = logging.getLogger(__name__)

Metrics = Mapping[str, float]


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def _num(metrics: Metrics, name: str) -> float:
    """Metric value, or its default when missing or non-numeric."""
    val = metrics.get(name)
    if val is None:
        return METRIC_DEFAULTS[name]
    try:
        val = float(val)
    except (TypeError, ValueError):
        return METRIC_DEFAULTS[name]
    return val if math.isfinite(val) else METRIC_DEFAULTS[name]


def _floor(value: float, lo: float) -> float:
    """Floor at ``lo``; the upper end is still capped at 100."""
    return _clamp(max(lo, value))


def _block(markers: dict[str, float], weights: list[float], inverted: tuple[str, ...] = ()) -> float:
    """Weighted sum of markers; names in ``inverted`` contribute (100 - value)."""
    total = 0.0
    for (name, value), weight in zip(markers.items(), weights):
        total += weight * ((100 - value) if name in inverted else value)
    return total


def reshape_score(raw: float) -> float:
    """Map a raw 0-100 weighted sum onto a bounded, non-degenerate scale.

    Monotone logistic squashing. Outputs stay inside (RESHAPE_LOW,
    RESHAPE_HIGH), so extreme scores are rare by construction.
    """
    x = (_clamp(raw) - RESHAPE_CENTER) / RESHAPE_SCALE
    squashed = 1.0 / (1.0 + math.exp(-x))
    return round(RESHAPE_LOW + (RESHAPE_HIGH - RESHAPE_LOW) * squashed, 2)


def signal_confidence(quality: SignalQualitySummary | None) -> float:
    """Blend EEG/PPG/overall signal quality (40/30/30), floored at 50."""
    quality = quality or SignalQualitySummary()
    blended = (
        CONFIDENCE_WEIGHTS["eeg"] * quality.eeg
        + CONFIDENCE_WEIGHTS["ppg"] * quality.ppg
        + CONFIDENCE_WEIGHTS["overall"] * quality.overall
    )
    return round(_clamp(blended, CONFIDENCE_FLOOR, 100.0), 2)


def quality_summary(quality: AdvancedQualityResult) -> SignalQualitySummary:
    """Derive the per-channel signal quality from a quality assessment.

    EEG leans on stability and posture, PPG on noise and movement consistency.
    """
    factors = quality.factors
    return SignalQualitySummary(
        eeg=round((factors.signal_stability + factors.posture_quality) / 2, 2),
        ppg=round((factors.noise_level + factors.movement_consistency) / 2, 2),
        overall=float(quality.overall_score),
    )


def _profile(
    category: str,
    eeg_markers: dict[str, float],
    ppg_markers: dict[str, float],
    quality: SignalQualitySummary | None,
    eeg_inverted: tuple[str, ...] = (),
    ppg_inverted: tuple[str, ...] = (),
) -> RiskProfile:
    weights = SUB_INDICATOR_WEIGHTS[category]
    eeg_score = _block(eeg_markers, weights["eeg"], eeg_inverted)
    ppg_score = _block(ppg_markers, weights["ppg"], ppg_inverted)
    eeg_weight = EEG_BLOCK_WEIGHTS[category]
    raw = _clamp(eeg_weight * eeg_score + (1 - eeg_weight) * ppg_score)
    return RiskProfile(
        category=category,
        risk_score=reshape_score(raw),
        raw_score=round(raw, 2),
        eeg_markers={k: round(v, 2) for k, v in eeg_markers.items()},
        ppg_markers={k: round(v, 2) for k, v in ppg_markers.items()},
        eeg_score=round(eeg_score, 2),
        ppg_score=round(ppg_score, 2),
        confidence=signal_confidence(quality),
    )


# ---------------------------------------------------------------------------
# Category 1: Mood
# ---------------------------------------------------------------------------

def compute_mood_risk(eeg: Metrics, ppg: Metrics, quality: SignalQualitySummary | None = None) -> RiskProfile:
    """Mood risk from frontal asymmetry, theta load and autonomic tone.

    EEG: alphaAsymmetry, thetaPower, alphaThetaRatio (inverted), coherence (inverted)
    PPG: hrvDepression, autonomicImbalance, cardiacComplexity, restingHR
    """
    balance = _num(eeg, "hemisphericBalance")
    stress = _num(eeg, "stressIndex")
    relaxation = _num(eeg, "relaxationIndex")
    stability = _num(eeg, "emotionalStability")
    ratio = relaxation / stress if stress > 0 else 0.0

    eeg_markers = {
        "alphaAsymmetry": _clamp(abs(balance) * 300 + 15, 15, 100),
        "thetaPower": _clamp((stress - 1.5) * 25 + 25, 20, 100),
        "alphaThetaRatio": _clamp(ratio * 120 + 30, 30, 100),
        "coherence": _clamp(stability * 100 + 10, 40, 100),
    }

    rmssd = _num(ppg, "rmssd")
    lf_hf = _num(ppg, "lfHfRatio")
    sdnn = _num(ppg, "sdnn")
    heart_rate = _num(ppg, "heartRate")
    ppg_markers = {
        "hrvDepression": _floor((40 - rmssd) / 40 * 80 + 25, 20),
        "autonomicImbalance": _clamp(abs(lf_hf - 2.5) / 2.5 * 60 + 20, 20, 100),
        "cardiacComplexity": _floor((55 - sdnn) / 55 * 70 + 20, 25),
        "restingHR": _clamp(abs(heart_rate - 70) / 70 * 60 + 15, 15, 100),
    }
    return _profile(
        "mood", eeg_markers, ppg_markers, quality,
        eeg_inverted=("alphaThetaRatio", "coherence"),
    )


# ---------------------------------------------------------------------------
# Category 2: Attention
# ---------------------------------------------------------------------------

def compute_attention_risk(eeg: Metrics, ppg: Metrics, quality: SignalQualitySummary | None = None) -> RiskProfile:
    """Attention risk from focus deficit, hyperarousal and regulation capacity."""
    focus = _num(eeg, "focusIndex")
    load = _num(eeg, "cognitiveLoad")
    stress = _num(eeg, "stressIndex")
    stability = _num(eeg, "emotionalStability")

    eeg_markers = {
        "attentionIndex": _clamp((2.6 - focus) * 40 + 25, 20, 100),
        "hyperactivity": _clamp(load * stress * 12 + 30, 25, 100),
        "impulseControl": _floor((1.2 - stability) * 80 + 15, 20),
        "focusStability": _clamp(focus * stability * 15 + 40, 30, 100),
    }

    pnn50 = _num(ppg, "pnn50")
    lf_hf = _num(ppg, "lfHfRatio")
    sdnn = _num(ppg, "sdnn")
    ppg_markers = {
        "autonomicDysfunction": _floor((30 - pnn50) / 30 * 70 + 20, 25),
        "arousalPattern": _clamp(abs(lf_hf - 2.5) / 2.5 * 60 + 25, 25, 100),
        "stressResponse": _clamp((lf_hf - 1) * 25 + 35, 30, 100),
        "regulationCapacity": _clamp(sdnn * 1.2 + 20, 40, 100),
    }
    return _profile(
        "attention", eeg_markers, ppg_markers, quality,
        eeg_inverted=("focusStability",),
        ppg_inverted=("regulationCapacity",),
    )


# ---------------------------------------------------------------------------
# Category 3: Exhaustion
# ---------------------------------------------------------------------------

def compute_exhaustion_risk(eeg: Metrics, ppg: Metrics, quality: SignalQualitySummary | None = None) -> RiskProfile:
    """Exhaustion risk from mental fatigue, stress load and recovery capacity."""
    relaxation = _num(eeg, "relaxationIndex")
    stress = _num(eeg, "stressIndex")
    load = _num(eeg, "cognitiveLoad")
    stability = _num(eeg, "emotionalStability")

    eeg_markers = {
        "mentalFatigue": _floor((0.3 - relaxation) / 0.3 * 60 + 25, 30),
        "stressLoad": _clamp((stress - 1.5) * 20 + 40, 35, 100),
        "cognitiveExhaustion": _clamp(load * 100 + 30, 25, 100),
        "emotionalDepletion": _floor((0.9 - stability) / 0.9 * 70 + 25, 20),
    }

    rmssd = _num(ppg, "rmssd")
    heart_rate = _num(ppg, "heartRate")
    sdnn = _num(ppg, "sdnn")
    lf_hf = _num(ppg, "lfHfRatio")
    ppg_markers = {
        "chronicStress": _floor((45 - rmssd) / 45 * 60 + 25, 30),
        "fatigueIndex": _floor((heart_rate - 65) / 65 * 50 + 30, 25),
        "recoveryCapacity": _floor((55 - sdnn) / 55 * 60 + 25, 30),
        "burnoutSeverity": _clamp(abs(lf_hf - 2.5) / 2.5 * 50 + 30, 30, 100),
    }
    return _profile("exhaustion", eeg_markers, ppg_markers, quality)


# ---------------------------------------------------------------------------
# Category 4: Impulse control
# ---------------------------------------------------------------------------

def compute_impulse_risk(eeg: Metrics, ppg: Metrics, quality: SignalQualitySummary | None = None) -> RiskProfile:
    """Impulse-control risk from inhibition, reactivity and self-regulation."""
    focus = _num(eeg, "focusIndex")
    load = _num(eeg, "cognitiveLoad")
    stability = _num(eeg, "emotionalStability")
    stress = _num(eeg, "stressIndex")

    eeg_markers = {
        "inhibitionControl": _floor((2.8 - focus) / 2.8 * 70 + 20, 25),
        "impulsiveResponse": _clamp(load * 80 + 35, 30, 100),
        "decisionMaking": _floor((1 - stability) * 60 + (2.5 - focus) * 20 + 30, 25),
        "behavioralControl": _floor(focus * 20 + (4 - stress) * 15 + 25, 30),
    }

    lf_hf = _num(ppg, "lfHfRatio")
    rmssd = _num(ppg, "rmssd")
    sdnn = _num(ppg, "sdnn")
    pnn50 = _num(ppg, "pnn50")
    ppg_markers = {
        "arousalReactivity": _clamp(abs(lf_hf - 2) / 2 * 60 + 30, 30, 100),
        "emotionalVolatility": _floor((50 - rmssd) / 50 * 65 + 30, 25),
        "stressReactivity": _clamp((lf_hf - 1.5) * 30 + 40, 35, 100),
        "selfRegulation": _floor(sdnn * 0.8 + pnn50 * 1.5 + 25, 30),
    }
    return _profile(
        "impulse", eeg_markers, ppg_markers, quality,
        ppg_inverted=("selfRegulation",),
    )


CATEGORY_SCORERS = {
    "mood": compute_mood_risk,
    "attention": compute_attention_risk,
    "exhaustion": compute_exhaustion_risk,
    "impulse": compute_impulse_risk,
}


# ---------------------------------------------------------------------------
# Overall assessment
# ---------------------------------------------------------------------------

def age_weights(age: float) -> dict[str, float]:
    for upper, weights in AGE_RISK_WEIGHTS:
        if age < upper:
            return weights
    return OLDEST_AGE_RISK_WEIGHTS


def risk_level(total: float) -> str:
    for threshold, level in RISK_LEVELS:
        if total < threshold:
            return level
    return RISK_LEVEL_CEILING


def _recommendations(scores: dict[str, float], info: PersonalInfo) -> list[str]:
    recs: list[str] = []
    for category in CATEGORIES:
        score = scores[category]
        if score <= RECOMMENDATION_TRIGGER:
            continue
        if score > RECOMMENDATION_HIGH:
            tier = "high"
        elif score > RECOMMENDATION_MID:
            tier = "mid"
        else:
            tier = "low"
        recs.extend(RECOMMENDATION_TEMPLATES[category][tier])

    if info.age < 30:
        recs.append(AGE_RECOMMENDATIONS["young"])
    elif info.age >= 40:
        recs.append(AGE_RECOMMENDATIONS["older"])
    if (info.gender or "").lower() == "female":
        recs.append(FEMALE_RECOMMENDATION)

    if max(scores.values()) < ALL_GOOD_BELOW:
        recs.extend(ALL_GOOD_RECOMMENDATIONS)

    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(recs))[:MAX_RECOMMENDATIONS]


def assess_overall(profiles: Mapping[str, RiskProfile], info: PersonalInfo) -> OverallAssessment:
    """Combine category risks with the subject's age-band weights."""
    scores = {name: profiles[name].risk_score for name in CATEGORIES}
    weights = age_weights(info.age)
    total = _clamp(sum(weights[name] * scores[name] for name in CATEGORIES))

    top_category = max(CATEGORIES, key=lambda name: scores[name])
    top_score = scores[top_category]
    primary = top_category if top_score > PRIMARY_CONCERN_THRESHOLD else NO_PRIMARY_CONCERN

    return OverallAssessment(
        total_risk_score=round(total, 2),
        mental_health_score=round(100 - total, 2),
        primary_concern=primary,
        risk_level=risk_level(total),
        follow_up_needed=total > FOLLOW_UP_TOTAL_ABOVE or top_score > FOLLOW_UP_CATEGORY_ABOVE,
        recommendations=_recommendations(scores, info),
    )


def score_risks(
    eeg: Metrics,
    ppg: Metrics,
    info: PersonalInfo,
    quality: SignalQualitySummary | None = None,
) -> RiskAssessment:
    """Score all four categories and the overall assessment."""
    profiles = {name: scorer(eeg, ppg, quality) for name, scorer in CATEGORY_SCORERS.items()}
    overall = assess_overall(profiles, info)
    logger.debug(
        "Risk scores: %s total=%.2f level=%s",
        {k: p.risk_score for k, p in profiles.items()},
        overall.total_risk_score,
        overall.risk_level,
    )
    return RiskAssessment(profiles=profiles, overall=overall)
