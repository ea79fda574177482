"""Demographic normalization: raw metric -> z-score -> percentile -> grade.

Pure functions over the static norm table. A metric without a norm for the
subject's group is passed through as a 0-100 score and flagged as not
age/gender adjusted.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from biosig.domains.analysis.domain_logic.norm_models import (
    AGE_BANDS,
    AS_A1,
    AS_A2,
    AS_A3,
    AS_A4,
    AS_A5,
    AS_P,
    DISTRIBUTION_PERCENTILES,
    DISTRIBUTION_Z,
    GRADE_FLOOR,
    GRADE_THRESHOLDS,
    OCCUPATION_ADJUSTMENTS,
    OCCUPATION_STANDARDIZED_FACTOR,
    OPEN_AGE_BAND,
    StandardizedScore,
)
from biosig.domains.analysis.domain_logic.norm_table import NormTable, default_norm_table


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def age_band(age: float) -> str:
    """Map an age to its fixed 10-year band label."""
    for upper, label in AGE_BANDS:
        if age < upper:
            return label
    return OPEN_AGE_BAND


def normal_cdf(z: float) -> float:
    """Standard normal CDF via the Abramowitz & Stegun erf approximation."""
    sign = 1.0 if z >= 0 else -1.0
    x = abs(z) / math.sqrt(2.0)
    t = 1.0 / (1.0 + AS_P * x)
    y = 1.0 - (((((AS_A5 * t + AS_A4) * t) + AS_A3) * t + AS_A2) * t + AS_A1) * t * math.exp(-x * x)
    return 0.5 * (1.0 + sign * y)


def percentile_from_z(z: float) -> int:
    return int(_clamp(_round(normal_cdf(z) * 100)))


def grade_for_percentile(percentile: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if percentile >= threshold:
            return grade
    return GRADE_FLOOR


def _group_label(gender: str, band: str) -> str:
    who = {"male": "men", "female": "women"}.get((gender or "").lower(), "people")
    if band == "<30":
        return f"{who} under 30"
    if band == OPEN_AGE_BAND:
        return f"{who} aged 60 and over"
    return f"{who} in their {band.split('-')[0]}s"


def grade_description(grade: str, gender: str, band: str, percentile: float) -> str:
    """Templated sentence naming the comparison group and relative standing."""
    group = _group_label(gender, band)
    top = max(1, _round(100 - percentile))
    bottom = max(1, _round(percentile))
    if grade == "excellent":
        return f"Top {top}% among {group}; an excellent result."
    if grade == "good":
        return f"Top {top}% among {group}; a good result."
    if grade == "normal":
        return f"Around the average for {group}."
    if grade == "borderline":
        return f"Bottom {bottom}% among {group}; worth keeping an eye on."
    return f"Bottom {bottom}% among {group}; active management is advised."


def standardize(
    raw: float,
    metric: str,
    gender: str,
    age: float,
    table: NormTable | None = None,
) -> StandardizedScore:
    """Place ``raw`` relative to the subject's gender and age band."""
    if table is None:
        table = default_norm_table()
    band = age_band(age)
    norm = table.lookup(metric, gender, band)

    if norm is None:
        value = _clamp(raw)
        return StandardizedScore(
            raw=raw,
            standardized=value,
            percentile=int(_round(value)),
            grade=grade_for_percentile(value),
            grade_description=f"{metric} score {raw:g} (no reference norm for this group)",
            age_gender_adjusted=False,
        )

    z = (raw - norm.mean) / norm.std_dev
    percentile = percentile_from_z(z)
    grade = grade_for_percentile(percentile)
    return StandardizedScore(
        raw=raw,
        standardized=float(percentile),
        percentile=percentile,
        grade=grade,
        grade_description=grade_description(grade, gender, band, percentile),
        age_gender_adjusted=True,
    )


def standardize_many(
    values: Mapping[str, float],
    gender: str,
    age: float,
    table: NormTable | None = None,
) -> dict[str, StandardizedScore]:
    if table is None:
        table = default_norm_table()
    return {name: standardize(value, name, gender, age, table) for name, value in values.items()}


def apply_occupation_adjustment(score: StandardizedScore, occupation: str | None) -> StandardizedScore:
    """Shift a score by the flat offset of the occupation bucket.

    Unknown or missing occupations leave the score unchanged.
    """
    adjustment = OCCUPATION_ADJUSTMENTS.get((occupation or "").lower(), 0)
    if adjustment == 0:
        return score
    return StandardizedScore(
        raw=score.raw + adjustment,
        standardized=_clamp(score.standardized + adjustment * OCCUPATION_STANDARDIZED_FACTOR),
        percentile=score.percentile,
        grade=score.grade,
        grade_description=f"{score.grade_description} (adjusted for occupation: {occupation})",
        age_gender_adjusted=score.age_gender_adjusted,
    )


def combine_scores(
    scores: Sequence[StandardizedScore],
    weights: Sequence[float] | None = None,
) -> StandardizedScore:
    """Weighted average of several scores, re-graded from the weighted percentile.

    Weights may sum to any positive total. A non-positive total falls back to
    equal weights.
    """
    if not scores:
        raise ValueError("combine_scores() needs at least one score")
    weights = list(weights) if weights is not None else [1.0] * len(scores)
    if len(weights) != len(scores):
        raise ValueError("scores and weights must have the same length")
    total = sum(weights)
    if total <= 0:
        weights = [1.0] * len(scores)
        total = float(len(scores))

    raw = sum(s.raw * w for s, w in zip(scores, weights)) / total
    standardized = sum(s.standardized * w for s, w in zip(scores, weights)) / total
    percentile = sum(s.percentile * w for s, w in zip(scores, weights)) / total
    grade = grade_for_percentile(percentile)
    return StandardizedScore(
        raw=round(raw, 1),
        standardized=float(_round(standardized)),
        percentile=int(_clamp(_round(percentile))),
        grade=grade,
        grade_description=f"Combined score at the {_round(percentile)}th percentile ({grade}).",
        age_gender_adjusted=all(s.age_gender_adjusted for s in scores),
    )


def score_distribution(
    metric: str,
    gender: str,
    age: float,
    table: NormTable | None = None,
) -> dict[int, float] | None:
    """Raw values at the 5th/25th/50th/75th/95th percentile of the group."""
    if table is None:
        table = default_norm_table()
    norm = table.lookup(metric, gender, age_band(age))
    if norm is None:
        return None
    return {
        p: round(norm.mean + z * norm.std_dev, 3)
        for p, z in zip(DISTRIBUTION_PERCENTILES, DISTRIBUTION_Z)
    }
