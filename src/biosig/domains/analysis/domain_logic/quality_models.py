"""Quality assessment models and constant tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Constant tables (used by quality_assessor)
# ---------------------------------------------------------------------------

QUALITY_TABLE_VERSION = "1.0.0"

FACTOR_NAMES = [
    "signal_stability",
    "noise_level",
    "movement_consistency",
    "posture_quality",
    "data_integrity",
]

# Stability dominates: a shaking sensor corrupts every channel at once.
QUALITY_WEIGHTS = {
    "signal_stability": 0.30,
    "noise_level": 0.25,
    "movement_consistency": 0.20,
    "posture_quality": 0.15,
    "data_integrity": 0.10,
}

# Weighted score is multiplied by clamp(signal_stability / GATE_FULL, GATE_FLOOR, 1)
STABILITY_GATE_FULL = 60.0
STABILITY_GATE_FLOOR = 0.4

RELIABILITY_THRESHOLDS = [
    (75, "excellent"),
    (60, "good"),
    (40, "fair"),
]
RELIABILITY_FLOOR = "poor"

QUALITY_GRADE_THRESHOLDS = [
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
]
QUALITY_GRADE_FLOOR = "F"

CONFIDENCE_MIN_WEIGHT = 0.4
CONFIDENCE_MEAN_WEIGHT = 0.6

# Missing inputs are read as "no evidence of poor quality"
PERMISSIVE_DEFAULTS = {
    "stability": 100.0,
    "intensity": 0.0,
    "average_movement": 0.0,
    "max_movement": 0.0,
    "tremor": 0.0,
    "posture_stability": 100.0,
}

# Fields whose absence costs data integrity points
INTEGRITY_REQUIRED_FIELDS = ["stability", "intensity", "average_movement", "posture_stability"]
INTEGRITY_MISSING_PENALTY = 8
INTEGRITY_RANGE_PENALTY = 5
INTEGRITY_LOGIC_PENALTY = 8

REMEASURE_OVERALL_BELOW = 40
REMEASURE_STABILITY_BELOW = 30

WARNING_THRESHOLDS = {
    "signal_stability": 50,
    "noise_level": 60,
    "movement_consistency": 40,
    "posture_quality": 40,
    "data_integrity": 80,
    "intensity": 75,
    "average_movement": 0.8,
}

IMPROVEMENT_TIPS = [
    "Sit in a comfortable chair with your back supported.",
    "Rest both arms on a desk or armrest.",
    "Keep your head still and look at a fixed point.",
    "Breathe slowly and naturally; avoid talking during the measurement.",
    "Check that the headband and finger sensor are seated firmly.",
]

DEFAULT_RECOMMENDATION = "Measurement quality is excellent. No changes are needed."


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnvironmentalFactors:
    """Coarse description of the recording environment."""

    ambient_movement: str          # low | medium | high
    measurement_consistency: str   # excellent | good | fair | poor
    external_interference: str     # none | minimal | moderate | significant


@dataclass(frozen=True)
class QualityFactors:
    """Five 0-100 sub-scores plus their weighted summary."""

    signal_stability: float
    noise_level: float
    movement_consistency: float
    posture_quality: float
    data_integrity: float
    overall_score: int
    reliability: str
    environmental_factors: EnvironmentalFactors

    def factor_scores(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in FACTOR_NAMES}


@dataclass(frozen=True)
class RemeasurementSuggestion:
    is_recommended: bool
    reasons: list[str] = field(default_factory=list)
    improvement_tips: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AdvancedQualityResult:
    """Complete output of the quality assessor."""

    factors: QualityFactors
    confidence_level: int
    quality_grade: str
    warnings: list[str]
    recommendations: list[str]
    remeasurement: RemeasurementSuggestion
    detailed_analysis: dict[str, str]
    table_version: str = QUALITY_TABLE_VERSION

    @property
    def overall_score(self) -> int:
        return self.factors.overall_score

    @property
    def reliability(self) -> str:
        return self.factors.reliability

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
