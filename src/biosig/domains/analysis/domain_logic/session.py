"""Measurement session value objects.

A MeasurementSession carries everything one report generation needs. It is
built once when the measurement completes and is never mutated; a new
measurement means a new instance.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class ClinicalMeaning:
    """How to read a value below, within and above its normal range."""

    below: str
    within: str
    above: str


@dataclass(frozen=True)
class MetricSample:
    """A named physiological indicator from the measurement subsystem."""

    name: str
    value: float
    unit: str
    normal_range_low: float
    normal_range_high: float
    clinical_meaning: ClinicalMeaning

    def status(self) -> str:
        """Return "below", "within" or "above" relative to the normal range."""
        if self.value < self.normal_range_low:
            return "below"
        if self.value > self.normal_range_high:
            return "above"
        return "within"

    def interpretation(self) -> str:
        return getattr(self.clinical_meaning, self.status())

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "normalRange": [
                None if math.isinf(self.normal_range_low) else self.normal_range_low,
                None if math.isinf(self.normal_range_high) else self.normal_range_high,
            ],
            "status": self.status(),
            "interpretation": self.interpretation(),
        }


@dataclass(frozen=True)
class PersonalInfo:
    """Demographic context of the measured subject."""

    age: int
    gender: str  # "male" | "female"
    occupation: str | None = None
    name: str = ""

    @property
    def age_band(self) -> str:
        from biosig.domains.analysis.domain_logic.normalizer import age_band

        return age_band(self.age)

    def to_dict(self) -> dict[str, Any]:
        return {
            "age": self.age,
            "ageBand": self.age_band,
            "gender": self.gender,
            "occupation": self.occupation or "unspecified",
        }


@dataclass(frozen=True)
class QualityMetrics:
    """Accelerometer summary used to judge motion-artifact interference.

    ``None`` marks a missing field. Scores are 0-100, movement values are in g.
    """

    stability: float | None = None
    intensity: float | None = None
    average_movement: float | None = None
    max_movement: float | None = None
    tremor: float | None = None
    posture_stability: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QualityMetrics:
        """Accept camelCase keys as produced by the measurement subsystem."""
        def pick(*keys: str) -> float | None:
            for key in keys:
                if data.get(key) is not None:
                    try:
                        return float(data[key])
                    except (TypeError, ValueError):
                        return None
            return None

        return cls(
            stability=pick("stability"),
            intensity=pick("intensity"),
            average_movement=pick("averageMovement", "average_movement"),
            max_movement=pick("maxMovement", "max_movement"),
            tremor=pick("tremor"),
            posture_stability=pick("postureStability", "posture_stability"),
        )


@dataclass(frozen=True)
class MeasurementSession:
    """One completed one-minute measurement."""

    personal_info: PersonalInfo
    eeg: dict[str, MetricSample]
    ppg: dict[str, MetricSample]
    accelerometer: QualityMetrics = field(default_factory=QualityMetrics)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    measured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_values(
        cls,
        personal_info: PersonalInfo,
        eeg: dict[str, float],
        ppg: dict[str, float],
        accelerometer: QualityMetrics | dict[str, Any] | None = None,
    ) -> MeasurementSession:
        """Build a session from raw ``{metric: value}`` maps."""
        from biosig.domains.analysis.domain_logic.metric_catalog import make_sample

        if isinstance(accelerometer, dict):
            accelerometer = QualityMetrics.from_dict(accelerometer)
        return cls(
            personal_info=personal_info,
            eeg={k: make_sample(k, v) for k, v in eeg.items() if _finite(v)},
            ppg={k: make_sample(k, v) for k, v in ppg.items() if _finite(v)},
            accelerometer=accelerometer or QualityMetrics(),
        )

    def eeg_values(self) -> dict[str, float]:
        return {k: s.value for k, s in self.eeg.items()}

    def ppg_values(self) -> dict[str, float]:
        return {k: s.value for k, s in self.ppg.items()}

    def metric_values(self) -> dict[str, float]:
        """Flat view of every EEG and PPG value."""
        return {**self.eeg_values(), **self.ppg_values()}


def _finite(value: Any) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
