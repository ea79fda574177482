"""Demographic normalization models and constant tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


NORM_TABLE_VERSION = "1.0.0"

# (upper bound exclusive, label); the last band is open-ended
AGE_BANDS = [
    (30, "<30"),
    (40, "30-39"),
    (50, "40-49"),
    (60, "50-59"),
]
OPEN_AGE_BAND = "60+"
AGE_BAND_LABELS = [label for _, label in AGE_BANDS] + [OPEN_AGE_BAND]

GENDERS = ["male", "female"]

# Percentile thresholds, checked top-down
GRADE_THRESHOLDS = [
    (95, "excellent"),
    (75, "good"),
    (25, "normal"),
    (5, "borderline"),
]
GRADE_FLOOR = "attention"

# Flat offsets by occupation bucket. Raw shifts by the full offset,
# the standardized score by half of it.
OCCUPATION_ADJUSTMENTS = {
    "office_worker": 5,
    "healthcare": 10,
    "teacher": 7,
    "engineer": 3,
    "manager": 8,
    "student": -2,
    "retired": -5,
}
OCCUPATION_STANDARDIZED_FACTOR = 0.5

# Abramowitz & Stegun 7.1.26 erf approximation (|error| < 1.5e-7)
AS_A1 = 0.254829592
AS_A2 = -0.284496736
AS_A3 = 1.421413741
AS_A4 = -1.453152027
AS_A5 = 1.061405429
AS_P = 0.3275911

DISTRIBUTION_PERCENTILES = [5, 25, 50, 75, 95]
# z-scores of DISTRIBUTION_PERCENTILES under the standard normal
DISTRIBUTION_Z = [-1.6449, -0.6745, 0.0, 0.6745, 1.6449]


@dataclass(frozen=True)
class DemographicNorm:
    """Reference statistics for one (metric, gender, age band) cell."""

    metric: str
    gender: str
    age_band: str
    mean: float
    std_dev: float
    sample_size: int


@dataclass(frozen=True)
class StandardizedScore:
    """A raw metric value placed relative to its demographic group."""

    raw: float
    standardized: float
    percentile: int
    grade: str
    grade_description: str
    age_gender_adjusted: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
