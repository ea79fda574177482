"""Biomarker risk models and constant tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Constant tables (used by risk_scorer)
# ---------------------------------------------------------------------------

RISK_TABLE_VERSION = "1.0.0"

CATEGORIES = ["mood", "attention", "exhaustion", "impulse"]

CATEGORY_LABELS = {
    "mood": "mood (depression) risk",
    "attention": "attention (ADHD) risk",
    "exhaustion": "exhaustion (burnout) risk",
    "impulse": "impulse-control risk",
}

# Norm table metric name for each category's reshaped score
CATEGORY_NORM_METRICS = {
    "mood": "moodRisk",
    "attention": "attentionRisk",
    "exhaustion": "exhaustionRisk",
    "impulse": "impulseRisk",
}

# Share of the category score taken by the EEG block (PPG gets the rest)
EEG_BLOCK_WEIGHTS = {
    "mood": 0.60,
    "attention": 0.65,
    "exhaustion": 0.55,
    "impulse": 0.60,
}

# Sub-indicator weights inside each block; each list sums to 1
SUB_INDICATOR_WEIGHTS = {
    "mood": {
        "eeg": [0.30, 0.25, 0.25, 0.20],
        "ppg": [0.30, 0.25, 0.25, 0.20],
    },
    "attention": {
        "eeg": [0.35, 0.25, 0.25, 0.15],
        "ppg": [0.30, 0.25, 0.25, 0.20],
    },
    "exhaustion": {
        "eeg": [0.30, 0.25, 0.25, 0.20],
        "ppg": [0.30, 0.25, 0.25, 0.20],
    },
    "impulse": {
        "eeg": [0.30, 0.25, 0.25, 0.20],
        "ppg": [0.30, 0.25, 0.25, 0.20],
    },
}

# Substituted for missing EEG/PPG values (typical resting adult)
METRIC_DEFAULTS = {
    "focusIndex": 2.0,
    "relaxationIndex": 0.2,
    "stressIndex": 2.5,
    "cognitiveLoad": 0.5,
    "emotionalStability": 0.6,
    "hemisphericBalance": 0.02,
    "heartRate": 75.0,
    "rmssd": 35.0,
    "sdnn": 45.0,
    "pnn50": 15.0,
    "lfHfRatio": 2.0,
}

# Logistic reshaping: LOW + (HIGH - LOW) * sigmoid((raw - CENTER) / SCALE)
RESHAPE_LOW = 15.0
RESHAPE_HIGH = 90.0
RESHAPE_CENTER = 60.0
RESHAPE_SCALE = 20.0

# Signal quality blend for confidence
CONFIDENCE_WEIGHTS = {"eeg": 0.4, "ppg": 0.3, "overall": 0.3}
CONFIDENCE_FLOOR = 50.0

# (upper age bound exclusive, category weights)
AGE_RISK_WEIGHTS = [
    (25, {"mood": 0.20, "attention": 0.35, "exhaustion": 0.15, "impulse": 0.30}),
    (40, {"mood": 0.30, "attention": 0.20, "exhaustion": 0.35, "impulse": 0.15}),
    (55, {"mood": 0.35, "attention": 0.15, "exhaustion": 0.40, "impulse": 0.10}),
]
OLDEST_AGE_RISK_WEIGHTS = {"mood": 0.45, "attention": 0.10, "exhaustion": 0.30, "impulse": 0.15}

RISK_LEVELS = [
    (25, "low"),
    (50, "moderate"),
    (75, "high"),
]
RISK_LEVEL_CEILING = "severe"

PRIMARY_CONCERN_THRESHOLD = 30
NO_PRIMARY_CONCERN = "normal range"
FOLLOW_UP_TOTAL_ABOVE = 40
FOLLOW_UP_CATEGORY_ABOVE = 60

RECOMMENDATION_TRIGGER = 40
RECOMMENDATION_HIGH = 70
RECOMMENDATION_MID = 50
ALL_GOOD_BELOW = 30
MAX_RECOMMENDATIONS = 8

RECOMMENDATION_TEMPLATES = {
    "mood": {
        "high": [
            "Mood-related risk is high. A consultation with a mental health professional is recommended.",
            "Try mindfulness practices such as meditation or yoga to regain emotional balance.",
        ],
        "mid": [
            "Some low-mood indicators were observed. Keep regular exercise and get enough sleep.",
            "Increase daylight exposure and take part in social activities.",
        ],
        "low": [
            "Add more enjoyable activities to your week and keep an eye on stress.",
        ],
    },
    "attention": {
        "high": [
            "Attention-related indicators are markedly elevated. Consider an assessment by a specialist.",
            "Use a structured schedule and split work into small blocks to support focus.",
        ],
        "mid": [
            "Keep a regular daily rhythm and try concentration training exercises.",
            "Regular aerobic exercise supports attention and executive function.",
        ],
        "low": [
            "Puzzles or brain-training games can help sharpen concentration.",
        ],
    },
    "exhaustion": {
        "high": [
            "Signs of severe exhaustion. Reduce workload and schedule real rest.",
            "Consider extended time off or a change in your work environment.",
        ],
        "mid": [
            "Rebalance work and personal life and add stress-relieving activities.",
            "Regular massage or relaxation therapy may help you recover.",
        ],
        "low": [
            "Develop a hobby or a new interest outside work.",
        ],
    },
    "impulse": {
        "high": [
            "Impulse-control indicators are high. Behavioral regulation training or counseling may help.",
            "Make a habit of waiting 24 hours before important decisions.",
        ],
        "mid": [
            "Practice deep breathing or meditation to strengthen emotional regulation.",
            "Use apps that limit impulsive purchases or behaviors.",
        ],
        "low": [
            "Set goals and plan ahead to build self-control.",
        ],
    },
}

AGE_RECOMMENDATIONS = {
    "young": "Building mental health habits early in life pays off; start now.",
    "older": "Include a mental health check alongside your regular health screenings.",
}
FEMALE_RECOMMENDATION = (
    "Hormonal changes can affect mental health; keep track of how you feel across the month."
)
ALL_GOOD_RECOMMENDATIONS = [
    "Your current mental health indicators look good. Keep up your routine.",
    "Re-check periodically to monitor changes over time.",
]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignalQualitySummary:
    """0-100 signal quality scores feeding the confidence estimate."""

    eeg: float = 70.0
    ppg: float = 75.0
    overall: float = 72.0


@dataclass(frozen=True)
class RiskProfile:
    """Risk score of one category with its contributing sub-indicators."""

    category: str
    risk_score: float
    raw_score: float
    eeg_markers: dict[str, float]
    ppg_markers: dict[str, float]
    eeg_score: float
    ppg_score: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OverallAssessment:
    total_risk_score: float
    mental_health_score: float
    primary_concern: str
    risk_level: str
    follow_up_needed: bool
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RiskAssessment:
    """The four category profiles plus the age-weighted summary."""

    profiles: dict[str, RiskProfile]
    overall: OverallAssessment
    table_version: str = RISK_TABLE_VERSION

    def risk_scores(self) -> dict[str, float]:
        return {name: p.risk_score for name, p in self.profiles.items()}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
