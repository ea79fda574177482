"""Reference catalog of EEG and PPG summary metrics.

Normal ranges are the reference intervals the measurement subsystem shows next
to each value. Units match the values produced by the upstream signal
processing (indices are unitless ratios).
"""

from __future__ import annotations

from dataclasses import dataclass

from biosig.domains.analysis.domain_logic.session import ClinicalMeaning, MetricSample


@dataclass(frozen=True)
class MetricSpec:
    """Catalog entry for one metric."""

    name: str
    channel: str  # "eeg" | "ppg"
    unit: str
    normal_low: float
    normal_high: float
    meaning: ClinicalMeaning


METRIC_CATALOG: dict[str, MetricSpec] = {
    spec.name: spec
    for spec in [
        # --- EEG ---
        MetricSpec(
            "focusIndex", "eeg", "", 1.8, 2.4,
            ClinicalMeaning(
                below="Attention is lower than usual; concentration may be hard to sustain.",
                within="Attention is in a balanced range.",
                above="Very strong focus; watch for over-concentration and strain.",
            ),
        ),
        MetricSpec(
            "relaxationIndex", "eeg", "", 0.18, 0.22,
            ClinicalMeaning(
                below="Reduced relaxation; the brain is in a tense state.",
                within="Relaxation is in a healthy range.",
                above="Deep relaxation; may reflect drowsiness.",
            ),
        ),
        MetricSpec(
            "stressIndex", "eeg", "", 3.0, 4.0,
            ClinicalMeaning(
                below="Low arousal; alertness may be reduced.",
                within="Stress load is in a normal range.",
                above="Elevated stress load; recovery is recommended.",
            ),
        ),
        MetricSpec(
            "cognitiveLoad", "eeg", "", 0.3, 0.8,
            ClinicalMeaning(
                below="Low cognitive engagement.",
                within="Cognitive load is appropriate.",
                above="High cognitive load; mental fatigue is likely.",
            ),
        ),
        MetricSpec(
            "emotionalStability", "eeg", "", 0.4, 0.8,
            ClinicalMeaning(
                below="Emotional state is unsettled.",
                within="Emotional state is stable.",
                above="Emotional responses are strongly damped.",
            ),
        ),
        MetricSpec(
            "hemisphericBalance", "eeg", "", -0.1, 0.1,
            ClinicalMeaning(
                below="Right-hemisphere dominance; associated with withdrawal mood.",
                within="Left and right hemispheres are balanced.",
                above="Left-hemisphere dominance; associated with approach mood.",
            ),
        ),
        MetricSpec(
            "totalPower", "eeg", "μV²", 850.0, 1150.0,
            ClinicalMeaning(
                below="Overall brain activity is low.",
                within="Overall brain activity is normal.",
                above="Overall brain activity is high; may reflect excessive arousal.",
            ),
        ),
        # --- PPG ---
        MetricSpec(
            "heartRate", "ppg", "BPM", 60.0, 100.0,
            ClinicalMeaning(
                below="Slow heart rate (bradycardia range).",
                within="Heart rate is normal.",
                above="Fast heart rate (tachycardia range).",
            ),
        ),
        MetricSpec(
            "rmssd", "ppg", "ms", 20.0, 50.0,
            ClinicalMeaning(
                below="Reduced parasympathetic activity; recovery capacity is low.",
                within="Parasympathetic activity is healthy.",
                above="Very high parasympathetic activity.",
            ),
        ),
        MetricSpec(
            "sdnn", "ppg", "ms", 30.0, 100.0,
            ClinicalMeaning(
                below="Low heart rate variability; stress adaptability is reduced.",
                within="Heart rate variability is healthy.",
                above="Very high heart rate variability.",
            ),
        ),
        MetricSpec(
            "pnn50", "ppg", "%", 10.0, 30.0,
            ClinicalMeaning(
                below="Few large beat-to-beat changes; autonomic flexibility is low.",
                within="Autonomic flexibility is normal.",
                above="Many large beat-to-beat changes.",
            ),
        ),
        MetricSpec(
            "spo2", "ppg", "%", 95.0, 100.0,
            ClinicalMeaning(
                below="Oxygen saturation is below the normal range.",
                within="Oxygen saturation is normal.",
                above="Oxygen saturation is at the upper limit.",
            ),
        ),
        MetricSpec(
            "lfPower", "ppg", "ms²", 2.0, 12.0,
            ClinicalMeaning(
                below="Low sympathetic-band power.",
                within="Sympathetic-band power is normal.",
                above="High sympathetic-band power.",
            ),
        ),
        MetricSpec(
            "hfPower", "ppg", "ms²", 0.8, 40.0,
            ClinicalMeaning(
                below="Low parasympathetic-band power.",
                within="Parasympathetic-band power is normal.",
                above="High parasympathetic-band power.",
            ),
        ),
        MetricSpec(
            "lfHfRatio", "ppg", "", 1.0, 10.0,
            ClinicalMeaning(
                below="Parasympathetic dominance.",
                within="Autonomic balance is normal.",
                above="Sympathetic dominance; the body is in a stress response.",
            ),
        ),
    ]
}

_GENERIC_MEANING = ClinicalMeaning(
    below="Below the reference range.",
    within="Within the reference range.",
    above="Above the reference range.",
)


def make_sample(name: str, value: float) -> MetricSample:
    """Build a MetricSample, attaching catalog metadata when the metric is known."""
    spec = METRIC_CATALOG.get(name)
    if spec is None:
        return MetricSample(
            name=name,
            value=float(value),
            unit="",
            normal_range_low=float("-inf"),
            normal_range_high=float("inf"),
            clinical_meaning=_GENERIC_MEANING,
        )
    return MetricSample(
        name=name,
        value=float(value),
        unit=spec.unit,
        normal_range_low=spec.normal_low,
        normal_range_high=spec.normal_high,
        clinical_meaning=spec.meaning,
    )


def metrics_for_channel(channel: str) -> list[str]:
    return [name for name, spec in METRIC_CATALOG.items() if spec.channel == channel]
