"""Unit tests for demographic normalization and the norm table."""

from __future__ import annotations

import pytest
import yaml

from biosig.domains.analysis.domain_logic.norm_models import AGE_BAND_LABELS, StandardizedScore
from biosig.domains.analysis.domain_logic.norm_table import (
    NormTable,
    default_norm_table,
    load_norm_table,
    parse_norm_table,
)
from biosig.domains.analysis.domain_logic.normalizer import (
    age_band,
    apply_occupation_adjustment,
    combine_scores,
    grade_description,
    grade_for_percentile,
    normal_cdf,
    percentile_from_z,
    score_distribution,
    standardize,
    standardize_many,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _score(percentile=50, standardized=None, raw=1.0, adjusted=True):
    return StandardizedScore(
        raw=raw,
        standardized=float(percentile if standardized is None else standardized),
        percentile=percentile,
        grade=grade_for_percentile(percentile),
        grade_description="",
        age_gender_adjusted=adjusted,
    )


def _table_doc(rows=None):
    rows = rows or [[10.0, 2.0, 100]] * len(AGE_BAND_LABELS)
    return {"version": "9.9", "metrics": {"widget": {"male": rows, "female": rows}}}


# ---------------------------------------------------------------------------
# Age bands and the normal CDF
# ---------------------------------------------------------------------------

class TestAgeBand:
    @pytest.mark.parametrize(
        "age,band",
        [(18, "<30"), (29, "<30"), (30, "30-39"), (34, "30-39"), (45, "40-49"), (59, "50-59"), (60, "60+"), (91, "60+")],
    )
    def test_bands(self, age, band):
        assert age_band(age) == band


class TestNormalCdf:
    def test_center(self):
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-7)

    @pytest.mark.parametrize("z,expected", [(1.0, 0.8413447), (1.96, 0.9750021), (-1.6449, 0.05)])
    def test_known_values(self, z, expected):
        assert normal_cdf(z) == pytest.approx(expected, abs=1e-4)

    def test_symmetry(self):
        for z in (0.3, 1.1, 2.7):
            assert normal_cdf(z) + normal_cdf(-z) == pytest.approx(1.0, abs=1e-7)

    def test_percentile_is_clamped_integer(self):
        assert percentile_from_z(12.0) == 100
        assert percentile_from_z(-12.0) == 0
        assert isinstance(percentile_from_z(0.4), int)


class TestGrades:
    @pytest.mark.parametrize(
        "percentile,grade",
        [(99, "excellent"), (95, "excellent"), (94, "good"), (75, "good"), (74, "normal"),
         (25, "normal"), (24, "borderline"), (5, "borderline"), (4, "attention"), (0, "attention")],
    )
    def test_thresholds(self, percentile, grade):
        assert grade_for_percentile(percentile) == grade

    def test_description_names_group(self):
        text = grade_description("good", "male", "30-39", 84)
        assert "men in their 30s" in text
        assert "Top 16%" in text

    def test_description_for_low_standing(self):
        text = grade_description("attention", "female", "60+", 2)
        assert "women aged 60 and over" in text
        assert "Bottom 2%" in text


# ---------------------------------------------------------------------------
# standardize
# ---------------------------------------------------------------------------

class TestStandardize:
    def test_value_at_group_mean_is_normal(self):
        score = standardize(2.10, "focusIndex", "male", 34)
        assert score.percentile == 50
        assert score.grade == "normal"
        assert score.age_gender_adjusted is True

    def test_three_sd_above_mean(self):
        score = standardize(2.10 + 3 * 0.30, "focusIndex", "male", 34)
        assert score.grade in ("excellent", "good")
        assert score.percentile >= 95

    def test_one_sd_above_mean(self):
        score = standardize(2.40, "focusIndex", "male", 34)
        assert score.percentile == 84
        assert score.grade == "good"

    def test_gender_changes_reference(self):
        male = standardize(75.0, "heartRate", "male", 34)
        female = standardize(75.0, "heartRate", "female", 34)
        assert male.percentile > female.percentile

    def test_gender_lookup_is_case_insensitive(self):
        assert standardize(2.10, "focusIndex", "MALE", 34).age_gender_adjusted is True

    def test_missing_norm_passes_raw_through(self):
        score = standardize(62.4, "unknownMetric", "male", 34)
        assert score.age_gender_adjusted is False
        assert score.standardized == 62.4
        assert score.percentile == 62

    def test_missing_norm_is_clamped(self):
        score = standardize(950.0, "totalPower", "male", 34)
        assert score.standardized == 100.0
        assert score.percentile == 100
        assert score.age_gender_adjusted is False

    def test_unknown_gender_falls_back(self):
        assert standardize(2.10, "focusIndex", "other", 34).age_gender_adjusted is False

    def test_percentile_is_always_bounded(self):
        for raw in (-1e6, -3.0, 0.0, 2.1, 99.0, 1e6):
            score = standardize(raw, "focusIndex", "female", 52)
            assert 0 <= score.percentile <= 100
            assert 0 <= score.standardized <= 100

    def test_explicit_empty_table_is_a_norm_miss(self):
        empty = NormTable({})
        score = standardize(2.10, "focusIndex", "male", 34, table=empty)
        assert score.age_gender_adjusted is False
        assert score.percentile == 2
        many = standardize_many({"focusIndex": 2.10}, "male", 34, table=empty)
        assert many["focusIndex"].age_gender_adjusted is False
        assert score_distribution("focusIndex", "male", 34, table=empty) is None

    def test_standardize_many(self):
        scores = standardize_many({"focusIndex": 2.10, "spo2": 98.0, "totalPower": 900}, "male", 34)
        assert scores["focusIndex"].percentile == 50
        assert scores["spo2"].percentile == 50
        assert scores["totalPower"].age_gender_adjusted is False


# ---------------------------------------------------------------------------
# Occupation and combination
# ---------------------------------------------------------------------------

class TestOccupationAdjustment:
    def test_known_occupation_shifts_score(self):
        base = _score(60)
        adjusted = apply_occupation_adjustment(base, "engineer")
        assert adjusted.raw == base.raw + 3
        assert adjusted.standardized == pytest.approx(61.5)
        assert "engineer" in adjusted.grade_description

    def test_adjustment_is_reclamped(self):
        adjusted = apply_occupation_adjustment(_score(99, standardized=99), "healthcare")
        assert adjusted.standardized == 100.0

    def test_unknown_or_missing_occupation_is_identity(self):
        base = _score(60)
        assert apply_occupation_adjustment(base, "astronaut") is base
        assert apply_occupation_adjustment(base, None) is base


class TestCombineScores:
    def test_equal_weights(self):
        combined = combine_scores([_score(40), _score(80)])
        assert combined.percentile == 60
        assert combined.grade == "normal"

    def test_weights_need_not_sum_to_one(self):
        combined = combine_scores([_score(20), _score(80)], [1, 3])
        assert combined.percentile == 65

    def test_regraded_from_weighted_percentile(self):
        combined = combine_scores([_score(96), _score(90)], [0.5, 0.5])
        assert combined.grade == "good"

    def test_adjusted_only_when_all_inputs_are(self):
        assert combine_scores([_score(50), _score(50, adjusted=False)]).age_gender_adjusted is False

    def test_non_positive_total_falls_back_to_equal(self):
        assert combine_scores([_score(40), _score(80)], [0, 0]).percentile == 60

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            combine_scores([])

    def test_rejects_length_mismatch(self):
        with pytest.raises(ValueError):
            combine_scores([_score(40)], [1, 2])


class TestScoreDistribution:
    def test_percentile_points(self):
        dist = score_distribution("focusIndex", "male", 34)
        assert dist[50] == pytest.approx(2.10)
        assert dist[5] < dist[25] < dist[50] < dist[75] < dist[95]
        assert dist[95] == pytest.approx(2.10 + 1.6449 * 0.30, abs=1e-3)

    def test_missing_norm(self):
        assert score_distribution("unknownMetric", "male", 34) is None


# ---------------------------------------------------------------------------
# Norm table
# ---------------------------------------------------------------------------

class TestNormTable:
    def test_bundled_table_covers_measured_and_risk_metrics(self):
        table = default_norm_table()
        for metric in ("focusIndex", "heartRate", "rmssd", "spo2", "moodRisk", "impulseRisk"):
            for gender in ("male", "female"):
                for band in AGE_BAND_LABELS:
                    assert (metric, gender, band) in table

    def test_parse_document(self):
        table = parse_norm_table(_table_doc())
        assert table.version == "9.9"
        assert len(table) == 2 * len(AGE_BAND_LABELS)
        norm = table.lookup("widget", "female", "40-49")
        assert norm.mean == 10.0
        assert norm.std_dev == 2.0

    def test_row_count_mismatch(self):
        with pytest.raises(ValueError, match="row count"):
            parse_norm_table(_table_doc(rows=[[1.0, 1.0, 10]]))

    def test_non_positive_std_dev_is_skipped(self):
        rows = [[10.0, 2.0, 100]] * (len(AGE_BAND_LABELS) - 1) + [[10.0, 0.0, 100]]
        table = parse_norm_table(_table_doc(rows=rows))
        assert table.lookup("widget", "male", "60+") is None
        assert table.lookup("widget", "male", "50-59") is not None

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "norms.yaml"
        path.write_text(yaml.safe_dump(_table_doc()), encoding="utf-8")
        table = load_norm_table(path)
        assert table.metrics() == ["widget"]
        score = standardize(12.0, "widget", "male", 70, table)
        assert score.percentile == 84
