"""Tests for final report assembly and problem-area detection."""

from __future__ import annotations

import json

import pytest

from biosig.domains.analysis.domain_logic.quality_assessor import assess_quality
from biosig.domains.analysis.domain_logic.risk_scorer import quality_summary, score_risks
from biosig.domains.analysis.pipeline.context import normalize_measurements
from biosig.domains.analysis.pipeline.report import (
    MAX_PROBLEM_AREAS,
    assemble_report,
    health_grade,
    identify_problem_areas,
    personalized_recommendations,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _assemble(session, outputs, metadata=None):
    quality = assess_quality(session.accelerometer)
    risks = score_risks(
        session.eeg_values(), session.ppg_values(), session.personal_info, quality_summary(quality)
    )
    normalized = normalize_measurements(session, risks)
    return assemble_report(outputs, session, quality, risks, normalized, metadata)


# ---------------------------------------------------------------------------
# Grades
# ---------------------------------------------------------------------------

class TestHealthGrade:
    @pytest.mark.parametrize(
        "score,grade",
        [(95, "excellent"), (90, "excellent"), (85, "good"), (70, "fair"), (65, "caution"), (50, "poor"), (49, "critical")],
    )
    def test_thresholds(self, score, grade):
        assert health_grade(score) == grade


# ---------------------------------------------------------------------------
# assemble_report
# ---------------------------------------------------------------------------

class TestAssembleReport:
    def test_headline(self, session, stage_answers):
        report = _assemble(session, stage_answers)
        assert report.overall_score == 76
        assert report.overall_grade == "fair"
        assert report.session_id == session.session_id
        assert report.summary.startswith("Overall you are in good shape")

    def test_key_findings_take_two_per_domain(self, session, stage_answers):
        report = _assemble(session, stage_answers)
        assert report.key_findings == [
            "Take short breaks every hour.",
            "Keep a regular sleep schedule.",
            "Walk 30 minutes a day.",
            "Stay hydrated.",
            "Schedule recovery time after work.",
        ]

    def test_risk_factors_are_deduplicated(self, session, stage_answers):
        stage_answers["mental"]["concerns"] = ["Long working hours", "Low focus"]
        report = _assemble(session, stage_answers)
        assert report.risk_factors == ["Long working hours", "Low focus"]

    def test_strengths_from_high_scoring_domains(self, session, stage_answers):
        report = _assemble(session, stage_answers)
        assert len(report.strengths) == 1
        assert report.strengths[0].startswith("Physical")

    def test_domain_slices(self, session, stage_answers):
        report = _assemble(session, stage_answers)
        assert report.mental.immediate_actions == ["immediate 0", "immediate 1"]
        assert report.physical.immediate_actions == ["immediate 2", "immediate 3"]
        assert report.stress.immediate_actions == ["immediate 4", "immediate 5"]
        assert report.physical.short_term_goals == ["short 2", "short 3"]
        assert report.stress.long_term_strategy == ["long 4", "long 5"]
        assert report.stress.concerns == ["Long working hours"]

    def test_short_synthesis_lists_do_not_fail(self, session, stage_answers):
        stage_answers["comprehensive"]["immediateActions"] = ["only one"]
        stage_answers["comprehensive"]["occupationSpecificAdvice"] = "Take the stairs."
        report = _assemble(session, stage_answers)
        assert report.mental.immediate_actions == ["only one"]
        assert report.stress.immediate_actions == []
        occupation = report.personalized_recommendations["occupationSpecific"]
        assert occupation["workplaceStrategies"] == ["Take the stairs."]
        assert occupation["colleagueInteraction"] == []

    @pytest.mark.parametrize("value,score", [("120", 100.0), (-5, 0.0), ("n/a", 0.0)])
    def test_overall_score_is_coerced_and_clamped(self, session, stage_answers, value, score):
        stage_answers["comprehensive"]["overallScore"] = value
        assert _assemble(session, stage_answers).overall_score == score

    def test_deterministic_blocks_are_attached(self, session, stage_answers):
        report = _assemble(session, stage_answers, metadata={"model": "mock"})
        assert report.quality.overall_score == 90
        assert set(report.risk.profiles) == {"mood", "attention", "exhaustion", "impulse"}
        assert report.normalized_metrics["focusIndex"]["percentile"] == 50
        assert report.metadata == {"model": "mock"}
        assert report.follow_up_actions == ["Re-measure in two weeks."]

    def test_to_dict_is_json_serializable(self, session, stage_answers):
        data = _assemble(session, stage_answers).to_dict()
        encoded = json.dumps(data)
        assert '"overall_grade": "fair"' in encoded
        assert isinstance(data["generated_at"], str)


class TestPersonalizedRecommendations:
    def test_bucket_slices(self, stage_answers):
        recs = personalized_recommendations(stage_answers["comprehensive"])
        assert recs["immediate"] == {
            "lifestyle": ["immediate 0", "immediate 1", "immediate 2"],
            "exercise": ["immediate 3", "immediate 4", "immediate 5"],
        }
        assert recs["shortTerm"]["stressManagement"] == ["short 6", "short 7", "short 8"]
        assert recs["longTerm"]["mentalCare"] == ["long 6", "long 7", "long 8"]
        assert recs["occupationSpecific"]["timeManagement"] == ["work 3", "work 4", "work 5"]
        assert recs["occupationSpecific"]["colleagueInteraction"] == ["work 9", "work 10", "work 11"]

    def test_missing_lists(self):
        recs = personalized_recommendations({})
        assert recs["immediate"] == {"lifestyle": [], "exercise": []}


# ---------------------------------------------------------------------------
# Problem areas
# ---------------------------------------------------------------------------

class TestProblemAreas:
    def test_default_answers_flag_only_stress(self, session, stage_answers):
        problems = identify_problem_areas(stage_answers, session.metric_values())
        assert [p.category for p in problems] == ["stress"]
        assert problems[0].severity == "medium"
        assert problems[0].description == "Stress management: Long working hours"

    def test_healthy_domains_are_not_flagged(self, session, stage_answers):
        stage_answers["stress"]["score"] = 85
        stage_answers["stress"]["stressFactors"] = []
        assert identify_problem_areas(stage_answers, session.metric_values()) == []

    def test_ranked_by_severity_then_score(self, session, stage_answers):
        stage_answers["mental"]["score"] = 45
        stage_answers["physical"]["score"] = 60
        stage_answers["stress"]["score"] = 30
        problems = identify_problem_areas(stage_answers, session.metric_values())
        assert len(problems) <= MAX_PROBLEM_AREAS
        assert [p.category for p in problems] == ["stress", "mental", "physical"]
        assert [p.severity for p in problems] == ["high", "high", "medium"]

    def test_metric_details_refine_description(self, session_factory, stage_answers):
        session = session_factory(ppg={"heartRate": 110.0, "rmssd": 15.0, "sdnn": 25.0, "spo2": 93.0})
        stage_answers["physical"]["score"] = 55
        problems = identify_problem_areas(stage_answers, session.metric_values())
        physical = next(p for p in problems if p.category == "physical")
        assert "Oxygen saturation is below 95%." in physical.details
        assert "outside 60-100 BPM" in physical.description
        assert len([d for d in physical.details if d.endswith(".")]) == 4

    def test_low_score_without_concerns_or_details(self, session, stage_answers):
        stage_answers["mental"]["score"] = 62
        problems = identify_problem_areas(stage_answers, session.metric_values())
        mental = next(p for p in problems if p.category == "mental")
        assert mental.description == "Mental health score is 62, below the healthy range."

    def test_report_carries_problem_areas(self, session, stage_answers):
        report = _assemble(session, stage_answers)
        assert [p.category for p in report.problem_areas] == ["stress"]
