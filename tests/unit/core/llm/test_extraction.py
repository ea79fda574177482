"""Tests for structured-result extraction and field validation."""

from __future__ import annotations

import pytest

from biosig.core.llm.errors import StructuredParseError, StructuredValidationError
from biosig.core.llm.extraction import extract_structured, validate_fields


class TestExtractStructured:
    def test_labeled_fence(self):
        text = 'Sure!\n```json\n{"score": 72, "status": "good"}\n```\nHope this helps.'
        assert extract_structured(text) == {"score": 72, "status": "good"}

    def test_labeled_fence_wins_over_earlier_plain_fence(self):
        text = '```\n{"which": "plain"}\n```\n```json\n{"which": "labeled"}\n```'
        assert extract_structured(text) == {"which": "labeled"}

    def test_any_fence(self):
        text = 'Result:\n```\n{"score": 60}\n```'
        assert extract_structured(text) == {"score": 60}

    def test_bare_braces(self):
        text = 'The answer is {"score": 55, "concerns": []} as requested.'
        assert extract_structured(text) == {"score": 55, "concerns": []}

    def test_unparseable_labeled_fence_falls_through(self):
        text = '```json\n{score: oops}\n```\nCorrected:\n```\n{"score": 40}\n```'
        assert extract_structured(text) == {"score": 40}

    def test_outer_brace_span_must_parse_as_a_whole(self):
        with pytest.raises(StructuredParseError):
            extract_structured('```json\n{score: oops}\n```\nFallback: {"score": 40}')

    def test_trailing_commas_tolerated(self):
        text = '```json\n{"items": ["a", "b",], "score": 1,}\n```'
        assert extract_structured(text) == {"items": ["a", "b"], "score": 1}

    def test_nested_objects(self):
        text = '```json\n{"keyMetrics": {"focusIndex": {"value": 2.1}}, "score": 80}\n```'
        assert extract_structured(text)["keyMetrics"]["focusIndex"]["value"] == 2.1

    def test_top_level_array_is_not_an_object(self):
        with pytest.raises(StructuredParseError):
            extract_structured('```json\n[1, 2, 3]\n```')

    @pytest.mark.parametrize("text", ["", "   ", "I could not analyze this data.", "```json\n```"])
    def test_nothing_parseable(self, text):
        with pytest.raises(StructuredParseError):
            extract_structured(text)


class TestValidateFields:
    def test_all_present(self):
        data = {"score": 1, "status": "ok"}
        assert validate_fields(data, ["score", "status"]) is data

    def test_missing_fields_are_listed_in_order(self):
        with pytest.raises(StructuredValidationError) as exc_info:
            validate_fields({"score": 1}, ["score", "status", "analysis"])
        assert exc_info.value.missing == ["status", "analysis"]
        assert "status, analysis" in str(exc_info.value)

    def test_null_counts_as_missing(self):
        with pytest.raises(StructuredValidationError) as exc_info:
            validate_fields({"score": None}, ["score"])
        assert exc_info.value.missing == ["score"]

    def test_empty_list_is_present(self):
        assert validate_fields({"concerns": []}, ["concerns"]) == {"concerns": []}
