"""Tests for stage prompt templates: loading, registry and rendering."""

from __future__ import annotations

import json
import textwrap

import pytest

from biosig.core.prompts.loader import load_template_directory, load_template_file
from biosig.core.prompts.models import OutputField, StageTemplate, TemplateFraming
from biosig.core.prompts.registry import TemplateRegistry
from biosig.core.prompts.renderer import render_template
from biosig.domains.analysis.pipeline.orchestrator import load_default_templates
from biosig.domains.analysis.pipeline.stages import STAGE_ORDER, STAGE_REQUIRED_FIELDS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_TEMPLATE_YAML = textwrap.dedent(
    """\
    id: sample.mental.v1
    version: 2
    stage: mental
    display_name: Sample
    instruction: |
      Look at the EEG data.
    framing:
      role: |
        Sample analyst.
      tone: plain
    reasoning_steps:
      - First step
      - Second step
    output_fields:
      - name: score
        type: number
      - name: notes
        type: string
        required: false
    guardrails:
      prohibited_actions:
        - Diagnose
    max_output_tokens: 4096
    """
)


def _template(stage="mental", template_id=None):
    return StageTemplate(
        id=template_id or f"t.{stage}",
        version="1.0",
        stage=stage,
        display_name=stage,
        instruction="Do the thing.",
        framing=TemplateFraming(role="Analyst"),
        output_fields=[OutputField(name="score", type="number")],
    )


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class TestLoader:
    def test_load_file(self, tmp_path):
        path = tmp_path / "mental.yaml"
        path.write_text(_TEMPLATE_YAML, encoding="utf-8")
        template = load_template_file(path)
        assert template.id == "sample.mental.v1"
        assert template.version == "2"
        assert template.instruction == "Look at the EEG data."
        assert template.framing.role == "Sample analyst."
        assert template.framing.perspective == ""
        assert template.required_fields == ["score"]
        assert template.guardrails.prohibited_actions == ["Diagnose"]
        assert template.guardrails.disclaimers == []
        assert template.max_output_tokens == 4096

    def test_directory_skips_underscore_files(self, tmp_path):
        (tmp_path / "mental.yaml").write_text(_TEMPLATE_YAML, encoding="utf-8")
        (tmp_path / "_draft.yaml").write_text(_TEMPLATE_YAML, encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        registry = TemplateRegistry()
        assert load_template_directory(tmp_path, registry) == 1
        assert len(registry) == 1

    def test_missing_directory(self, tmp_path):
        assert load_template_directory(tmp_path / "nope", TemplateRegistry()) == 0


class TestBundledTemplates:
    def test_one_template_per_stage(self):
        registry = load_default_templates()
        assert len(registry) == len(STAGE_ORDER)
        for stage in STAGE_ORDER:
            assert registry.for_stage(stage).stage == stage

    @pytest.mark.parametrize("stage", STAGE_ORDER)
    def test_required_fields_match_stage_schema(self, stage):
        template = load_default_templates().for_stage(stage)
        assert set(template.required_fields) == set(STAGE_REQUIRED_FIELDS[stage])

    def test_synthesis_has_larger_output_budget(self):
        registry = load_default_templates()
        assert registry.for_stage("comprehensive").max_output_tokens > registry.for_stage("mental").max_output_tokens


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_register_and_get(self):
        registry = TemplateRegistry()
        registry.register(_template())
        assert registry.get("t.mental").stage == "mental"
        assert registry.get("missing") is None
        assert [t.id for t in registry.all()] == ["t.mental"]

    def test_duplicate_id(self):
        registry = TemplateRegistry()
        registry.register(_template())
        with pytest.raises(ValueError, match="Duplicate"):
            registry.register(_template())

    def test_second_template_for_stage(self):
        registry = TemplateRegistry()
        registry.register(_template())
        with pytest.raises(ValueError, match="already has template"):
            registry.register(_template(template_id="other"))

    def test_unknown_stage(self):
        with pytest.raises(KeyError):
            TemplateRegistry().for_stage("mental")


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class TestRenderer:
    def test_system_message_sections(self, tmp_path):
        path = tmp_path / "mental.yaml"
        path.write_text(_TEMPLATE_YAML, encoding="utf-8")
        prompt = render_template(load_template_file(path), {"x": 1})
        system = prompt.system_message
        assert "## Your Role\nSample analyst." in system
        assert "1. First step\n2. Second step" in system
        assert "`score` (number, required)" in system
        assert "`notes` (string, optional)" in system
        assert "You must NEVER:\n- Diagnose" in system
        assert "## Your Perspective" not in system

    def test_user_message_starts_with_stage_request(self):
        prompt = render_template(_template("stress"), {"stressMetrics": [{"name": "stressIndex", "value": 3.5}]})
        assert prompt.user_message.startswith("## Request (stress)\nDo the thing.")
        block = prompt.user_message.split("```json\n", 1)[1].split("\n```", 1)[0]
        assert json.loads(block)["stressMetrics"][0]["value"] == 3.5

    def test_prior_stages_included_only_when_given(self):
        without = render_template(_template(), {"x": 1})
        with_prior = render_template(_template(), {"x": 1}, {"mental": {"score": 80}})
        assert "Findings From Earlier Stages" not in without.user_message
        assert "Findings From Earlier Stages" in with_prior.user_message

    def test_non_ascii_text_is_kept_literal(self):
        prompt = render_template(
            _template(), {"subject": {"name": "Zoë"}}, {"mental": {"analysisExcerpt": "Café"}}
        )
        assert '"name": "Zoë"' in prompt.user_message
        assert '"analysisExcerpt": "Café"' in prompt.user_message
        assert "\\u00eb" not in prompt.user_message
        assert "\\u00e9" not in prompt.user_message

    def test_metadata(self):
        prompt = render_template(_template("physical"), {})
        assert prompt.metadata == {
            "template_id": "t.physical",
            "template_version": "1.0",
            "stage": "physical",
            "required_fields": ["score"],
        }
