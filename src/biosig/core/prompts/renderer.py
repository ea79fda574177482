"""Template renderer: assembles stage templates into completion prompts."""

from __future__ import annotations

import json
from typing import Any

from biosig.core.prompts.models import AssembledPrompt, StageTemplate


def render_template(
    template: StageTemplate,
    data_context: dict[str, Any],
    prior_stages: dict[str, Any] | None = None,
) -> AssembledPrompt:
    """Combine a stage template with measurement data and earlier findings."""
    return AssembledPrompt(
        system_message=_build_system_message(template),
        user_message=_build_user_message(template, data_context, prior_stages),
        metadata={
            "template_id": template.id,
            "template_version": template.version,
            "stage": template.stage,
            "required_fields": template.required_fields,
        },
    )


def _build_system_message(template: StageTemplate) -> str:
    """Assemble the system message from template components."""
    parts: list[str] = []

    parts.append(f"## Your Role\n{template.framing.role}")
    if template.framing.perspective:
        parts.append(f"## Your Perspective\n{template.framing.perspective}")
    if template.framing.tone:
        parts.append(f"## Communication Tone\n{template.framing.tone}")

    if template.reasoning_steps:
        steps_text = "\n".join(f"{i+1}. {step}" for i, step in enumerate(template.reasoning_steps))
        parts.append(f"## Reasoning Steps\nFollow these steps in order:\n{steps_text}")

    if template.focus_areas:
        focus = "\n".join(f"- {k}" for k in template.focus_areas)
        parts.append(f"## Focus Areas\n{focus}")

    if template.output_fields:
        lines = []
        for f in template.output_fields:
            marker = "required" if f.required else "optional"
            desc = f": {f.description}" if f.description else ""
            lines.append(f"- `{f.name}` ({f.type}, {marker}){desc}")
        parts.append(
            "## Output Format\n"
            "Respond with exactly one JSON object inside a ```json fenced block "
            "containing these fields:\n" + "\n".join(lines)
        )

    if template.guardrails.disclaimers:
        disclaimers = "\n".join(f"- {d}" for d in template.guardrails.disclaimers)
        parts.append(f"## Required Disclaimers\nInclude these where appropriate:\n{disclaimers}")

    if template.guardrails.prohibited_actions:
        prohibited = "\n".join(f"- {a}" for a in template.guardrails.prohibited_actions)
        parts.append(f"## Prohibited Actions\nYou must NEVER:\n{prohibited}")

    return "\n\n".join(parts)


def _build_user_message(
    template: StageTemplate,
    data_context: dict[str, Any],
    prior_stages: dict[str, Any] | None,
) -> str:
    """Assemble the user message with instruction and data."""
    parts: list[str] = [f"## Request ({template.stage})\n{template.instruction}"]

    if data_context:
        parts.append(
            f"## Measurement Data\n```json\n{json.dumps(data_context, indent=2, default=str, ensure_ascii=False)}\n```"
        )

    if prior_stages:
        prior_json = json.dumps(prior_stages, indent=2, default=str, ensure_ascii=False)
        parts.append(f"## Findings From Earlier Stages\n```json\n{prior_json}\n```")

    return "\n\n".join(parts)
