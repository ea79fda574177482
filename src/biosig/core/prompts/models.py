"""Data models for stage prompt templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TemplateFraming:
    """The role the completion model adopts for one stage."""

    role: str = ""
    perspective: str = ""
    tone: str = ""


@dataclass
class OutputField:
    """One field of the JSON object a stage must return."""

    name: str
    type: str
    description: str = ""
    required: bool = True


@dataclass
class TemplateGuardrails:
    """Safety boundaries carried into every stage prompt."""

    disclaimers: list[str] = field(default_factory=list)
    prohibited_actions: list[str] = field(default_factory=list)


@dataclass
class StageTemplate:
    """A prompt template for one analysis stage."""

    id: str
    version: str
    stage: str
    display_name: str
    instruction: str
    framing: TemplateFraming
    reasoning_steps: list[str] = field(default_factory=list)
    focus_areas: list[str] = field(default_factory=list)
    output_fields: list[OutputField] = field(default_factory=list)
    guardrails: TemplateGuardrails = field(default_factory=TemplateGuardrails)
    max_output_tokens: int | None = None

    @property
    def required_fields(self) -> list[str]:
        return [f.name for f in self.output_fields if f.required]


@dataclass
class AssembledPrompt:
    """The final prompt sent to the completion service."""

    system_message: str
    user_message: str
    metadata: dict[str, Any] = field(default_factory=dict)
