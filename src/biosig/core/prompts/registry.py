"""Template registry: in-memory index for loaded stage templates."""

from __future__ import annotations

import logging

from biosig.core.prompts.models import StageTemplate

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """In-memory registry of stage prompt templates, indexed by id and stage."""

    def __init__(self) -> None:
        self._templates: dict[str, StageTemplate] = {}
        self._by_stage: dict[str, str] = {}

    def register(self, template: StageTemplate) -> None:
        """Add a template; one template per stage."""
        if template.id in self._templates:
            raise ValueError(f"Duplicate template id registered: {template.id!r}")
        if template.stage in self._by_stage:
            raise ValueError(
                f"Stage {template.stage!r} already has template "
                f"{self._by_stage[template.stage]!r}"
            )
        self._templates[template.id] = template
        self._by_stage[template.stage] = template.id

    def get(self, template_id: str) -> StageTemplate | None:
        """Look up a template by ID."""
        return self._templates.get(template_id)

    def for_stage(self, stage: str) -> StageTemplate:
        """Return the template for a pipeline stage, or raise KeyError."""
        template_id = self._by_stage.get(stage)
        if template_id is None:
            raise KeyError(f"No prompt template registered for stage {stage!r}")
        return self._templates[template_id]

    def all(self) -> list[StageTemplate]:
        """Return all registered templates."""
        return list(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)
