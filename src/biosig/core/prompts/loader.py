"""Template loader: reads YAML stage prompt definitions from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from biosig.core.prompts.models import (
    OutputField,
    StageTemplate,
    TemplateFraming,
    TemplateGuardrails,
)
from biosig.core.prompts.registry import TemplateRegistry

logger = logging.getLogger(__name__)


def load_template_directory(directory: str | Path, registry: TemplateRegistry) -> int:
    """Load all YAML stage templates from a directory.

    Returns the number of templates loaded.
    Skips files starting with underscore.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Template directory does not exist: %s", directory)
        return 0

    count = 0
    for path in sorted(directory.glob("*.yaml")):
        if path.name.startswith("_"):
            continue
        template = load_template_file(path)
        registry.register(template)
        count += 1
        logger.info("Loaded stage template: %s (v%s)", template.id, template.version)
    return count


def load_template_file(path: Path) -> StageTemplate:
    """Parse a YAML file into a StageTemplate instance."""
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f)

    framing_data = data.get("framing", {})
    guardrails_data = data.get("guardrails", {})

    return StageTemplate(
        id=data["id"],
        version=str(data["version"]),
        stage=data["stage"],
        display_name=data.get("display_name", data["id"]),
        instruction=data["instruction"].strip(),
        framing=TemplateFraming(
            role=framing_data.get("role", "").strip(),
            perspective=framing_data.get("perspective", "").strip(),
            tone=framing_data.get("tone", ""),
        ),
        reasoning_steps=data.get("reasoning_steps", []),
        focus_areas=data.get("focus_areas", []),
        output_fields=[
            OutputField(
                name=f["name"],
                type=f.get("type", "string"),
                description=f.get("description", ""),
                required=f.get("required", True),
            )
            for f in data.get("output_fields", [])
        ],
        guardrails=TemplateGuardrails(
            disclaimers=guardrails_data.get("disclaimers", []),
            prohibited_actions=guardrails_data.get("prohibited_actions", []),
        ),
        max_output_tokens=data.get("max_output_tokens"),
    )
