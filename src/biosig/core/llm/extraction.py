"""Structured-result extraction from free-form completion text.

The model is asked for a fenced JSON block, but answers drift. Candidates are
tried in order and the first one that parses as a JSON object wins:

1. a fenced block labeled ``json``
2. any fenced block
3. the outermost ``{ ... }`` span of the text
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator
from typing import Any

from biosig.core.llm.errors import StructuredParseError, StructuredValidationError

logger = logging.getLogger(__name__)

_LABELED_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[a-zA-Z]*\s*([\s\S]*?)\s*```")
_OUTER_BRACES = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _candidates(text: str) -> Iterator[tuple[str, str]]:
    for match in _LABELED_FENCE.finditer(text):
        yield "labeled_fence", match.group(1)
    for match in _ANY_FENCE.finditer(text):
        yield "fence", match.group(1)
    match = _OUTER_BRACES.search(text)
    if match:
        yield "braces", match.group(0)


def _loads_object(candidate: str) -> dict[str, Any] | None:
    for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def extract_structured(text: str) -> dict[str, Any]:
    """Return the first JSON object found in ``text``.

    Raises StructuredParseError when no candidate parses.
    """
    if not text or not text.strip():
        raise StructuredParseError("Empty response text")

    tried = 0
    for source, candidate in _candidates(text):
        tried += 1
        parsed = _loads_object(candidate)
        if parsed is not None:
            logger.debug("Structured result extracted from %s", source)
            return parsed

    preview = text.strip()[:120].replace("\n", " ")
    raise StructuredParseError(
        f"No parseable JSON object in response ({tried} candidates tried): {preview!r}"
    )


def validate_fields(data: dict[str, Any], required: Iterable[str]) -> dict[str, Any]:
    """Check that every required field is present and not null."""
    missing = [name for name in required if data.get(name) is None]
    if missing:
        raise StructuredValidationError(missing)
    return data
