"""Static demographic norm table, loaded from YAML once per process."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any

import yaml

from biosig.domains.analysis.domain_logic.norm_models import (
    AGE_BAND_LABELS,
    DemographicNorm,
)

logger = logging.getLogger(__name__)

DEFAULT_NORMS_PATH = Path(__file__).resolve().parent.parent / "data" / "norms.yaml"


class NormTable:
    """Read-only lookup of DemographicNorm by (metric, gender, age band)."""

    def __init__(self, norms: dict[tuple[str, str, str], DemographicNorm], version: str = "") -> None:
        self._norms = dict(norms)
        self.version = version

    def lookup(self, metric: str, gender: str, age_band: str) -> DemographicNorm | None:
        return self._norms.get((metric, (gender or "").lower(), age_band))

    def metrics(self) -> list[str]:
        return sorted({key[0] for key in self._norms})

    def __len__(self) -> int:
        return len(self._norms)

    def __contains__(self, key: tuple[str, str, str]) -> bool:
        return key in self._norms


def parse_norm_table(data: dict[str, Any]) -> NormTable:
    """Build a NormTable from the YAML document structure.

    Each metric maps gender -> list of ``[mean, std_dev, sample_size]`` rows in
    AGE_BAND_LABELS order. Rows with a non-positive std_dev are skipped.
    """
    norms: dict[tuple[str, str, str], DemographicNorm] = {}
    for metric, by_gender in (data.get("metrics") or {}).items():
        for gender, rows in by_gender.items():
            if len(rows) != len(AGE_BAND_LABELS):
                raise ValueError(
                    f"Norm table row count mismatch for {metric}/{gender}: "
                    f"expected {len(AGE_BAND_LABELS)}, got {len(rows)}"
                )
            for band, (mean, std_dev, sample_size) in zip(AGE_BAND_LABELS, rows):
                if std_dev <= 0:
                    logger.warning("Skipping norm %s/%s/%s: std_dev=%s", metric, gender, band, std_dev)
                    continue
                norms[(metric, gender, band)] = DemographicNorm(
                    metric=metric,
                    gender=gender,
                    age_band=band,
                    mean=float(mean),
                    std_dev=float(std_dev),
                    sample_size=int(sample_size),
                )
    return NormTable(norms, version=str(data.get("version", "")))


def load_norm_table(path: str | Path | None = None) -> NormTable:
    """Load a norm table from ``path`` (defaults to the bundled norms.yaml)."""
    path = Path(path) if path else DEFAULT_NORMS_PATH
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f)
    table = parse_norm_table(data)
    logger.info("Loaded norm table v%s: %d cells from %s", table.version, len(table), path)
    return table


@functools.lru_cache(maxsize=1)
def default_norm_table() -> NormTable:
    """Process-wide norm table (loaded on first use, never mutated)."""
    from biosig.core.config.settings import get_settings

    return load_norm_table(get_settings().norms_path or None)
