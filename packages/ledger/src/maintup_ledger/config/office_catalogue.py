"""Office cost sub-category catalogue loader."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

OFFICE_TYPES = ("fixed", "variable", "payroll")

CATALOGUE_PATH = Path(__file__).resolve().parent / "office_categories.yaml"


def _parse_catalogue(data: Any) -> dict[str, tuple[str, ...]]:
    if data is None:
        return {office_type: () for office_type in OFFICE_TYPES}
    if isinstance(data, dict) and "office_categories" in data:
        data = data["office_categories"]
    if not isinstance(data, dict):
        raise ValueError("office catalogue must be a mapping of office type to labels")

    results: dict[str, tuple[str, ...]] = {}
    for office_type in OFFICE_TYPES:
        labels = data.get(office_type) or []
        if not isinstance(labels, list):
            raise ValueError(f"office_categories.{office_type} must be a list")
        results[office_type] = tuple(str(label) for label in labels)

    unknown = set(data) - set(OFFICE_TYPES)
    if unknown:
        raise ValueError(f"Unknown office types in catalogue: {sorted(unknown)!r}")
    return results


@lru_cache
def load_office_catalogue(path: Path | None = None) -> dict[str, tuple[str, ...]]:
    """Load the office sub-category labels, keyed by office type."""
    catalogue_path = path or CATALOGUE_PATH
    if not catalogue_path.exists():
        return {office_type: () for office_type in OFFICE_TYPES}
    raw = catalogue_path.read_text(encoding="utf-8")
    return _parse_catalogue(yaml.safe_load(raw))


def office_categories_for(office_type: str) -> tuple[str, ...]:
    """Return the labels offered for one office type (empty when unknown)."""
    return load_office_catalogue().get(office_type, ())


def default_office_category(office_type: str) -> str | None:
    """First catalogue label for an office type, used to pre-fill forms."""
    labels = office_categories_for(office_type)
    return labels[0] if labels else None
