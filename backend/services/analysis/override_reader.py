"""Reads the age data-quality override table (data/age_overrides.yaml)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from config import AGE_OVERRIDES_PATH
from services.study_loader import normalize_subject_id

# Unit -> divisor to convert the recorded number to years
AGE_UNIT_DIVISORS = {
    "years": 1.0,
    "months": 12.0,
    "weeks": 52.0,
}


@dataclass(frozen=True)
class AgeOverride:
    subject: str
    raw: str
    unit: str
    reason: str = ""

    @property
    def divisor(self) -> float:
        return AGE_UNIT_DIVISORS[self.unit]


def load_age_overrides(path: Path | str | None = None) -> dict[tuple[str, str], AgeOverride]:
    """Load override entries keyed by (subject, raw age text).

    Returns an empty table if the file does not exist. Entries with a missing
    key or an unknown unit raise ValueError.
    """
    path = Path(path) if path is not None else AGE_OVERRIDES_PATH
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    table: dict[tuple[str, str], AgeOverride] = {}
    for i, entry in enumerate(data.get("age_overrides") or []):
        try:
            override = AgeOverride(
                subject=normalize_subject_id(entry["subject"]),
                raw=str(entry["raw"]).strip(),
                unit=str(entry["unit"]).strip().lower(),
                reason=str(entry.get("reason", "")),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed age override #{i + 1} in {path.name}: {entry!r}") from e
        if override.unit not in AGE_UNIT_DIVISORS:
            raise ValueError(
                f"Unknown unit '{override.unit}' in age override for subject {override.subject}"
            )
        table[(override.subject, override.raw)] = override
    return table
