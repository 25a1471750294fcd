"""Generate provenance messages (Prov-001 to Prov-006) from the cleaning and aggregation steps.

Provenance messages are transparency annotations that tell the reader how the
pipeline interpreted the input data. They appear in the report below the
statistics tables.
"""

from __future__ import annotations

import logging

import pandas as pd

from services.analysis.override_reader import AgeOverride

logger = logging.getLogger(__name__)


def generate_provenance_messages(
    dm_raw: pd.DataFrame,
    dm_clean: pd.DataFrame,
    observations: pd.DataFrame,
    summary: pd.DataFrame,
    overrides: dict[tuple[str, str], AgeOverride],
    inconsistent_fields: dict[str, list[str]],
) -> list[dict]:
    """Evaluate Prov-001 through Prov-006.

    Returns:
        List of provenance messages, each with:
        - rule_id: str (e.g., "Prov-001")
        - icon: "info" | "warning"
        - message: str
    """
    messages: list[dict] = []

    # Prov-001: Age overrides applied (conditional, one per override)
    messages.extend(_prov_001(dm_clean, overrides))

    # Prov-002: Age unit conversions (always fires)
    messages.append(_prov_002(dm_clean))

    # Prov-003: Long-form sex labels (conditional)
    msg = _prov_003(dm_raw)
    if msg:
        messages.append(msg)

    # Prov-004: Insufficient time points (conditional)
    msg = _prov_004(summary)
    if msg:
        messages.append(msg)

    # Prov-005: Non-constant per-subject fields (conditional, may emit multiple)
    messages.extend(_prov_005(inconsistent_fields))

    # Prov-006: Demographic records with no observations (conditional)
    msg = _prov_006(dm_clean, observations)
    if msg:
        messages.append(msg)

    logger.info("Generated %d provenance messages", len(messages))
    return messages


# ── Individual rule evaluators ───────────────────────────────────────────


def _prov_001(dm_clean: pd.DataFrame, overrides: dict[tuple[str, str], AgeOverride]) -> list[dict]:
    """Prov-001: Data-quality overrides that fired."""
    fired = dm_clean[dm_clean["age_rule"] == "override"]
    msgs = []
    for _, row in fired.iterrows():
        ov = overrides.get((row["subject"], str(row["age_raw"]).strip()))
        unit = ov.unit if ov else "override"
        reason = f" ({ov.reason})" if ov and ov.reason else ""
        msgs.append({
            "rule_id": "Prov-001",
            "icon": "warning",
            "message": (
                f"Subject {row['subject']}: age '{row['age_raw']}' read as {unit}, "
                f"giving {row['age']:.1f} years{reason}."
            ),
        })
    return msgs


def _prov_002(dm_clean: pd.DataFrame) -> dict:
    """Prov-002: How ages were converted to years."""
    counts = dm_clean["age_rule"].value_counts()
    parts = []
    for rule, label in [("years", "stated in years"), ("months", "converted from months"),
                        ("weeks", "converted from weeks"), ("bare", "bare numbers taken as years"),
                        ("override", "corrected by override")]:
        n = int(counts.get(rule, 0))
        if n:
            parts.append(f"{n} {label}")
    return {
        "rule_id": "Prov-002",
        "icon": "info",
        "message": f"Ages of {len(dm_clean)} subjects: " + ", ".join(parts) + ".",
    }


def _prov_003(dm_raw: pd.DataFrame) -> dict | None:
    """Prov-003: Long-form sex labels canonicalized."""
    raw = dm_raw["sex"].dropna().astype(str).str.strip()
    n_long = int((raw.str.len() > 1).sum())
    if n_long == 0:
        return None
    return {
        "rule_id": "Prov-003",
        "icon": "info",
        "message": f"{n_long} long-form sex labels (e.g. 'Male') mapped to single-letter codes.",
    }


def _prov_004(summary: pd.DataFrame) -> dict | None:
    """Prov-004: Subjects with fewer than two usable time points."""
    short = summary[summary["n_points"] < 2]
    if short.empty:
        return None
    subjects = ", ".join(str(s) for s in short["subject"])
    return {
        "rule_id": "Prov-004",
        "icon": "warning",
        "message": f"AUC set to 0 for subjects with fewer than two usable time points: {subjects}.",
    }


def _prov_005(inconsistent_fields: dict[str, list[str]]) -> list[dict]:
    """Prov-005: Fields that vary within a subject; the first value was kept."""
    return [
        {
            "rule_id": "Prov-005",
            "icon": "warning",
            "message": f"'{field}' varies within subjects {', '.join(subjects)}; first value used.",
        }
        for field, subjects in sorted(inconsistent_fields.items())
    ]


def _prov_006(dm_clean: pd.DataFrame, observations: pd.DataFrame) -> dict | None:
    """Prov-006: Demographic records never referenced by an observation."""
    extra = sorted(set(dm_clean["subject"]) - set(observations["subject"]))
    if not extra:
        return None
    return {
        "rule_id": "Prov-006",
        "icon": "info",
        "message": f"Demographic records without observations (not reported): {', '.join(extra)}.",
    }
