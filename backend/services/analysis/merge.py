"""Left-join cleaned demographics onto the concentration-time observations."""

from __future__ import annotations

import logging

import pandas as pd

from services.study_loader import normalize_subject_id

logger = logging.getLogger(__name__)

DEMOGRAPHIC_FIELDS = ["sex", "age", "age_raw"]


def merge_demographics(obs: pd.DataFrame, dm: pd.DataFrame) -> pd.DataFrame:
    """Attach sex/age to every observation row by subject.

    Row count and order of `obs` are preserved. Observations whose subject is
    missing from `dm` get nulls in the demographic columns; call
    assert_join_complete() to turn that into an error.
    """
    fields = [c for c in DEMOGRAPHIC_FIELDS if c in dm.columns]
    right = dm[["subject"] + fields].copy()
    right["subject"] = right["subject"].map(normalize_subject_id)
    left = obs.copy()
    left["subject"] = left["subject"].map(normalize_subject_id)

    merged = left.merge(right, on="subject", how="left", validate="many_to_one", indicator=True)
    merged.index = obs.index

    n_unmatched = int((merged["_merge"] == "left_only").sum())
    if n_unmatched:
        logger.warning("%d observation rows have no demographic record", n_unmatched)
    return merged


def find_unmatched_subjects(merged: pd.DataFrame) -> list[str]:
    """Subjects whose observations found no demographic record."""
    if "_merge" in merged.columns:
        mask = merged["_merge"] == "left_only"
    else:
        mask = merged["sex"].isna() & merged["age"].isna()
    return sorted(merged.loc[mask, "subject"].dropna().unique(), key=_subject_sort_key)


def assert_join_complete(merged: pd.DataFrame) -> pd.DataFrame:
    """Raise if any observation lacks demographics; drop the merge indicator otherwise."""
    n_blank = int(merged["subject"].isna().sum())
    if n_blank:
        raise ValueError(f"{n_blank} observation rows without a subject id")
    unmatched = find_unmatched_subjects(merged)
    if unmatched:
        raise ValueError(
            f"No demographic record for subjects {unmatched}; "
            "check that subject ids use the same form in both inputs"
        )
    return merged.drop(columns="_merge", errors="ignore")


def _subject_sort_key(subject: str):
    """Numeric ids sort numerically, others after them as text."""
    try:
        return (0, float(subject), "")
    except ValueError:
        return (1, 0.0, subject)
