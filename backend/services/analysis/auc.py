"""Per-subject exposure metrics: AUC (linear trapezoidal), Cmax, Tmax."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy.integrate import trapezoid

logger = logging.getLogger(__name__)

# Fields expected to be constant within a subject; the first value is kept
SUBJECT_CONSTANT_FIELDS = ["weight", "dose", "age", "sex"]


def _clean_series(time, conc) -> tuple[np.ndarray, np.ndarray]:
    t = np.asarray(time, dtype=float)
    c = np.asarray(conc, dtype=float)
    mask = ~(np.isnan(t) | np.isnan(c))
    t, c = t[mask], c[mask]
    order = np.argsort(t, kind="stable")
    return t[order], c[order]


def trapezoid_auc(time, conc) -> float:
    """AUC = sum (t_i - t_{i-1}) * (c_i + c_{i-1}) / 2 over time-sorted pairs.

    Pairs with a missing member are dropped. Fewer than two points gives 0.0.
    """
    t, c = _clean_series(time, conc)
    if len(t) < 2:
        return 0.0
    return float(trapezoid(c, t))


def _peak(time, conc) -> tuple[float | None, float | None]:
    t, c = _clean_series(time, conc)
    if len(t) == 0:
        return None, None
    i = int(np.argmax(c))
    return float(c[i]), float(t[i])


def build_subject_summary(enriched: pd.DataFrame) -> pd.DataFrame:
    """Collapse enriched observations to one row per subject.

    Columns: subject, weight, dose, age, sex, auc, cmax, tmax, n_points.
    Subjects appear in order of first appearance.
    """
    rows = []
    fields = [f for f in SUBJECT_CONSTANT_FIELDS if f in enriched.columns]
    for subject, sub in enriched.groupby("subject", sort=False):
        row = {"subject": subject}
        for field in fields:
            values = sub[field].dropna().unique()
            if len(values) > 1:
                logger.warning("Subject %s has %d distinct %s values, keeping the first",
                               subject, len(values), field)
            row[field] = sub[field].iloc[0]

        t, c = _clean_series(sub["time"], sub["conc"])
        n_points = len(t)
        if n_points < 2:
            logger.warning("Subject %s has %d usable time points, AUC set to 0", subject, n_points)
        cmax, tmax = _peak(t, c)
        row.update({
            "auc": trapezoid_auc(t, c),
            "cmax": cmax,
            "tmax": tmax,
            "n_points": n_points,
        })
        rows.append(row)

    summary = pd.DataFrame(rows, columns=["subject"] + fields + ["auc", "cmax", "tmax", "n_points"])
    logger.info("Computed AUC for %d subjects", len(summary))
    return summary


def find_inconsistent_fields(enriched: pd.DataFrame) -> dict[str, list[str]]:
    """field -> subjects where a supposedly constant field takes more than one value."""
    result: dict[str, list[str]] = {}
    for field in SUBJECT_CONSTANT_FIELDS:
        if field not in enriched.columns:
            continue
        n_distinct = enriched.groupby("subject", sort=False)[field].nunique()
        subjects = [str(s) for s in n_distinct[n_distinct > 1].index]
        if subjects:
            result[field] = subjects
    return result
