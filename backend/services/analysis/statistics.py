"""Pure function wrappers for descriptive statistics and group comparisons."""

import numpy as np
import pandas as pd
from scipy import stats

from models.schemas import DescriptiveStats, GroupComparison, GroupStats


def _clean(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    return arr[~np.isnan(arr)]


def t_confidence_interval(mean: float, sd: float, n: int, alpha: float = 0.05) -> tuple[float | None, float | None]:
    """Two-sided (1 - alpha) CI for the mean: mean ± t(1 - alpha/2, n - 1) * sd / sqrt(n).

    Returns (None, None) when n < 2.
    """
    if n < 2 or sd is None or np.isnan(sd):
        return None, None
    t_crit = stats.t.ppf(1 - alpha / 2, n - 1)
    half = float(t_crit * sd / np.sqrt(n))
    return float(mean - half), float(mean + half)


def describe(values, alpha: float = 0.05) -> DescriptiveStats:
    """Count, mean, SD (n-1), min/max, quartiles and t-based CI of the mean. NaNs are ignored."""
    arr = _clean(values)
    n = len(arr)
    if n == 0:
        return DescriptiveStats(n=0, alpha=alpha)

    mean = float(np.mean(arr))
    sd = float(np.std(arr, ddof=1)) if n >= 2 else None
    q1, median, q3 = (float(q) for q in np.percentile(arr, [25, 50, 75]))
    ci_lower, ci_upper = t_confidence_interval(mean, sd, n, alpha) if sd is not None else (None, None)
    return DescriptiveStats(
        n=n,
        mean=mean,
        sd=sd,
        min=float(np.min(arr)),
        q1=q1,
        median=median,
        q3=q3,
        max=float(np.max(arr)),
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        alpha=alpha,
    )


def describe_by(df: pd.DataFrame, value_col: str, by: str, alpha: float = 0.05) -> list[GroupStats]:
    """describe() applied per level of a categorical column. Null keys are excluded."""
    results = []
    for key, sub in df.dropna(subset=[by]).groupby(by, sort=True):
        results.append(GroupStats(
            group_by=by,
            group=str(key),
            stats=describe(sub[value_col], alpha=alpha),
        ))
    return results


def welch_t_test(group1: list | np.ndarray, group2: list | np.ndarray) -> dict:
    """Welch's t-test (unequal variance). Returns t-statistic and p-value."""
    a1 = _clean(group1)
    a2 = _clean(group2)
    if len(a1) < 2 or len(a2) < 2:
        return {"statistic": None, "p_value": None}
    t_stat, p_val = stats.ttest_ind(a1, a2, equal_var=False)
    return {"statistic": float(t_stat), "p_value": float(p_val)}


def mann_whitney_u(group1: list | np.ndarray, group2: list | np.ndarray) -> dict:
    """Mann-Whitney U test for non-parametric comparison."""
    a1 = _clean(group1)
    a2 = _clean(group2)
    if len(a1) < 1 or len(a2) < 1:
        return {"statistic": None, "p_value": None}
    try:
        u_stat, p_val = stats.mannwhitneyu(a1, a2, alternative="two-sided")
        return {"statistic": float(u_stat), "p_value": float(p_val)}
    except ValueError:
        return {"statistic": None, "p_value": None}


def compare_two_groups(df: pd.DataFrame, value_col: str, by: str) -> GroupComparison | None:
    """Welch + Mann-Whitney between the two levels of `by`. None unless exactly two levels."""
    levels = sorted(str(k) for k in df[by].dropna().unique())
    if len(levels) != 2:
        return None
    keys = df[by].astype(str)
    g1 = df.loc[keys == levels[0], value_col]
    g2 = df.loc[keys == levels[1], value_col]
    welch = welch_t_test(g1, g2)
    mwu = mann_whitney_u(g1, g2)
    return GroupComparison(
        variable=value_col,
        group_by=by,
        groups=levels,
        welch_statistic=welch["statistic"],
        welch_p_value=welch["p_value"],
        mwu_statistic=mwu["statistic"],
        mwu_p_value=mwu["p_value"],
    )
