"""Demographics cleaning: sex codes and free-text age to numeric years.

Age strings arrive as e.g. "35 years", "384 months", "1612 weeks" or a bare
"27". Each value is converted to years by a unit rule:

    year  -> number as-is
    month -> number / 12
    week  -> number / 52
    none  -> the whole string must be a bare number of years

Known data-entry errors are corrected through the override table in
data/age_overrides.yaml, never inside the unit rules. An override applies
only when both the subject and the raw text match, so running the parser on
an already-converted value returns it unchanged.
"""

from __future__ import annotations

import logging
import math
import re

import pandas as pd

from config import MAX_PLAUSIBLE_AGE_YEARS
from services.analysis.override_reader import AGE_UNIT_DIVISORS, AgeOverride

logger = logging.getLogger(__name__)

SEX_CODES = {
    "M": "M",
    "MALE": "M",
    "F": "F",
    "FEMALE": "F",
}

# (token, rule, divisor); checked in order, first token found in the unit text wins
AGE_UNIT_RULES = [(unit.rstrip("s"), unit, divisor) for unit, divisor in AGE_UNIT_DIVISORS.items()]

# Whole value: optional sign, one number, optional unit words. "1,612" or "about 5" do not match.
_AGE_RE = re.compile(
    r"^(?P<number>[-+]?(?:\d+(?:\.\d+)?|\.\d+)(?:e[-+]?\d+)?)\s*(?P<unit>[a-z]+(?:\s+[a-z]+)*)?$"
)


class AgeParseError(ValueError):
    """An age value that no rule can turn into a non-negative number of years."""

    def __init__(self, raw, subject: str | None, reason: str):
        self.raw = raw
        self.subject = subject
        who = f"subject {subject}" if subject is not None else "unknown subject"
        super().__init__(f"Cannot parse age {raw!r} for {who}: {reason}")


def normalize_sex(value) -> str | None:
    """Map long-form or single-letter sex labels to "M"/"F". Null stays None."""
    if value is None or pd.isna(value):
        return None
    code = SEX_CODES.get(str(value).strip().upper())
    if code is None:
        raise ValueError(f"Unrecognized sex label: {value!r}")
    return code


def _split_age(text: str, raw, subject: str | None) -> tuple[float, str]:
    """Split "<number> [unit]" into (number, lowercased unit or "")."""
    m = _AGE_RE.match(text.lower())
    if m is None:
        raise AgeParseError(raw, subject, "expected a single number optionally followed by a unit")
    return float(m.group("number")), m.group("unit") or ""


def parse_age_with_rule(
    raw,
    subject: str | None = None,
    overrides: dict[tuple[str, str], AgeOverride] | None = None,
) -> tuple[float, str]:
    """Parse an age value, returning (years, rule) where rule names the branch taken."""
    if raw is None or (not isinstance(raw, str) and pd.isna(raw)):
        raise AgeParseError(raw, subject, "value is missing")
    text = str(raw).strip()
    number, unit = _split_age(text, raw, subject)

    override = (overrides or {}).get((subject, text)) if subject is not None else None
    if override is not None:
        return _check_age(number / override.divisor, raw, subject), "override"

    if not unit:
        years = _check_age(number, raw, subject)
        _check_plausible(years, raw, subject)
        return years, "bare"

    for token, rule, divisor in AGE_UNIT_RULES:
        if token in unit:
            years = _check_age(number / divisor, raw, subject)
            if divisor == 1.0:
                _check_plausible(years, raw, subject)
            return years, rule
    raise AgeParseError(raw, subject, f"unknown unit '{unit}'")


def parse_age(
    raw,
    subject: str | None = None,
    overrides: dict[tuple[str, str], AgeOverride] | None = None,
) -> float:
    """Parse a free-text age into years.

    Examples: "5 years" -> 5.0, "18 months" -> 1.5, "52 weeks" -> 1.0,
    "23" -> 23.0, and "636" for a subject with a months override -> 53.0.
    """
    years, _ = parse_age_with_rule(raw, subject, overrides)
    return years


def _check_age(years: float, raw, subject: str | None) -> float:
    if not math.isfinite(years) or years < 0:
        raise AgeParseError(raw, subject, f"result {years} is not a non-negative finite number")
    return years


def _check_plausible(years: float, raw, subject: str | None) -> None:
    if years > MAX_PLAUSIBLE_AGE_YEARS:
        raise AgeParseError(
            raw, subject,
            f"{years:g} years exceeds {MAX_PLAUSIBLE_AGE_YEARS:g}; "
            "add an entry to the age override table if the unit was mis-recorded",
        )


def clean_demographics(
    dm: pd.DataFrame,
    overrides: dict[tuple[str, str], AgeOverride] | None = None,
) -> pd.DataFrame:
    """Normalize a raw demographics table (subject, sex, age_raw).

    Returns a copy with canonical `sex`, numeric `age` (years) and `age_rule`
    recording which parse rule produced each age. Duplicate or missing
    subject ids and unparseable ages raise ValueError.
    """
    if dm["subject"].isna().any():
        raise ValueError("Demographics table has rows without a subject id")
    dupes = sorted(dm.loc[dm["subject"].duplicated(), "subject"].unique())
    if dupes:
        raise ValueError(f"Duplicate subjects in demographics table: {dupes}")

    out = dm.copy()
    out["sex"] = [_sex_for_row(v, s) for v, s in zip(out["sex"], out["subject"])]

    parsed = [parse_age_with_rule(raw, subj, overrides) for raw, subj in zip(out["age_raw"], out["subject"])]
    out["age"] = pd.to_numeric(pd.Series([p[0] for p in parsed], index=out.index))
    out["age_rule"] = [p[1] for p in parsed]

    n_missing_sex = int(out["sex"].isna().sum())
    if n_missing_sex:
        logger.warning("%d demographic records have no sex recorded", n_missing_sex)
    counts = out["age_rule"].value_counts().to_dict()
    logger.info("Parsed %d ages by rule: %s", len(out), counts)
    return out


def _sex_for_row(value, subject: str) -> str | None:
    try:
        return normalize_sex(value)
    except ValueError as e:
        raise ValueError(f"Subject {subject}: {e}") from e
