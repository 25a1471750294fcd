"""Read the Theophylline reference dataset and the dm.csv demographics supplement."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from config import DM_CSV_PATH, REFERENCE_DATASET

logger = logging.getLogger(__name__)

# Source column -> pipeline column
REFERENCE_COLUMNS = {
    "Subject": "subject",
    "Wt": "weight",
    "Dose": "dose",
    "Time": "time",
    "conc": "conc",
}
DM_COLUMNS = {
    "SUBJECT": "subject",
    "SEX": "sex",
    "Age": "age_raw",
}


def normalize_subject_id(value) -> str | None:
    """Canonical text form of a subject identifier.

    Examples: 1 -> "1", "1.0" -> "1", " 07 " -> "7", "S-01" -> "S-01"
    """
    if pd.isna(value):
        return None
    s = str(value).strip()
    try:
        f = float(s)
    except ValueError:
        return s
    if f.is_integer():
        return str(int(f))
    return s


def _read_csv(path: Path, **kwargs) -> pd.DataFrame:
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")
    try:
        return pd.read_csv(path, **kwargs)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValueError(f"Malformed CSV {path}: {e}") from e


def _require_columns(df: pd.DataFrame, expected: list[str], path: Path) -> None:
    missing = [c for c in expected if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns in {path.name}: {missing}")


def load_reference_dataset(path: Path | str | None = None) -> pd.DataFrame:
    """Load the concentration-time observations (one row per sample)."""
    path = Path(path) if path is not None else REFERENCE_DATASET
    df = _read_csv(path)
    _require_columns(df, list(REFERENCE_COLUMNS), path)

    df = df[list(REFERENCE_COLUMNS)].rename(columns=REFERENCE_COLUMNS)
    df["subject"] = df["subject"].map(normalize_subject_id)
    n_blank = int(df["subject"].isna().sum())
    if n_blank:
        raise ValueError(f"{n_blank} rows without a subject id in {path.name}")
    for col in ("weight", "dose", "time", "conc"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    logger.info("Loaded %d observations for %d subjects from %s",
                len(df), df["subject"].nunique(), path.name)
    return df


def resolve_dm_path(path: Path | str | None = None) -> Path:
    """Explicit path wins; otherwise ./dm.csv (or PK_DM_CSV). Existence is checked on read."""
    if path is not None:
        return Path(path)
    return DM_CSV_PATH


def load_demographics(path: Path | str | None = None) -> pd.DataFrame:
    """Load the raw demographics table. All columns are kept as text."""
    path = resolve_dm_path(path)
    df = _read_csv(path, dtype=str, keep_default_na=True)
    _require_columns(df, list(DM_COLUMNS), path)

    df = df[list(DM_COLUMNS)].rename(columns=DM_COLUMNS)
    df["subject"] = df["subject"].map(normalize_subject_id)

    logger.info("Loaded %d demographic records from %s", len(df), path.name)
    return df
