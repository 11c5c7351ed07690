# load_incidents.py
# Load the geocoded incident table, restrict it to one region and split it by wave
# -----------------------------------------------------------------------------
"""
Reads the flat incident file and returns typed, validated frames.

  - Region filter: rows whose ``Region`` equals a fixed string.
  - Wave split: one subset per boolean flag column (Third / Fourth Wave).
    Subsets are independent copies; a record may sit in both.

Any missing or malformed column aborts the load with ``DataValidationError``.
Nothing is repaired silently.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from terror_waves.config import (
    PATH_INCIDENTS, REGION, WAVES,
    COL_REGION, COL_X, COL_Y, COL_TRAVEL_TIME, COL_BORDER_DIST,
)
from terror_waves.errors import DataValidationError

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = (COL_X, COL_Y, COL_TRAVEL_TIME, COL_BORDER_DIST)

_TRUE = {"true", "t", "yes", "y", "1", "1.0"}
_FALSE = {"false", "f", "no", "n", "0", "0.0"}


def required_columns(wave_columns):
    return [COL_REGION, *NUMERIC_COLUMNS, *wave_columns]


def check_columns(df: pd.DataFrame, columns) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataValidationError(
            f"Input table is missing required column(s): {', '.join(missing)} "
            f"(available: {', '.join(map(str, df.columns))})"
        )


def coerce_numeric(s: pd.Series) -> pd.Series:
    """Parse a column as float; values that are present but unparseable are an error."""
    out = pd.to_numeric(s, errors="coerce").astype(float)
    bad = out.isna() & s.notna()
    if bad.any():
        examples = s[bad].astype(str).unique()[:3].tolist()
        raise DataValidationError(
            f"Column '{s.name}' has {int(bad.sum())} non-numeric value(s), e.g. {examples}"
        )
    return out


def coerce_flag(s: pd.Series) -> pd.Series:
    """Parse a wave indicator column as bool (bool, 0/1, true/false, yes/no)."""
    if s.dtype == bool:
        return s
    if s.isna().any():
        raise DataValidationError(f"Wave flag column '{s.name}' has {int(s.isna().sum())} missing value(s)")

    text = s.astype(str).str.strip().str.lower()
    is_true = text.isin(_TRUE)
    is_false = text.isin(_FALSE)
    bad = ~(is_true | is_false)
    if bad.any():
        examples = s[bad].astype(str).unique()[:3].tolist()
        raise DataValidationError(
            f"Wave flag column '{s.name}' has {int(bad.sum())} non-boolean value(s), e.g. {examples}"
        )
    return pd.Series(is_true.to_numpy(), index=s.index, name=s.name)


def load_incidents(path=PATH_INCIDENTS, region: str = REGION, wave_columns=None) -> pd.DataFrame:
    """
    Read the incident file and keep only rows from ``region``.

    Parameters
    ----------
    path : str or Path
        Delimited text file (comma or tab separated).
    region : str
        Exact value of the ``Region`` column to keep.
    wave_columns : iterable of str, optional
        Boolean indicator columns; defaults to the configured waves.

    Returns
    -------
    DataFrame with float coordinate/response columns and bool wave flags,
    index reset to 0..N-1.
    """
    path = Path(path)
    if wave_columns is None:
        wave_columns = list(WAVES.values())
    wave_columns = list(wave_columns)

    if not path.exists():
        raise DataValidationError(f"Input file not found: {path}")

    sep = "\t" if path.suffix.lower() in (".tsv", ".tab") else ","
    df = pd.read_csv(path, sep=sep)
    logger.info("[load] %s: %d rows, %d columns", path.name, len(df), df.shape[1])

    check_columns(df, required_columns(wave_columns))

    region = str(region).strip()
    df = df[df[COL_REGION].astype(str).str.strip() == region].copy()
    if df.empty:
        raise DataValidationError(f"No incidents found for region '{region}'")
    logger.info("[load] region '%s': %d rows", region, len(df))

    for col in NUMERIC_COLUMNS:
        df[col] = coerce_numeric(df[col])
    for col in wave_columns:
        df[col] = coerce_flag(df[col])

    return df.reset_index(drop=True)


def split_waves(df: pd.DataFrame, waves=None) -> dict:
    """
    One subset per wave flag column.

    Returns ``{wave name: DataFrame}`` in the order of ``waves``. Each subset is an
    independent copy; empty subsets are returned as-is and rejected downstream.
    """
    if waves is None:
        waves = WAVES
    check_columns(df, list(waves.values()))

    subsets = {}
    for name, flag in waves.items():
        sub = df[df[flag].astype(bool)].reset_index(drop=True).copy()
        logger.info("[split] %s (%s): %d incidents", name, flag, len(sub))
        subsets[name] = sub
    return subsets


def validate_wave_subset(df: pd.DataFrame, wave: str = "") -> pd.DataFrame:
    """Reject an empty subset or one with missing coordinates/responses."""
    label = f"{wave}: " if wave else ""
    if df.empty:
        raise DataValidationError(f"{label}wave subset is empty")
    check_columns(df, NUMERIC_COLUMNS)

    values = df[list(NUMERIC_COLUMNS)].to_numpy(dtype=float)
    bad = ~np.isfinite(values)
    if bad.any():
        counts = dict(zip(NUMERIC_COLUMNS, bad.sum(axis=0).tolist()))
        counts = {k: v for k, v in counts.items() if v}
        raise DataValidationError(f"{label}missing or non-finite values in {counts}")
    return df
