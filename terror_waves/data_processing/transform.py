# transform.py
# log(x + 1) transform of the two response columns
# -----------------------------------------------------------------------------

import logging

import numpy as np
import pandas as pd

from terror_waves.config import (
    COL_TRAVEL_TIME, COL_BORDER_DIST, COL_LOG_TRAVEL_TIME, COL_LOG_BORDER_DIST,
)
from terror_waves.errors import DataValidationError

logger = logging.getLogger(__name__)

# source column -> transformed column
LOG_COLUMNS = {
    COL_TRAVEL_TIME: COL_LOG_TRAVEL_TIME,
    COL_BORDER_DIST: COL_LOG_BORDER_DIST,
}


def log1p_nonnegative(values, name: str = "value") -> np.ndarray:
    """
    log(x + 1) for x >= 0.

    Negative (or non-finite) inputs are rejected rather than turned into NaN,
    so nothing undefined ever reaches the model.
    """
    x = np.asarray(values, dtype=float)
    n_bad = int(np.sum(~np.isfinite(x)))
    if n_bad:
        raise DataValidationError(f"'{name}' has {n_bad} missing or non-finite value(s)")
    n_neg = int(np.sum(x < 0))
    if n_neg:
        raise DataValidationError(
            f"'{name}' has {n_neg} negative value(s) (min={x.min():g}); log(x + 1) needs x >= 0"
        )
    return np.log1p(x)


def add_log_responses(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of ``df`` with log_travel_time / log_border_dist added."""
    out = df.copy()
    for src, dst in LOG_COLUMNS.items():
        if src not in out.columns:
            raise DataValidationError(f"Cannot transform missing column '{src}'")
        out[dst] = log1p_nonnegative(out[src].to_numpy(), name=src)
    logger.debug("[transform] added %s", ", ".join(LOG_COLUMNS.values()))
    return out
