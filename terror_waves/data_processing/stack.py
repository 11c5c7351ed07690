# stack.py
# Stack the two responses into one long table with group-masked covariates
# -----------------------------------------------------------------------------
"""
For N incidents the stacked table has 2N rows:

    rows 0..N-1   group = travel_time      response = log_travel_time
                  x_tt, y_tt = xcoord, ycoord;  x_bd, y_bd = NaN
    rows N..2N-1  group = border_distance  response = log_border_dist
                  x_bd, y_bd = xcoord, ycoord;  x_tt, y_tt = NaN

The NaN masking lets one joint fit estimate a separate regression per
response: a masked covariate contributes nothing to the rows of the other
group. ``incident`` keeps the source row index so both halves can be joined
back to the same record.
"""

import numpy as np
import pandas as pd

from terror_waves.config import (
    GROUPS, GROUP_RESPONSE, TERMS, COL_GROUP, COL_RESPONSE,
)
from terror_waves.errors import DataValidationError

COL_INCIDENT = "incident"


def stack_responses(df: pd.DataFrame) -> pd.DataFrame:
    """Build the 2N-row long-format table from a transformed wave subset."""
    needed = list(GROUP_RESPONSE.values()) + sorted({src for _, src in TERMS.values()})
    missing = [c for c in needed if c not in df.columns]
    if missing:
        raise DataValidationError(f"Cannot stack: missing column(s) {', '.join(missing)}")

    n = len(df)
    blocks = []
    for group in GROUPS:
        block = pd.DataFrame({
            COL_INCIDENT: np.arange(n),
            COL_GROUP: group,
            COL_RESPONSE: df[GROUP_RESPONSE[group]].to_numpy(dtype=float),
        })
        for term, (term_group, src) in TERMS.items():
            block[term] = df[src].to_numpy(dtype=float) if term_group == group else np.nan
        blocks.append(block)

    long = pd.concat(blocks, ignore_index=True)
    long[COL_GROUP] = pd.Categorical(long[COL_GROUP], categories=list(GROUPS))
    return long


def check_stacked(long: pd.DataFrame, n_source: int = None) -> None:
    """
    Assert the masking invariants of a stacked table.

    - 2N rows when the source had N rows
    - the response is never null
    - exactly the covariates of the row's own group are non-null
    """
    if n_source is not None and len(long) != len(GROUPS) * n_source:
        raise DataValidationError(
            f"Stacked table has {len(long)} rows, expected {len(GROUPS) * n_source}"
        )
    if long[COL_RESPONSE].isna().any():
        raise DataValidationError("Stacked table has null responses")

    for term, (group, _) in TERMS.items():
        in_group = (long[COL_GROUP] == group).to_numpy()
        present = long[term].notna().to_numpy()
        if not np.array_equal(in_group, present):
            raise DataValidationError(f"Covariate '{term}' is not masked to group '{group}'")


def group_index(long: pd.DataFrame) -> np.ndarray:
    """Integer code (position in GROUPS) of every stacked row."""
    return long[COL_GROUP].cat.codes.to_numpy().astype(int)
