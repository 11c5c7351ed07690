# ols_reference.py
# Per-response OLS fits used as a sanity check next to the Bayesian slopes
# -------------------------------------------------------------------

import logging

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from terror_waves.config import GROUPS, GROUP_RESPONSE, TERMS, COL_X, COL_Y

logger = logging.getLogger(__name__)


def ols_reference(df: pd.DataFrame) -> pd.DataFrame:
    """
    Fit ``log response ~ xcoord + ycoord`` separately for each response group.

    Returns one row per masked term (x_tt, y_tt, x_bd, y_bd) with the OLS
    estimate and its 95% confidence interval, indexed by term.
    """
    rows = []
    for group in GROUPS:
        response = GROUP_RESPONSE[group]
        if len(df) <= 3:
            logger.warning("[ols] %s: %d rows, too few for a reference fit", group, len(df))
            fit = None
        else:
            fit = smf.ols(f"{response} ~ {COL_X} + {COL_Y}", data=df).fit()

        for term, (term_group, src) in TERMS.items():
            if term_group != group:
                continue
            if fit is None:
                rows.append({"term": term, "ols_estimate": np.nan,
                             "ols_ci_lower": np.nan, "ols_ci_upper": np.nan})
                continue
            lo, hi = fit.conf_int(alpha=0.05).loc[src]
            rows.append({
                "term": term,
                "ols_estimate": float(fit.params[src]),
                "ols_ci_lower": float(lo),
                "ols_ci_upper": float(hi),
            })
    return pd.DataFrame(rows).set_index("term")
