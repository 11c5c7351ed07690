# coefficients.py
# Posterior coefficient table for one fitted wave
import re

import numpy as np
import pandas as pd
import arviz as az

from terror_waves.config import HDI_PROB, TERMS, GROUP_TRAVEL_TIME, GROUP_BORDER_DIST
from terror_waves.models.joint_wave_model import REPORTED_VARS

RESPONSE_LABELS = {
    GROUP_TRAVEL_TIME: "log travel time",
    GROUP_BORDER_DIST: "log border distance",
}

_INDEX = re.compile(r"^(\w+)\[(.+)\]$")


def label_for(parameter: str, key: str) -> str:
    """Human-readable label, e.g. ('beta', 'x_tt') -> 'xcoord -> log travel time'."""
    if parameter == "beta":
        group, src = TERMS[key]
        return f"{src} -> {RESPONSE_LABELS[group]}"
    if parameter == "group_intercept":
        return f"Intercept ({RESPONSE_LABELS[key]})"
    if parameter == "sigma":
        return f"Residual SD ({RESPONSE_LABELS[key]})"
    return f"{parameter}[{key}]"


def coefficient_table(idata, hdi_prob: float = HDI_PROB) -> pd.DataFrame:
    """
    Mean, sd, HDI bounds and diagnostics for intercepts, slopes and noise scales.

    Columns: parameter, key, group, label, mean, sd, hdi_lower, hdi_upper,
    r_hat, ess_bulk, excludes_zero.
    """
    summ = az.summary(idata, var_names=REPORTED_VARS, hdi_prob=hdi_prob)
    hdi_cols = [c for c in summ.columns if c.startswith("hdi_")]
    lower, upper = hdi_cols[0], hdi_cols[1]

    rows = []
    for name, r in summ.iterrows():
        m = _INDEX.match(name)
        parameter, key = (m.group(1), m.group(2)) if m else (name, "")
        group = TERMS[key][0] if parameter == "beta" else key
        rows.append({
            "parameter": parameter,
            "key": key,
            "group": group,
            "label": label_for(parameter, key),
            "mean": float(r["mean"]),
            "sd": float(r["sd"]),
            "hdi_lower": float(r[lower]),
            "hdi_upper": float(r[upper]),
            "r_hat": float(r.get("r_hat", np.nan)),
            "ess_bulk": float(r.get("ess_bulk", np.nan)),
        })

    table = pd.DataFrame(rows)
    table["excludes_zero"] = (table["hdi_lower"] > 0) | (table["hdi_upper"] < 0)
    table.loc[table["parameter"] == "sigma", "excludes_zero"] = False
    return table


def slopes(table: pd.DataFrame) -> pd.DataFrame:
    return table[table["parameter"] == "beta"].set_index("key")


def with_ols(table: pd.DataFrame, ols: pd.DataFrame) -> pd.DataFrame:
    """Attach OLS reference estimates to the slope rows (NaN elsewhere)."""
    return table.merge(ols, how="left", left_on="key", right_index=True)
