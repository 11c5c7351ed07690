# narrative.py
# Plain-language description of one wave's fitted model
# -------------------------------------------------------------------
"""
Turns the coefficient table and fit statistics into prose. No numbers are
computed here beyond formatting and exp() of the log-scale slopes.
"""

import numpy as np

from terror_waves.config import GROUPS, TERMS, HDI_PROB, GROUP_TRAVEL_TIME, GROUP_BORDER_DIST
from terror_waves.tables.coefficients import RESPONSE_LABELS, slopes

RAW_RESPONSE = {
    GROUP_TRAVEL_TIME: "travel time",
    GROUP_BORDER_DIST: "border distance",
}


def _num(v) -> str:
    return f"{v:.4g}"


def _interval(row, pct) -> str:
    return f"{pct}% HDI {_num(row['hdi_lower'])} to {_num(row['hdi_upper'])}"


def describe_slope(row, hdi_prob: float = HDI_PROB) -> str:
    group, src = TERMS[row["key"]]
    pct = int(round(100 * hdi_prob))
    direction = "positive" if row["mean"] > 0 else "negative"
    factor = float(np.exp(row["mean"]))

    text = (f"The slope of {RESPONSE_LABELS[group]} on {src} is {_num(row['mean'])} "
            f"({_interval(row, pct)}): each unit increase in {src} multiplies "
            f"({RAW_RESPONSE[group]} + 1) by about {factor:.4f}")
    if row["excludes_zero"]:
        text += "; the interval excludes zero, so the association is credibly " + direction + "."
    else:
        text += "; the interval spans zero, so the data do not settle the sign of this effect."
    return text


def describe_group(group, table, hdi_prob: float = HDI_PROB) -> str:
    pct = int(round(100 * hdi_prob))
    rows = table.set_index(["parameter", "key"])
    icpt = rows.loc[("group_intercept", group)]
    sigma = rows.loc[("sigma", group)]
    return (f"The intercept for {RESPONSE_LABELS[group]} is {_num(icpt['mean'])} "
            f"({_interval(icpt, pct)}) and its residual standard deviation is "
            f"{_num(sigma['mean'])} ({_interval(sigma, pct)}).")


def describe_fit(fit, conv=None) -> str:
    text = (f"The joint model was fitted to {fit.n_incidents} incidents "
            f"({fit.n_obs} stacked observations). "
            f"DIC = {fit.dic:.1f} with an effective number of parameters pD = {fit.p_dic:.2f}; "
            f"WAIC = {fit.waic:.1f} (p_waic = {fit.p_waic:.2f}, SE {fit.waic_se:.1f}).")
    if np.isfinite(fit.loo):
        text += f" PSIS-LOO = {fit.loo:.1f} (p_loo = {fit.p_loo:.2f})."
        if fit.n_pareto_bad:
            text += f" {fit.n_pareto_bad} observation(s) have Pareto k above 0.7."
    if conv is not None:
        text += (f" Sampling diagnostics: max R-hat {conv.rhat_max:.3f}, "
                 f"min bulk ESS {conv.ess_bulk_min:.0f}, {conv.divergences} divergent transition(s).")
    return text


def narrate_wave(wave: str, table, fit, conv=None, hdi_prob: float = HDI_PROB) -> str:
    """One paragraph per response group plus a closing paragraph on fit."""
    paragraphs = []
    for group in GROUPS:
        sentences = [describe_group(group, table, hdi_prob)]
        slope_rows = slopes(table).reset_index()
        slope_rows = slope_rows[slope_rows["group"] == group]
        for _, row in slope_rows.iterrows():
            sentences.append(describe_slope(row, hdi_prob))
        paragraphs.append(f"{wave}, {RESPONSE_LABELS[group]}. " + " ".join(sentences))
    paragraphs.append(describe_fit(fit, conv))
    return "\n\n".join(paragraphs)
