# report.py
# Markdown report + CSV tables for all waves
import logging
from datetime import datetime
from pathlib import Path

import pandas as pd
import arviz as az

from terror_waves import config

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["label", "mean", "sd", "hdi_lower", "hdi_upper", "r_hat", "ess_bulk",
                 "ols_estimate"]


def fit_statistics_frame(results: dict) -> pd.DataFrame:
    rows = []
    for wave, res in results.items():
        row = res.fit.as_dict()
        row.update(res.convergence.as_dict())
        rows.append(row)
    return pd.DataFrame(rows).set_index("wave") if rows else pd.DataFrame()


def _coef_block(table: pd.DataFrame, hdi_prob: float) -> str:
    cols = [c for c in TABLE_COLUMNS if c in table.columns]
    shown = table[cols].rename(columns={
        "hdi_lower": f"hdi_{100 * (1 - hdi_prob) / 2:g}%",
        "hdi_upper": f"hdi_{100 * (1 + hdi_prob) / 2:g}%",
        "ols_estimate": "OLS",
    })
    return "```\n" + shown.to_string(index=False, float_format=lambda v: f"{v:.4g}") + "\n```"


def render_report(results: dict, failures: dict = None, region: str = config.REGION,
                  source=None, hdi_prob: float = config.HDI_PROB) -> str:
    failures = failures or {}
    lines = [
        f"# Rapoport waves in {region}: travel time and border distance",
        "",
        f"Generated {datetime.now():%Y-%m-%d %H:%M}" + (f" from `{Path(source).name}`" if source else "") + ".",
        "",
        "Both responses are modelled on the log(x + 1) scale with one joint Gaussian model "
        "per wave: group-specific intercepts (fixed-precision random effect), group-specific "
        "slopes on xcoord and ycoord, and a separate residual SD per response.",
        "",
    ]

    for wave, res in results.items():
        lines += [f"## {wave}", "", _coef_block(res.table, hdi_prob), "", res.narrative, ""]

    for wave, msg in failures.items():
        lines += [f"## {wave}", "", f"**Not reported:** {msg}", ""]

    stats = fit_statistics_frame(results)
    if not stats.empty:
        shown = stats[["n_incidents", "dic", "p_dic", "waic", "p_waic", "loo", "rhat_max"]]
        lines += [
            "## Fit statistics",
            "",
            "```",
            shown.to_string(float_format=lambda v: f"{v:.2f}"),
            "```",
            "",
            "DIC and WAIC are on the deviance scale (lower is better). They can be negative "
            "when the residual SD is small, since the Gaussian density then exceeds 1. Each "
            "wave is fitted to different incidents, so they are not comparable across waves.",
            "",
        ]
    return "\n".join(lines)


def write_outputs(results: dict, report_text: str, out_dir=None,
                  save_posterior: bool = False) -> Path:
    """
    Write the markdown report, per-wave coefficient CSVs and the fit-statistics CSV.

    Layout under ``out_dir`` (default results/): wave_report.md, tables/, posteriors/.
    Returns the report path.
    """
    if out_dir is None:
        config.ensure_dirs()
        out_path = config.PATH_REPORT
        dir_tables, dir_post = config.DIR_TABLES, config.DIR_POSTERIORS
    else:
        out_dir = Path(out_dir)
        out_path = out_dir / config.PATH_REPORT.name
        dir_tables = out_dir / config.DIR_TABLES.name
        dir_post = out_dir / config.DIR_POSTERIORS.name
        dir_tables.mkdir(parents=True, exist_ok=True)
        if save_posterior:
            dir_post.mkdir(parents=True, exist_ok=True)

    for wave, res in results.items():
        path = config.coefficient_table_path(wave, dir_tables)
        res.table.to_csv(path, index=False)
        logger.info("[OK] Saved %s", path)
        if save_posterior:
            nc = config.posterior_path(wave, dir_post)
            az.to_netcdf(res.idata, nc)
            logger.info("[OK] Saved %s", nc)

    stats = fit_statistics_frame(results)
    if not stats.empty:
        stats_path = dir_tables / config.PATH_FIT_STATS.name
        stats.to_csv(stats_path)
        logger.info("[OK] Saved %s", stats_path)

    out_path.write_text(report_text, encoding="utf-8")
    logger.info("[OK] Saved %s", out_path)
    return out_path
