# pipeline.py
# Per-wave pipeline: transform -> stack -> fit -> statistics -> narrative
# -----------------------------------------------------------------------------
"""
Each wave is run on its own; nothing is shared between runs, so a failure in
one wave (empty subset, negative values, sampler trouble) is recorded and the
other wave still reports.
"""

import logging
from dataclasses import dataclass

import pandas as pd

from terror_waves.analysis.diagnostics import (
    compute_fit_statistics, convergence_summary, check_convergence,
)
from terror_waves.analysis.narrative import narrate_wave
from terror_waves.analysis.ols_reference import ols_reference
from terror_waves.data_processing.load_incidents import validate_wave_subset
from terror_waves.data_processing.stack import stack_responses, check_stacked
from terror_waves.data_processing.transform import add_log_responses
from terror_waves.errors import TerrorWavesError
from terror_waves.models.joint_wave_model import FitSettings, fit_wave_model
from terror_waves.tables.coefficients import coefficient_table, with_ols
from terror_waves.config import HDI_PROB

logger = logging.getLogger(__name__)


@dataclass
class WaveResult:
    wave: str
    transformed: pd.DataFrame
    stacked: pd.DataFrame
    idata: object
    table: pd.DataFrame
    fit: object
    convergence: object
    narrative: str


def prepare_wave(subset: pd.DataFrame, wave: str = ""):
    """Validate, log-transform and stack one wave subset; returns (transformed, stacked)."""
    validate_wave_subset(subset, wave)
    transformed = add_log_responses(subset)
    stacked = stack_responses(transformed)
    check_stacked(stacked, n_source=len(transformed))
    logger.info("[stack] %s: %d incidents -> %d stacked rows", wave, len(transformed), len(stacked))
    return transformed, stacked


def run_wave(wave: str, subset: pd.DataFrame, settings: FitSettings = None,
             hdi_prob: float = HDI_PROB) -> WaveResult:
    settings = settings or FitSettings()
    transformed, stacked = prepare_wave(subset, wave)

    idata, design = fit_wave_model(stacked, settings, wave=wave)

    conv = convergence_summary(idata)
    check_convergence(conv, rhat_max=settings.rhat_max, wave=wave)
    fit = compute_fit_statistics(idata, design, wave=wave, n_incidents=len(transformed))

    table = with_ols(coefficient_table(idata, hdi_prob=hdi_prob), ols_reference(transformed))
    text = narrate_wave(wave, table, fit, conv, hdi_prob=hdi_prob)
    logger.info("[OK] %s fitted", wave)

    return WaveResult(
        wave=wave, transformed=transformed, stacked=stacked, idata=idata,
        table=table, fit=fit, convergence=conv, narrative=text,
    )


def run_waves(subsets: dict, settings: FitSettings = None, hdi_prob: float = HDI_PROB):
    """
    Run every wave independently.

    Returns
    -------
    results : dict  wave -> WaveResult
    failures : dict wave -> str (error message)
    """
    results, failures = {}, {}
    for wave, subset in subsets.items():
        try:
            results[wave] = run_wave(wave, subset, settings, hdi_prob=hdi_prob)
        except TerrorWavesError as e:
            logger.error("[fail] %s: %s", wave, e)
            failures[wave] = str(e)
    return results, failures
