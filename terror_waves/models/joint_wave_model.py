# joint_wave_model.py
# Joint Gaussian model for the stacked travel-time / border-distance table
# -----------------------------------------------------------------------------
"""
One fit, two regressions.

Structure (g = response group, t = group-masked term):

    group_effect[g] ~ Normal(0, 1/sqrt(GROUP_PRECISION))   <- fixed precision, not estimated
    beta_std[t]     ~ Normal(0, 1/sqrt(BETA_PRECISION))
    sigma[g]        ~ HalfNormal(SIGMA_SD)                  <- one likelihood per response

    mu_i = group_effect[g_i] + sum_t X_it * beta_std[t]
    y_i  ~ Normal(mu_i, sigma[g_i])

X holds the masked covariates (x_tt, y_tt, x_bd, y_bd). Masked cells are 0,
so each row only sees the slopes of its own group. Covariates are centered and
scaled over their non-masked rows (optional); the deterministics ``beta`` and
``group_intercept`` undo that so reported coefficients are per original unit.

There is no global intercept: with a fixed, very small precision the group
effect plays the role of a free group-specific intercept without shrinkage
between the two responses.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import pymc as pm
import pytensor.tensor as pt
from pymc.exceptions import SamplingError

from terror_waves import config
from terror_waves.config import GROUPS, TERMS, COL_RESPONSE
from terror_waves.data_processing.stack import group_index
from terror_waves.errors import ModelFitError

logger = logging.getLogger(__name__)

OBS_NAME = "response_obs"
SAMPLED_VARS = ["group_effect", "beta_std", "sigma"]
REPORTED_VARS = ["group_intercept", "beta", "sigma"]


@dataclass
class FitSettings:
    draws: int = config.DRAWS
    tune: int = config.TUNE
    chains: int = config.CHAINS
    cores: int = config.CORES
    target_accept: float = config.TARGET_ACCEPT
    random_seed: int = config.RANDOM_SEED
    nuts_sampler: str = config.NUTS_SAMPLER
    group_precision: float = config.GROUP_PRECISION
    beta_precision: float = config.BETA_PRECISION
    sigma_sd: float = config.SIGMA_SD
    standardize: bool = config.STANDARDIZE_COVARIATES
    rhat_max: float = config.RHAT_MAX   # None disables the convergence gate
    progressbar: bool = False


@dataclass
class DesignMatrix:
    X: np.ndarray            # (2N, T) masked cells are 0
    y: np.ndarray            # (2N,)
    group_idx: np.ndarray    # (2N,) position in GROUPS
    center: np.ndarray       # (T,)
    scale: np.ndarray        # (T,)
    membership: np.ndarray   # (G, T) 1 where term t belongs to group g
    terms: list = field(default_factory=lambda: list(TERMS))

    @property
    def n_obs(self):
        return self.y.shape[0]


def build_design(long: pd.DataFrame, standardize: bool = True) -> DesignMatrix:
    """Masked design matrix from a stacked table (see data_processing.stack)."""
    terms = list(TERMS)
    raw = long[terms].to_numpy(dtype=float)         # NaN where masked
    present = np.isfinite(raw)

    center = np.zeros(len(terms))
    scale = np.ones(len(terms))
    if standardize:
        for j, term in enumerate(terms):
            col = raw[present[:, j], j]
            if col.size == 0:
                continue
            center[j] = col.mean()
            sd = col.std()
            if sd > 0:
                scale[j] = sd
            else:
                logger.warning("[design] '%s' is constant within its group; left unscaled", term)

    X = np.where(present, (raw - center) / scale, 0.0)

    membership = np.zeros((len(GROUPS), len(terms)))
    for j, term in enumerate(terms):
        membership[GROUPS.index(TERMS[term][0]), j] = 1.0

    return DesignMatrix(
        X=X,
        y=long[COL_RESPONSE].to_numpy(dtype=float),
        group_idx=group_index(long),
        center=center,
        scale=scale,
        membership=membership,
        terms=terms,
    )


def build_model(design: DesignMatrix, settings: FitSettings = None) -> pm.Model:
    settings = settings or FitSettings()
    coords = {
        "group": list(GROUPS),
        "term": design.terms,
        "obs_id": np.arange(design.n_obs),
    }
    gi = design.group_idx

    with pm.Model(coords=coords) as mdl:
        # Group intercepts: iid effect with fixed precision
        group_sd = 1.0 / np.sqrt(settings.group_precision)
        group_effect = pm.Normal("group_effect", 0.0, group_sd, dims="group")

        # Group-masked slopes (standardized scale)
        beta_sd = 1.0 / np.sqrt(settings.beta_precision)
        beta_std = pm.Normal("beta_std", 0.0, beta_sd, dims="term")

        # One Gaussian likelihood per response group
        sigma = pm.HalfNormal("sigma", settings.sigma_sd, dims="group")

        mu = group_effect[gi] + pt.dot(design.X, beta_std)
        pm.Normal(OBS_NAME, mu=mu, sigma=sigma[gi], observed=design.y, dims="obs_id")

        # Back on the original covariate scale
        pm.Deterministic("beta", beta_std / design.scale, dims="term")
        shift = pt.dot(design.membership, beta_std * design.center / design.scale)
        pm.Deterministic("group_intercept", group_effect - shift, dims="group")

    return mdl


def sample_model(mdl: pm.Model, settings: FitSettings = None, wave: str = None):
    """Run NUTS and return InferenceData with a log_likelihood group."""
    settings = settings or FitSettings()
    logger.info(
        "[fit] %s: draws=%d tune=%d chains=%d sampler=%s",
        wave or "model", settings.draws, settings.tune, settings.chains, settings.nuts_sampler,
    )
    try:
        with mdl:
            idata = pm.sample(
                draws=settings.draws, tune=settings.tune,
                chains=settings.chains, cores=settings.cores,
                target_accept=settings.target_accept,
                nuts_sampler=settings.nuts_sampler,
                random_seed=settings.random_seed,
                progressbar=settings.progressbar,
                return_inferencedata=True,
                idata_kwargs=dict(log_likelihood=True),
            )
    except ImportError as e:
        raise ModelFitError(
            f"NUTS backend '{settings.nuts_sampler}' is not available ({e})", wave=wave
        ) from e
    except (SamplingError, FloatingPointError, ValueError, RuntimeError) as e:
        raise ModelFitError(f"sampling failed: {e}", wave=wave) from e
    return idata


def fit_wave_model(long: pd.DataFrame, settings: FitSettings = None, wave: str = None):
    """
    Fit the joint model to one stacked wave table.

    Returns
    -------
    (idata, design) : az.InferenceData, DesignMatrix
    """
    settings = settings or FitSettings()
    design = build_design(long, standardize=settings.standardize)
    mdl = build_model(design, settings)
    idata = sample_model(mdl, settings, wave=wave)
    return idata, design
