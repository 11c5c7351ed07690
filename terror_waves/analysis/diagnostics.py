# diagnostics.py
# =============================== Fit statistics & convergence =============================
"""
Model-comparison statistics and sampler diagnostics for one fitted wave.

1. DIC (Spiegelhalter): rebuilt from posterior draws + the design matrix.
       D(theta) = -2 sum_i log p(y_i | theta)
       Dbar     = mean over draws of D(theta_s)
       pD       = Dbar - D(theta_bar)          (theta_bar = posterior mean)
       DIC      = Dbar + pD
2. WAIC on the deviance scale (ArviZ), with p_waic.
3. PSIS-LOO (ArviZ), with the number of Pareto k > 0.7.
4. Convergence: max R-hat, min bulk ESS, divergences, mean BFMI.
"""

import logging
import warnings
from dataclasses import dataclass, asdict

import numpy as np
import arviz as az
from scipy import stats

from terror_waves import config
from terror_waves.errors import ModelFitError
from terror_waves.models.joint_wave_model import OBS_NAME, SAMPLED_VARS

logger = logging.getLogger(__name__)


@dataclass
class FitStatistics:
    wave: str
    n_incidents: int
    n_obs: int
    dic: float
    p_dic: float
    waic: float
    p_waic: float
    waic_se: float
    loo: float = np.nan
    p_loo: float = np.nan
    n_pareto_bad: int = 0

    def as_dict(self):
        return asdict(self)


@dataclass
class Convergence:
    rhat_max: float
    ess_bulk_min: float
    divergences: int
    bfmi_mean: float

    def as_dict(self):
        return asdict(self)


# ------------------------------- helpers --------------------------------------
def _ic_field(ic, *names):
    """First field present on an ELPDData (names changed across ArviZ versions)."""
    for name in names:
        if name in ic.index:
            return float(ic[name])
    raise AttributeError(f"None of {names} found in information criterion")


def gaussian_loglik(group_effect, beta_std, sigma, design) -> np.ndarray:
    """
    Pointwise Gaussian log-likelihood.

    group_effect : (..., G)
    beta_std     : (..., T)
    sigma        : (..., G)
    returns      : (..., N)
    """
    gi = design.group_idx
    mu = group_effect[..., gi] + np.einsum("...t,nt->...n", beta_std, design.X)
    return stats.norm.logpdf(design.y, loc=mu, scale=sigma[..., gi])


def posterior_loglik(idata, design) -> np.ndarray:
    """(chain, draw, obs) log-likelihood from the posterior draws."""
    post = idata.posterior
    return gaussian_loglik(
        post["group_effect"].values,
        post["beta_std"].values,
        post["sigma"].values,
        design,
    )


# ------------------------------- DIC ------------------------------------------
def compute_dic(idata, design) -> dict:
    post = idata.posterior
    ll = posterior_loglik(idata, design)                 # (C, D, N)
    d_bar = float(np.mean(-2.0 * ll.sum(axis=-1)))

    theta_bar = {v: post[v].mean(("chain", "draw")).values for v in SAMPLED_VARS}
    ll_hat = gaussian_loglik(theta_bar["group_effect"], theta_bar["beta_std"],
                             theta_bar["sigma"], design)
    d_hat = float(-2.0 * ll_hat.sum())

    p_d = d_bar - d_hat
    return {"dic": d_bar + p_d, "p_dic": p_d, "d_bar": d_bar, "d_hat": d_hat}


# ------------------------------- WAIC / LOO -----------------------------------
def compute_waic(idata) -> dict:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        ic = az.waic(idata, var_name=OBS_NAME, scale="deviance")
    return {
        "waic": _ic_field(ic, "elpd_waic", "waic"),
        "p_waic": _ic_field(ic, "p_waic"),
        "waic_se": _ic_field(ic, "se", "waic_se"),
    }


def compute_loo(idata) -> dict:
    """PSIS-LOO on the deviance scale; NaN fields if ArviZ cannot compute it."""
    try:
        with np.errstate(over="ignore"), warnings.catch_warnings():
            warnings.simplefilter("ignore")
            ic = az.loo(idata, var_name=OBS_NAME, pointwise=True, scale="deviance")
    except (TypeError, ValueError) as e:
        logger.warning("[loo] failed (%s); LOO left empty", e)
        return {"loo": np.nan, "p_loo": np.nan, "n_pareto_bad": 0}

    pk = np.asarray(getattr(ic, "pareto_k", np.array([])))
    n_bad = int((pk > config.PARETO_K_BAD).sum()) if pk.size else 0
    if n_bad:
        logger.warning("[loo] %d observation(s) with Pareto k > %.1f", n_bad, config.PARETO_K_BAD)
    return {
        "loo": _ic_field(ic, "elpd_loo", "loo"),
        "p_loo": _ic_field(ic, "p_loo"),
        "n_pareto_bad": n_bad,
    }


def compute_fit_statistics(idata, design, wave: str, n_incidents: int) -> FitStatistics:
    dic = compute_dic(idata, design)
    waic = compute_waic(idata)
    loo = compute_loo(idata)

    fit = FitStatistics(
        wave=wave,
        n_incidents=int(n_incidents),
        n_obs=int(design.n_obs),
        dic=dic["dic"], p_dic=dic["p_dic"],
        waic=waic["waic"], p_waic=waic["p_waic"], waic_se=waic["waic_se"],
        loo=loo["loo"], p_loo=loo["p_loo"], n_pareto_bad=loo["n_pareto_bad"],
    )
    required = {"DIC": fit.dic, "pD": fit.p_dic, "WAIC": fit.waic, "p_waic": fit.p_waic}
    bad = [k for k, v in required.items() if not np.isfinite(v)]
    if bad:
        raise ModelFitError(f"non-finite fit statistic(s): {', '.join(bad)}", wave=wave)

    logger.info("[check] %s: DIC = %.1f (pD %.1f) | WAIC = %.1f (p_waic %.1f)",
                wave, fit.dic, fit.p_dic, fit.waic, fit.p_waic)
    return fit


# ------------------------------- convergence ----------------------------------
def convergence_summary(idata, var_names=None) -> Convergence:
    var_names = var_names or SAMPLED_VARS
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        rhat_max = float(np.nanmax(az.rhat(idata, var_names=var_names).to_array().values))
        ess_min = float(np.nanmin(az.ess(idata, var_names=var_names, method="bulk").to_array().values))

    divergences = 0
    bfmi_mean = np.nan
    if "sample_stats" in idata.groups():
        ss = idata.sample_stats
        if "diverging" in ss:
            divergences = int(np.asarray(ss["diverging"]).sum())
        if "energy" in ss:
            bfmi_mean = float(np.nanmean(np.asarray(az.bfmi(idata))))

    return Convergence(rhat_max=rhat_max, ess_bulk_min=ess_min,
                       divergences=divergences, bfmi_mean=bfmi_mean)


def check_convergence(conv: Convergence, rhat_max=config.RHAT_MAX, wave: str = None) -> None:
    """Raise ModelFitError when R-hat exceeds ``rhat_max``; warn on the softer checks."""
    logger.info("[check] %s: max R-hat = %.3f | min ESS(bulk) = %.0f | divergences = %d",
                wave or "model", conv.rhat_max, conv.ess_bulk_min, conv.divergences)
    if rhat_max is not None and not conv.rhat_max <= rhat_max:
        raise ModelFitError(
            f"chains did not converge (max R-hat {conv.rhat_max:.3f} > {rhat_max})", wave=wave
        )
    if conv.divergences:
        logger.warning("[check] %s: %d divergent transition(s)", wave, conv.divergences)
    if np.isfinite(conv.ess_bulk_min) and conv.ess_bulk_min < config.ESS_MIN:
        logger.warning("[check] %s: min bulk ESS %.0f below %d", wave, conv.ess_bulk_min, config.ESS_MIN)
