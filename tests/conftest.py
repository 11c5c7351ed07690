import numpy as np
import pandas as pd
import pytest
import arviz as az

from terror_waves.config import GROUPS, TERMS
from terror_waves.data_processing.stack import stack_responses
from terror_waves.data_processing.transform import add_log_responses
from terror_waves.analysis.diagnostics import gaussian_loglik
from terror_waves.models.joint_wave_model import build_design, OBS_NAME


@pytest.fixture
def scenario_subset():
    """3 incidents whose transformed responses are known exactly."""
    e = np.e
    return pd.DataFrame({
        "Region": ["Western Europe"] * 3,
        "xcoord": [1.0, 2.0, 4.0],
        "ycoord": [10.0, 20.0, 25.0],
        "Travel_Time_Average": [0.0, e - 1.0, e ** 2 - 1.0],
        "B_Dist_km": [0.0, 1.0, 3.0],
        "Third_Wave": [True, True, True],
        "Fourth_Wave": [False, False, False],
    })


def make_incidents(n=40, seed=7):
    """Synthetic incidents with a clear log-linear travel-time trend in xcoord."""
    rng = np.random.default_rng(seed)
    x = rng.uniform(0.0, 2.0, n)
    y = rng.uniform(40.0, 55.0, n)
    log_tt = 1.0 + 0.5 * x + rng.normal(0.0, 0.1, n)
    log_bd = 3.0 - 0.05 * (y - 45.0) + rng.normal(0.0, 0.2, n)
    return pd.DataFrame({
        "Region": "Western Europe",
        "xcoord": x,
        "ycoord": y,
        "Travel_Time_Average": np.expm1(log_tt),
        "B_Dist_km": np.expm1(log_bd),
        "Third_Wave": rng.random(n) < 0.6,
        "Fourth_Wave": rng.random(n) < 0.6,
    })


@pytest.fixture
def incidents():
    return make_incidents()


@pytest.fixture
def incidents_csv(tmp_path, incidents):
    other = incidents.head(5).assign(Region="South America")
    df = pd.concat([incidents, other], ignore_index=True)
    df["Third_Wave"] = np.where(df["Third_Wave"], "TRUE", "FALSE")
    df["Fourth_Wave"] = df["Fourth_Wave"].astype(int)
    path = tmp_path / "incidents.csv"
    df.to_csv(path, index=False)
    return path


@pytest.fixture
def stacked(incidents):
    return stack_responses(add_log_responses(incidents))


@pytest.fixture
def design(stacked):
    return build_design(stacked, standardize=True)


def fake_idata(design, chains=2, draws=100, spread=0.05, seed=3,
               group_effect=(2.0, 3.0), beta_std=(0.3, 0.0, 0.0, -0.2), sigma=(0.1, 0.2),
               wide_term=1):
    """
    InferenceData shaped like a real fit, without running the sampler.

    Draws scatter ``spread`` around the given values (beta_std[wide_term] gets
    a wide spread so its interval spans zero, None turns that off); spread=0 gives
    a degenerate posterior.
    """
    rng = np.random.default_rng(seed)
    shape = (chains, draws)

    def around(values, sd):
        values = np.asarray(values, dtype=float)
        return values + sd * rng.standard_normal(shape + values.shape)

    ge = around(group_effect, spread)
    bs = around(beta_std, spread)
    if spread and wide_term is not None:
        bs[..., wide_term] = 0.5 * rng.standard_normal(shape)
    sg = np.abs(around(sigma, spread * 0.1))

    beta = bs / design.scale
    shift = np.einsum("gt,cdt->cdg", design.membership, bs * design.center / design.scale)
    ll = gaussian_loglik(ge, bs, sg, design)

    coords = {"group": list(GROUPS), "term": list(TERMS), "obs_id": np.arange(design.n_obs)}
    dims = {
        "group_effect": ["group"], "beta_std": ["term"], "sigma": ["group"],
        "beta": ["term"], "group_intercept": ["group"], OBS_NAME: ["obs_id"],
    }
    return az.from_dict(
        posterior={"group_effect": ge, "beta_std": bs, "sigma": sg,
                   "beta": beta, "group_intercept": ge - shift},
        log_likelihood={OBS_NAME: ll},
        coords=coords,
        dims=dims,
    )


@pytest.fixture
def idata(design):
    return fake_idata(design)


@pytest.fixture
def make_idata():
    return fake_idata


@pytest.fixture
def incidents_factory():
    return make_incidents
