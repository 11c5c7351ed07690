import numpy as np
import pytest

from terror_waves.models.joint_wave_model import (
    FitSettings, build_design, build_model, OBS_NAME,
)


def test_design_masks_other_group(stacked):
    d = build_design(stacked, standardize=False)
    n = len(stacked) // 2

    assert d.X.shape == (2 * n, 4)
    np.testing.assert_array_equal(d.X[:n, 2:], 0.0)
    np.testing.assert_array_equal(d.X[n:, :2], 0.0)
    np.testing.assert_array_equal(d.X[:n, 0], stacked["x_tt"].to_numpy()[:n])
    np.testing.assert_array_equal(d.center, 0.0)
    np.testing.assert_array_equal(d.scale, 1.0)


def test_design_standardizes_over_own_group(stacked):
    d = build_design(stacked, standardize=True)
    n = len(stacked) // 2

    np.testing.assert_allclose(d.X[:n, 0].mean(), 0.0, atol=1e-12)
    np.testing.assert_allclose(d.X[:n, 0].std(), 1.0)
    np.testing.assert_allclose(d.X[n:, 3].std(), 1.0)
    np.testing.assert_array_equal(d.X[n:, 0], 0.0)
    np.testing.assert_allclose(d.center[0], stacked["x_tt"].mean())


def test_design_membership_and_groups(design):
    np.testing.assert_array_equal(design.membership, [[1, 1, 0, 0], [0, 0, 1, 1]])
    assert design.terms == ["x_tt", "y_tt", "x_bd", "y_bd"]
    assert set(np.unique(design.group_idx)) == {0, 1}


def test_constant_covariate_left_unscaled(scenario_subset):
    from terror_waves.data_processing.stack import stack_responses
    from terror_waves.data_processing.transform import add_log_responses

    flat = scenario_subset.assign(ycoord=5.0)
    d = build_design(stack_responses(add_log_responses(flat)))
    assert d.scale[1] == 1.0
    assert np.isfinite(d.X).all()


def test_model_structure(design):
    mdl = build_model(design, FitSettings())

    free = {rv.name for rv in mdl.free_RVs}
    assert free == {"group_effect", "beta_std", "sigma"}
    assert {"beta", "group_intercept"} <= {d.name for d in mdl.deterministics}
    assert [rv.name for rv in mdl.observed_RVs] == [OBS_NAME]
    assert list(mdl.coords["group"]) == ["travel_time", "border_distance"]
    assert len(mdl.coords["obs_id"]) == design.n_obs

    logp = mdl.compile_logp()(mdl.initial_point())
    assert np.isfinite(logp)


def test_fixed_group_precision_sets_prior_scale(design):
    import pymc as pm

    mdl = build_model(design, FitSettings(group_precision=0.01))
    draws = pm.draw(mdl["group_effect"], draws=4000, random_seed=1)
    assert draws.std() == pytest.approx(10.0, rel=0.1)
