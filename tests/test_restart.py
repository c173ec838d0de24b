import math

import numpy as np
import pytest

from sensible_mle import RESTART_BOUND, Estimate, MLESettings, Model, restart_settings
from sensible_mle.covariance import Covariance


C = np.array([1.0, -2.0])


def quadratic_loglike(params, data):
    d = params.vector - data
    return -float(d @ d)


def quadratic_score(params, data):
    return -2.0 * (params.vector - data)


def make_model():
    return Model.from_log_likelihood(quadratic_loglike, vector_size=2).with_score(
        quadratic_score
    )


def fake_estimate(model, theta, loglike, settings=None):
    return Estimate(
        model=model,
        data=C,
        settings=settings or MLESettings(),
        parameters=model.unpack(theta),
        log_likelihood=loglike,
        status=1,
        state="max_iterations",
        covariance=Covariance(),
    )


def test_restart_settings_start_from_bounded_result():
    model = make_model()
    est = fake_estimate(model, [3.0, 4.0], -1.0, MLESettings(starting_pt=[0.0, 0.0]))
    s = restart_settings(est, method="bfgs", scale=0.1)
    assert s.method == "bfgs"
    assert s.starting_pt.tolist() == [3.0, 4.0]
    assert s.tolerance == pytest.approx(1e-4)
    assert s.step_size == pytest.approx(0.1)
    # prior settings are untouched
    assert est.settings.method == "cg"


def test_restart_settings_fall_back_to_prior_start():
    model = make_model()
    settings = MLESettings(starting_pt=[0.5, 0.5])
    est = fake_estimate(model, [RESTART_BOUND * 10, 0.0], -1.0, settings)
    s = restart_settings(est)
    assert s.starting_pt.tolist() == [0.5, 0.5]
    assert s.method == "cg"

    est = fake_estimate(model, [np.nan, 0.0], -1.0, MLESettings())
    assert restart_settings(est).starting_pt is None


def test_restart_settings_rejects_bad_scale():
    est = fake_estimate(make_model(), [0.0, 0.0], -1.0)
    with pytest.raises(ValueError, match="scale"):
        restart_settings(est, scale=0.0)


def test_restart_improves_poor_estimate():
    model = make_model()
    poor = fake_estimate(model, [0.0, 0.0], quadratic_loglike(model.unpack([0.0, 0.0]), C))
    better = poor.restart(method="bfgs")
    assert better is not poor
    assert better.success
    assert better.log_likelihood > poor.log_likelihood
    assert np.allclose(better.theta, C, atol=1e-3)


def test_restart_keeps_prior_estimate_when_not_better():
    model = make_model()
    best = model.estimate(C, method="bfgs", tolerance=1e-8)
    # a restart from the optimum cannot strictly improve on it
    again = best.restart(method="simplex", scale=100.0)
    assert again is best


def test_restart_keeps_infinite_prior():
    model = make_model()
    est = fake_estimate(model, [0.0, 0.0], math.inf)
    assert est.restart(method="bfgs") is est


def test_restart_replaces_nan_prior_with_finite_result():
    model = make_model()
    est = fake_estimate(model, [0.0, 0.0], math.nan)
    again = est.restart(method="bfgs")
    assert again is not est
    assert math.isfinite(again.log_likelihood)
    assert np.allclose(again.theta, C, atol=1e-3)


def test_restart_rejects_unbounded_result():
    def runaway(params, data):
        return float(params.vector[0])

    model = Model.from_log_likelihood(runaway, vector_size=1).with_score(
        lambda params, data: np.array([1.0])
    )
    est = fake_estimate(model, [0.0], 0.0)
    # simplex walks off beyond RESTART_BOUND on an unbounded likelihood
    again = est.restart(method="simplex", scale=1e3)
    assert again is est
