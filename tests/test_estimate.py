import numpy as np
import pytest

from sensible_mle import MLESettings, Model
from sensible_mle.util import (
    grid_distance,
    observation_count,
    uncertainty_to_string,
    vector_bounded,
)

uncertainties = pytest.importorskip("uncertainties")


def gaussian_loglike(params, data):
    mu, log_sigma = params.vector
    sigma = np.exp(log_sigma)
    z = (data - mu) / sigma
    return float(-0.5 * np.sum(z * z) - data.size * log_sigma)


def gaussian_score(params, data):
    mu, log_sigma = params.vector
    sigma2 = np.exp(2.0 * log_sigma)
    r = data - mu
    return np.array([np.sum(r) / sigma2, np.sum(r * r) / sigma2 - data.size])


def fit():
    rng = np.random.default_rng(1)
    data = rng.normal(-1.0, 2.0, size=200)
    model = Model.from_log_likelihood(
        gaussian_loglike, param_names=("mu", "log_sigma"), name="gaussian"
    ).with_score(gaussian_score)
    return model.estimate(data, method="bfgs", starting_pt=[0.0, 0.0], tolerance=1e-6), data


def test_u_uses_covariance():
    est, _ = fit()
    assert est.covariance.status == "ok"
    mu_u, ls_u = est.u
    cov = np.array(uncertainties.covariance_matrix([mu_u, ls_u]), dtype=float)
    np.testing.assert_allclose(cov, est.cov, rtol=1e-6, atol=1e-9)
    assert mu_u.nominal_value == pytest.approx(est.theta[0])


def test_summary_lists_parameters():
    est, data = fit()
    text = est.summary()
    assert text.startswith("gaussian: converged")
    assert "mu = " in text
    assert "log_sigma = " in text
    assert est.theta[0] == pytest.approx(data.mean(), abs=1e-5)


def test_generated_names_for_structured_parameters():
    def loglike(params, data):
        return -float(np.sum(params.pack() ** 2))

    model = Model.from_log_likelihood(loglike, vector_size=1, rows=1, cols=2)
    est = model.estimate(None, method="simplex")
    assert est.names == ("v0", "m0_0", "m0_1")
    assert "covariance: unsupported" in est.summary()


def test_param_names_must_match_size():
    with pytest.raises(ValueError, match="3 parameter names for 2"):
        Model.from_log_likelihood(gaussian_loglike, vector_size=2).named("a", "b", "c")


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"step_size": 0.0}, "step_size"),
        ({"tolerance": -1.0}, "tolerance"),
        ({"mu_t": 1.0}, "mu_t"),
        ({"iters_fixed_T": 0}, "iters_fixed_T"),
        ({"k": 0.0}, "k must be"),
    ],
)
def test_settings_validation(kwargs, match):
    with pytest.raises(ValueError, match=match):
        MLESettings(**kwargs)


def test_settings_default_start_per_method():
    s = MLESettings()
    assert s.start(3, 0.1).tolist() == [0.1, 0.1, 0.1]
    s = MLESettings(starting_pt=(1.0, 2.0))
    assert s.start(2, 0.0).tolist() == [1.0, 2.0]


def test_util_helpers():
    assert vector_bounded(np.array([1.0, -1e4]), 1e4)
    assert not vector_bounded(np.array([1.0, 1e5]), 1e4)
    assert not vector_bounded(np.array([np.inf]), 1e4)
    assert vector_bounded(np.array([]), 1.0)
    assert grid_distance(np.array([0.0, 1.0]), np.array([2.0, -1.0])) == 4.0
    assert observation_count(np.zeros((7, 2))) == 7
    assert observation_count([1, 2, 3]) == 3
    assert observation_count(None) == 1
    assert observation_count(3.0) == 1


def test_util_has_no_unused_float_coercion():
    from sensible_mle import util

    assert not hasattr(util, "safe_float")


@pytest.mark.parametrize(
    "x, err, precision, expected",
    [
        (12.34567, 0.00123, 1, "12.346(1)"),
        (12.34567, 0.00123, "auto", "12.3457(12)"),
        (-0.0000123456, 0.0000001234, 1, "-1.23(1)e-5"),
        (1.0, 0.0, 2, "1(0)"),
        (float("nan"), 1.0, 1, "NaN"),
    ],
)
def test_uncertainty_to_string(x, err, precision, expected):
    assert uncertainty_to_string(x, err, precision) == expected
