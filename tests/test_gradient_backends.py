import logging

import numpy as np
import pytest

from sensible_mle import AVAILABLE_METHODS, MLESettings, Model, maximum_likelihood
from sensible_mle.backends import scipy_minimize


C = np.array([1.5, -0.5])


def quadratic_loglike(params, data):
    d = params.vector - data
    return -float(d @ d)


def quadratic_score(params, data):
    return -2.0 * (params.vector - data)


def gaussian_loglike(params, data):
    mu, log_sigma = params.vector
    sigma = np.exp(log_sigma)
    z = (data - mu) / sigma
    return float(-0.5 * np.sum(z * z) - data.size * (log_sigma + 0.5 * np.log(2 * np.pi)))


@pytest.mark.parametrize("method", ["cg", "bfgs", "lbfgs"])
def test_quadratic_converges_with_analytic_score(method):
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2).with_score(
        quadratic_score
    )
    est = model.estimate(C, method=method, starting_pt=[0.0, 0.0], tolerance=1e-6)
    assert est.success
    assert est.status == 0
    assert est.state == "converged"
    assert np.allclose(est.parameters.vector, C, atol=1e-4)
    assert est.log_likelihood == pytest.approx(0.0, abs=1e-8)


@pytest.mark.parametrize("method", ["cg", "bfgs"])
def test_quadratic_converges_with_numerical_gradient(method):
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2)
    est = model.estimate(C, method=method, tolerance=1e-5)
    assert est.success
    assert np.allclose(est.parameters.vector, C, atol=1e-4)


def test_gaussian_mean_and_covariance():
    rng = np.random.default_rng(0)
    data = rng.normal(3.0, 1.0, size=100)

    model = Model.from_log_likelihood(
        gaussian_loglike, param_names=("mu", "log_sigma"), name="gaussian"
    )
    est = maximum_likelihood(data, model, starting_pt=[0.0, 0.0])

    assert est.success
    assert abs(est.parameters.vector[0] - data.mean()) < 0.1
    assert abs(est.parameters.vector[0] - 3.0) < 0.3
    assert est.log_likelihood == pytest.approx(gaussian_loglike(est.parameters, data))

    assert est.covariance.status == "ok"
    assert est.covariance.names == ("mu", "log_sigma")
    assert est.cov.shape == (2, 2)
    assert np.all(np.isfinite(est.cov))
    assert np.all(np.diag(est.cov) > 0.0)
    assert est.stats["n_evaluations"] > 0


def test_trace_buffer_is_cleared_and_settings_untouched():
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2).with_score(
        quadratic_score
    )
    settings = MLESettings(method="bfgs")
    est = model.estimate(C, settings)
    assert est.settings is settings
    assert settings.starting_pt is None


def test_want_cov_false_gives_not_requested():
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2)
    est = model.estimate(C, want_cov=False)
    assert est.covariance.status == "not_requested"
    assert est.cov is None
    assert est.u is None


def test_unknown_method_raises():
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2)
    with pytest.raises(ValueError, match="Unknown method 'newton'"):
        model.estimate(C, method="newton")
    assert "simplex" in AVAILABLE_METHODS


def test_starting_point_length_is_checked():
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2)
    with pytest.raises(ValueError, match="starting_pt has 3 entries"):
        model.estimate(C, starting_pt=[0.0, 0.0, 0.0])


def rosenbrock_loglike(params, data):
    a, b = params.vector
    return -float((1.0 - a) ** 2 + 100.0 * (b - a * a) ** 2)


def rosenbrock_score(params, data):
    a, b = params.vector
    return -np.array([-2.0 * (1.0 - a) - 400.0 * a * (b - a * a), 200.0 * (b - a * a)])


@pytest.mark.parametrize("method", ["cg", "bfgs", "lbfgs"])
def test_iteration_cap_reports_max_iterations(method, monkeypatch):
    monkeypatch.setattr(scipy_minimize, "MAX_ITERATIONS", 2)
    model = Model.from_log_likelihood(rosenbrock_loglike, vector_size=2).with_score(
        rosenbrock_score
    )
    est = model.estimate(
        None, method=method, starting_pt=[-1.2, 1.0], tolerance=1e-8, want_cov=False
    )
    assert est.state == "max_iterations"
    assert est.status == 1
    assert not est.success
    assert est.parameters.vector.shape == (2,)
    assert np.all(np.isfinite(est.parameters.vector))
    assert est.log_likelihood > rosenbrock_loglike(model.unpack([-1.2, 1.0]), None)


def test_one_parameter_gaussian_mean():
    rng = np.random.default_rng(2)
    data = rng.normal(3.0, 1.0, size=100)
    data = data - data.mean() + 3.0

    def loglike(params, data):
        return -0.5 * float(np.sum((data - params.vector[0]) ** 2))

    model = Model.from_log_likelihood(loglike, param_names=("mu",))
    est = maximum_likelihood(data, model, method="cg", starting_pt=[0.0])
    assert est.success
    assert abs(est.parameters.vector[0] - 3.0) < 0.1


def test_max_iterations_is_a_soft_failure():
    # unbounded above: the search runs away without converging
    def runaway(params, data):
        return float(params.vector[0])

    model = Model.from_log_likelihood(runaway, vector_size=1).with_score(
        lambda params, data: np.array([1.0])
    )
    est = model.estimate(None, method="bfgs")
    assert not est.success
    assert est.status == 1
    assert est.state in ("max_iterations", "numerical_failure")


@pytest.mark.parametrize("method", ["root-hybr", "root-broyden1"])
def test_root_finding_on_score(method):
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2).with_score(
        quadratic_score
    )
    est = model.estimate(C, method=method, tolerance=1e-8)
    assert est.success
    assert np.allclose(est.parameters.vector, C, atol=1e-5)
    assert est.covariance.status == "unsupported"


def test_zero_parameter_model():
    model = Model.from_log_likelihood(lambda params, data: -1.0, vector_size=0)
    est = model.estimate(None)
    assert est.success
    assert est.log_likelihood == -1.0
    assert est.parameters.vector.shape == (0,)


def test_verbose_logs_iterations(caplog):
    model = Model.from_log_likelihood(quadratic_loglike, vector_size=2).with_score(
        quadratic_score
    )
    with caplog.at_level(logging.INFO, logger="sensible_mle"):
        model.estimate(C, method="cg", verbose=1)
    messages = [r.getMessage() for r in caplog.records]
    assert any("f()=" in m for m in messages)
    assert any("Minimum found" in m for m in messages)

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="sensible_mle"):
        model.estimate(C, method="cg")
    assert not caplog.records
