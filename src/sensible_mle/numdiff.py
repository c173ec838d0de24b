"""Central-difference numerical gradients.

The differential is fixed (DIFFERENTIAL_STEP). Models that need tighter
control should supply an analytic score instead.
"""

from __future__ import annotations

from typing import Any, Callable, Tuple

import numpy as np

from .params import ParameterSet, unpack_like

DIFFERENTIAL_STEP = 1e-5

_EPS = float(np.finfo(float).eps)


def _central_deriv(
    f: Callable[[float], float], x: float, h: float
) -> Tuple[float, float, float]:
    """One 3/5-point central difference.

    Returns (derivative, rounding error, truncation error).
    """
    fm1 = f(x - h)
    fp1 = f(x + h)
    fmh = f(x - h / 2.0)
    fph = f(x + h / 2.0)

    r3 = 0.5 * (fp1 - fm1)
    r5 = (4.0 / 3.0) * (fph - fmh) - (1.0 / 3.0) * r3

    e3 = (abs(fp1) + abs(fm1)) * _EPS
    e5 = 2.0 * (abs(fph) + abs(fmh)) * _EPS + e3

    # Rounding error from the finite precision of x +/- h.
    dy = max(abs(r3 / h), abs(r5 / h)) * (abs(x) / h) * _EPS

    result = r5 / h
    trunc = abs((r5 - r3) / h)
    rnd = abs(e5 / h) + dy
    return result, rnd, trunc


def central_derivative(
    f: Callable[[float], float], x: float, h: float = DIFFERENTIAL_STEP
) -> Tuple[float, float]:
    """Derivative of a scalar function at x, with an error estimate.

    When rounding error is below truncation error, the step is re-chosen to
    balance the two and the refined estimate is kept if it is more accurate
    and consistent with the first one.
    """
    r0, rnd, trunc = _central_deriv(f, x, h)
    error = rnd + trunc

    if rnd < trunc and rnd > 0.0 and trunc > 0.0:
        h_opt = h * (rnd / (2.0 * trunc)) ** (1.0 / 3.0)
        r_opt, rnd_opt, trunc_opt = _central_deriv(f, x, h_opt)
        error_opt = rnd_opt + trunc_opt
        if error_opt < error and abs(r_opt - r0) < 4.0 * error:
            r0 = r_opt
            error = error_opt

    return float(r0), float(error)


def flat_gradient(
    func: Callable[[np.ndarray], float],
    x: Any,
    step: float = DIFFERENTIAL_STEP,
) -> np.ndarray:
    """Per-coordinate central-difference gradient of func at flat point x.

    Only one coordinate is perturbed at a time; the rest stay fixed.
    """
    x = np.asarray(x, dtype=float).reshape(-1)
    out = np.empty_like(x)
    work = x.copy()

    for j in range(x.shape[0]):

        def one_d(b: float, j: int = j) -> float:
            work[:] = x
            work[j] = b
            return float(func(work))

        out[j], _ = central_derivative(one_d, float(x[j]), step)
    return out


def numerical_gradient(model: Any, params: ParameterSet, data: Any) -> np.ndarray:
    """Numerical gradient of a model's log-likelihood (or density) at params.

    Every evaluation re-unpacks the flat point so the model always receives
    a properly shaped ParameterSet.
    """
    fn = model.likelihood_fn
    shape = params.shape
    names = params.names

    def f(flat: np.ndarray) -> float:
        return float(fn(unpack_like(flat, shape, names), data))

    return flat_gradient(f, params.pack())
