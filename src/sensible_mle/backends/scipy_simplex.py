from __future__ import annotations

import logging
from typing import Any

import numpy as np
from scipy.optimize import minimize

from .common import MAX_ITERATIONS, DriverResult, state_from_scipy

logger = logging.getLogger(__name__)


def simplex_size(vertices: np.ndarray) -> float:
    """Mean Euclidean distance from the vertices to their centroid."""
    v = np.asarray(vertices, dtype=float)
    centre = np.mean(v, axis=0)
    return float(np.mean(np.linalg.norm(v - centre, axis=1)))


def simplex_spread(vertices: np.ndarray) -> float:
    """Largest coordinate gap between the best vertex (row 0) and the others."""
    v = np.asarray(vertices, dtype=float)
    if v.shape[0] < 2:
        return 0.0
    return float(np.max(np.abs(v[1:] - v[0])))


class ScipySimplexDriver:
    """Derivative-free Nelder-Mead simplex search.

    Converges when every coordinate of every vertex lies within
    settings.tolerance of the best vertex; stats["spread"] is that largest
    gap. stats["size"] is the mean distance from the vertices to their
    centroid, reported for comparison. No gradients are evaluated, so no covariance samples are recorded.
    """

    name = "simplex"
    records_gradients = False
    default_start = 0.0

    def run(self, ctx: Any, x0: np.ndarray) -> DriverResult:
        settings = ctx.settings
        tol = float(settings.tolerance)
        step = float(settings.step_size)
        verbose = int(settings.verbose)

        x0 = np.asarray(x0, dtype=float)
        n = int(x0.shape[0])
        initial_simplex = np.vstack([x0, x0[None, :] + step * np.eye(n)])

        iteration = 0

        def callback(xk: np.ndarray) -> None:
            nonlocal iteration
            iteration += 1
            if verbose:
                logger.info(
                    "%5d %s", iteration, " ".join(f"{v:8.3e}" for v in np.asarray(xk))
                )

        res = minimize(
            ctx.negated_objective,
            x0,
            method="Nelder-Mead",
            callback=callback,
            options={
                "initial_simplex": initial_simplex,
                "xatol": tol,
                # vertex-spread convergence test only
                "fatol": np.inf,
                "maxiter": MAX_ITERATIONS,
                "maxfev": MAX_ITERATIONS * (n + 1),
            },
        )

        # Nelder-Mead reports 1 (maxfev) and 2 (maxiter) for exhausted budgets.
        state = state_from_scipy(res, max_iter_codes=(1, 2))
        size = simplex_size(res.final_simplex[0])
        spread = simplex_spread(res.final_simplex[0])

        if verbose:
            if state == "converged":
                logger.info("Optimum found, f()=%7.3f size=%.3f", float(res.fun), size)
            else:
                logger.warning("Simplex search stopped: %s", res.message)

        return DriverResult(
            theta=np.asarray(res.x, dtype=float),
            state=state,
            message=str(res.message),
            iterations=int(getattr(res, "nit", iteration) or iteration),
            stats={
                "method": self.name,
                "fun": float(res.fun),
                "size": size,
                "spread": spread,
                "nfev": int(getattr(res, "nfev", 0) or 0),
            },
        )
