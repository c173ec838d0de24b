from __future__ import annotations

import logging
from typing import Any, Dict

import numpy as np
from scipy.optimize import root

from .common import MAX_ITERATIONS, DriverResult

logger = logging.getLogger(__name__)


class ScipyRootDriver:
    """Solve score(theta) = 0 with scipy.optimize.root.

    A stationary point of the likelihood is not necessarily a maximum;
    callers should check the returned log-likelihood.
    """

    records_gradients = False
    default_start = 0.1

    def __init__(self, method: str):
        if method not in ("hybr", "broyden1"):
            raise ValueError(f"Unsupported root method {method!r}.")
        self.name = f"root-{method}"
        self.scipy_method = method

    def run(self, ctx: Any, x0: np.ndarray) -> DriverResult:
        tol = float(ctx.settings.tolerance)
        x0 = np.asarray(x0, dtype=float)
        n = int(x0.shape[0])

        options: Dict[str, Any]
        if self.scipy_method == "hybr":
            options = {"xtol": tol, "maxfev": MAX_ITERATIONS * (n + 1)}
        else:
            options = {"fatol": tol, "maxiter": MAX_ITERATIONS}

        res = root(ctx.negated_gradient, x0, method=self.scipy_method, options=options)

        if bool(res.success):
            state = "converged"
        elif self.scipy_method == "hybr" and getattr(res, "status", None) == 2:
            state = "max_iterations"
        else:
            state = "numerical_failure"

        if ctx.settings.verbose:
            if state == "converged":
                logger.info("Root found at %s", np.array2string(np.asarray(res.x)))
            else:
                logger.warning("Root search stopped: %s", res.message)

        residual = np.asarray(res.fun, dtype=float).reshape(-1)
        return DriverResult(
            theta=np.asarray(res.x, dtype=float),
            state=state,
            message=str(res.message),
            iterations=int(getattr(res, "nit", 0) or getattr(res, "nfev", 0) or 0),
            stats={
                "method": self.name,
                "residual_norm": float(np.linalg.norm(residual)),
                "nfev": int(getattr(res, "nfev", 0) or 0),
            },
        )
