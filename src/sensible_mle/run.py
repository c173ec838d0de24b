from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
from typing import Any, Dict, Optional, Tuple

import numpy as np

try:
    import uncertainties
except Exception:  # pragma: no cover - optional at import time
    uncertainties = None

from .covariance import Covariance
from .params import ParameterSet
from .util import uncertainty_to_string, vector_bounded

# Largest |theta_i| a result may have to seed, or replace, another search.
RESTART_BOUND = 1e4


@dataclass(frozen=True)
class Estimate:
    """Outcome of one maximum-likelihood search.

    status is 0 when the driver converged and 1 otherwise; state says why.
    A non-converged estimate still carries the last parameters visited.
    """

    model: Any
    data: Any
    settings: Any
    parameters: ParameterSet
    log_likelihood: float
    status: int = 0
    state: str = "converged"
    message: str = ""
    covariance: Covariance = field(default_factory=Covariance)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == 0

    @property
    def theta(self) -> np.ndarray:
        """Flat parameter vector (packed order)."""
        return self.parameters.pack()

    @property
    def cov(self) -> Optional[np.ndarray]:
        return self.covariance.matrix

    @property
    def stderr(self) -> Optional[np.ndarray]:
        return self.covariance.stderr()

    @property
    def names(self) -> Tuple[str, ...]:
        return flat_names(self.model)

    @property
    def u(self) -> Optional[Tuple[Any, ...]]:
        """Correlated uncertainties values, or None without a covariance."""
        if uncertainties is None or self.cov is None:
            return None
        return tuple(uncertainties.correlated_values(self.theta, self.cov))

    def summary(self, digits: int | str | None = "auto") -> str:
        """Short human-readable report of the estimate."""
        lines = [
            f"{self.model.name}: {self.state} (log-likelihood {self.log_likelihood:.6g})"
        ]
        values = self.theta
        errs = self.stderr
        for i, name in enumerate(self.names):
            v = float(values[i])
            if errs is not None and math.isfinite(float(errs[i])):
                lines.append(f"  {name} = {uncertainty_to_string(v, float(errs[i]), precision=digits)}")
            else:
                lines.append(f"  {name} = {v:.6g}")
        if self.covariance.status not in ("ok", "not_requested"):
            lines.append(f"  covariance: {self.covariance.status}")
        return "\n".join(lines)

    def restart(self, method: Optional[str] = None, scale: float = 1.0) -> "Estimate":
        """Refine this estimate; see estimate_restart."""
        return estimate_restart(self, method=method, scale=scale)


def flat_names(model: Any) -> Tuple[str, ...]:
    """Parameter names in packed order, generated when the model has none."""
    if model.param_names:
        return tuple(model.param_names)
    shape = model.shape
    names = [f"v{i}" for i in range(int(shape.vector_size or 0))]
    if shape.has_matrix:
        names += [
            f"m{r}_{c}" for r in range(int(shape.rows)) for c in range(int(shape.cols))
        ]
    return tuple(names)


def restart_settings(
    est: Estimate, method: Optional[str] = None, scale: float = 1.0
) -> Any:
    """Settings for a follow-up search from est.

    The new start is est's parameters when they are finite and within
    RESTART_BOUND, else est's own starting point. Tolerance and step size
    are multiplied by scale; method is kept unless given.
    """
    scale = float(scale)
    if not scale > 0.0:
        raise ValueError(f"scale must be > 0; got {scale}.")
    old = est.settings
    theta = est.theta
    start = theta if vector_bounded(theta, RESTART_BOUND) else old.starting_pt
    return replace(
        old,
        starting_pt=None if start is None else np.array(start, dtype=float),
        tolerance=float(old.tolerance) * scale,
        step_size=float(old.step_size) * scale,
        method=old.method if method is None else str(method),
    )


def estimate_restart(
    est: Estimate, method: Optional[str] = None, scale: float = 1.0
) -> Estimate:
    """Re-run the search from est and keep whichever result is better.

    The new estimate wins only if its parameters are finite and within
    RESTART_BOUND and its log-likelihood is strictly greater (or finite
    where est's is nan); otherwise est itself is returned. An infinite
    prior log-likelihood cannot be beaten.
    """
    settings = restart_settings(est, method=method, scale=scale)
    new = est.model.estimate(est.data, settings)
    if not vector_bounded(new.theta, RESTART_BOUND):
        return est
    if math.isnan(est.log_likelihood):
        return new if math.isfinite(new.log_likelihood) else est
    if not new.log_likelihood > est.log_likelihood:
        return est
    return new
