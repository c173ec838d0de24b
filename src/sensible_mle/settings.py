from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class MLESettings:
    """Configuration for one maximum-likelihood search.

    Settings are read-only during a search; use dataclasses.replace (or the
    keyword overrides on Model.estimate) to derive a modified copy.

    General options:
    - starting_pt: flat starting point; None picks the method's default
      (0.1 for gradient and root methods, 0 for simplex, 1 for annealing)
    - step_size: initial simplex edge / maximum annealing move
    - tolerance: gradient-norm (gradient methods), simplex-size (simplex)
      or root tolerance
    - method: one of sensible_mle.backends.AVAILABLE_METHODS
    - verbose: 0 silent, 1 per-iteration log lines, 2 adds parameter vectors
    - want_cov: build the score-based covariance when the method supports it
    - use_score: use the model's analytic score when present; False forces
      the numerical gradient
    - trace: optional sink with .append(); receives (p0[, p1], loglike) for
      every evaluated point

    Annealing options (GSL siman conventions):
    - n_tries: redraws allowed when a trial point has non-finite energy
    - iters_fixed_T: trial moves per temperature
    - k: Boltzmann constant
    - t_initial, t_min: starting and stopping temperature
    - mu_t: cooling factor, T <- T / mu_t after each temperature
    - rng: numpy Generator; a fresh default_rng() is used when None
    """

    starting_pt: Optional[Sequence[float]] = None
    step_size: float = 1.0
    tolerance: float = 1e-3
    method: str = "cg"
    verbose: int = 0
    want_cov: bool = True
    use_score: bool = True
    trace: Optional[Any] = None

    n_tries: int = 200
    iters_fixed_T: int = 200
    k: float = 1.0
    t_initial: float = 50.0
    mu_t: float = 1.002
    t_min: float = 0.5
    rng: Optional[np.random.Generator] = None

    def __post_init__(self) -> None:
        if float(self.step_size) <= 0.0:
            raise ValueError(f"step_size must be > 0; got {self.step_size}.")
        if float(self.tolerance) <= 0.0:
            raise ValueError(f"tolerance must be > 0; got {self.tolerance}.")
        if float(self.mu_t) <= 1.0:
            raise ValueError("mu_t must be > 1 so that the temperature decreases.")
        if float(self.t_min) <= 0.0 or float(self.t_initial) <= 0.0:
            raise ValueError("t_initial and t_min must be > 0.")
        if int(self.iters_fixed_T) < 1 or int(self.n_tries) < 1:
            raise ValueError("iters_fixed_T and n_tries must be >= 1.")
        if float(self.k) <= 0.0:
            raise ValueError(f"k must be > 0; got {self.k}.")
        if self.trace is not None and not hasattr(self.trace, "append"):
            raise TypeError("trace must provide .append(record).")

    def start(self, size: int, default: float) -> np.ndarray:
        """Return the starting point as a flat float array of length size."""
        if self.starting_pt is None:
            return np.full((int(size),), float(default), dtype=float)
        x0 = np.array(self.starting_pt, dtype=float).reshape(-1)
        if x0.shape[0] != int(size):
            raise ValueError(
                f"starting_pt has {x0.shape[0]} entries but the model has {size} parameters."
            )
        return x0
