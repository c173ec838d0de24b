from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, List, Optional, Tuple

import numpy as np

from .numdiff import numerical_gradient
from .params import ParameterSet, unpack_like


@dataclass
class EvaluationTrace:
    """Per-call buffer of (gradient, energy) samples for the covariance estimate.

    energy is the log-likelihood of the evaluated point; samples with a
    non-finite value are dropped.
    """

    gradients: List[np.ndarray] = field(default_factory=list)
    energies: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.energies)

    def record(self, energy: float, gradient: Any) -> bool:
        """Append one sample; return False if it was dropped."""
        energy = float(energy)
        if not math.isfinite(energy):
            return False
        g = np.array(gradient, dtype=float).reshape(-1)
        if self.gradients and g.shape != self.gradients[0].shape:
            raise ValueError(
                f"Gradient length changed within a trace: {g.shape} vs {self.gradients[0].shape}."
            )
        self.gradients.append(g)
        self.energies.append(energy)
        return True

    def clear(self) -> None:
        self.gradients.clear()
        self.energies.clear()


@dataclass
class ObjectiveContext:
    """Everything a driver needs to evaluate the negated log-likelihood.

    The drivers minimize; this adapter negates the model's log-likelihood
    (or density), applies constraint penalties, and records samples for the
    covariance estimate and the optional path trace.
    """

    model: Any
    data: Any
    settings: Any
    use_constraint: bool = True
    trace: EvaluationTrace = field(default_factory=EvaluationTrace)
    n_evaluations: int = 0
    _cache: Optional[Tuple[np.ndarray, float, np.ndarray]] = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.model.check()

    @property
    def dimension(self) -> int:
        return self.model.shape.size

    def unpack(self, flat: Any) -> ParameterSet:
        return unpack_like(flat, self.model.shape, self.model.param_names)

    def _feasible(self, params: ParameterSet) -> Tuple[float, Optional[ParameterSet]]:
        """Run the constraint; return (penalty, corrected params or None)."""
        if self.model.constraint is None:
            return 0.0, None
        penalty, feasible = self.model.constraint(params.copy())
        penalty = float(penalty)
        if penalty > 0.0:
            return penalty, feasible
        return 0.0, None

    def project(self, flat: Any) -> np.ndarray:
        """Replace flat by the constraint's feasible correction, if it binds."""
        flat = np.asarray(flat, dtype=float).reshape(-1)
        _, feasible = self._feasible(self.unpack(flat))
        if feasible is None:
            return flat
        out = feasible.pack()
        if out.shape != flat.shape:
            raise ValueError(
                f"Constraint returned {out.shape[0]} values; expected {flat.shape[0]}."
            )
        return out

    def negated_objective(self, flat: Any) -> float:
        """-log L at flat, plus the constraint penalty when infeasible."""
        flat = np.asarray(flat, dtype=float).reshape(-1)
        params = self.unpack(flat)
        f = self.model.likelihood_fn
        self.n_evaluations += 1

        out: Optional[float] = None
        if self.use_constraint:
            penalty, feasible = self._feasible(params)
            if feasible is not None:
                out = -float(f(feasible, self.data)) + penalty
        if out is None:
            out = -float(f(params, self.data))

        sink = getattr(self.settings, "trace", None)
        if sink is not None:
            sink.append(tuple(float(v) for v in flat[:2]) + (-out,))
        return out

    def negated_gradient(self, flat: Any) -> np.ndarray:
        """-d log L / d params, at the feasible correction when the constraint binds."""
        params = self.unpack(flat)
        _, feasible = self._feasible(params)
        use = params if feasible is None else feasible

        if self.model.score is not None and getattr(self.settings, "use_score", True):
            g = np.asarray(self.model.score(use, self.data), dtype=float).reshape(-1)
        else:
            g = numerical_gradient(self.model, use, self.data)
        if g.shape != (self.dimension,):
            raise ValueError(
                f"Score returned shape {g.shape}; expected ({self.dimension},)."
            )
        return -g

    def value_and_gradient(self, flat: Any) -> Tuple[float, np.ndarray]:
        flat = np.array(flat, dtype=float).reshape(-1)
        if self._cache is not None and np.array_equal(self._cache[0], flat):
            return self._cache[1], self._cache[2].copy()
        value = self.negated_objective(flat)
        grad = self.negated_gradient(flat)
        self._cache = (flat, value, grad)
        return value, grad.copy()

    def energy(self, value: float) -> float:
        """Log-likelihood of a point, given its negated objective value."""
        if self.model.log_likelihood is not None:
            return -float(value)
        p = -float(value)
        if not p > 0.0:
            return float("nan")
        return math.log(p)

    def record(self, value: float, negated_grad: Any) -> bool:
        """Store one (gradient, energy) sample in the trace."""
        if not math.isfinite(float(value)):
            return False
        return self.trace.record(self.energy(value), negated_grad)
