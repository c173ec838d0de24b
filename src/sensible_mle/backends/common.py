from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Protocol

import numpy as np

DriverState = Literal["converged", "max_iterations", "numerical_failure"]

MAX_ITERATIONS = 5000


@dataclass(frozen=True)
class DriverResult:
    """Normalized result returned by any optimization driver."""

    theta: np.ndarray  # final flat parameters, shape (P,)
    state: DriverState = "converged"
    message: str = ""
    iterations: int = 0
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.state == "converged"


class Driver(Protocol):
    """Driver protocol: minimize one ObjectiveContext from a starting point."""

    name: str
    # Whether the driver fills ctx.trace with (gradient, energy) samples.
    records_gradients: bool
    # Starting coordinate used when settings.starting_pt is None.
    default_start: float

    def run(self, ctx: Any, x0: np.ndarray) -> DriverResult: ...


def state_from_scipy(res: Any, max_iter_codes: tuple = (1,)) -> DriverState:
    """Map a scipy OptimizeResult onto the driver state machine."""
    if bool(getattr(res, "success", False)):
        return "converged"
    status = getattr(res, "status", None)
    if status in max_iter_codes:
        return "max_iterations"
    return "numerical_failure"
