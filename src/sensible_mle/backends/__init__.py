"""Optimization drivers + registry."""

from __future__ import annotations

from typing import Dict

from .annealing import AnnealingDriver
from .common import Driver, DriverResult, DriverState, MAX_ITERATIONS
from .scipy_minimize import ScipyMinimizeDriver
from .scipy_root import ScipyRootDriver
from .scipy_simplex import ScipySimplexDriver

_BACKENDS: Dict[str, Driver] = {
    "cg": ScipyMinimizeDriver("cg"),
    "bfgs": ScipyMinimizeDriver("bfgs"),
    "lbfgs": ScipyMinimizeDriver("lbfgs"),
    "simplex": ScipySimplexDriver(),
    "annealing": AnnealingDriver(),
    "root-hybr": ScipyRootDriver("hybr"),
    "root-broyden1": ScipyRootDriver("broyden1"),
}


def get_backend(name: str) -> Driver:
    """Return a driver implementation by method name."""
    try:
        return _BACKENDS[name]
    except KeyError as e:
        raise ValueError(
            f"Unknown method {name!r}. Available: {tuple(_BACKENDS.keys())}"
        ) from e


AVAILABLE_METHODS = tuple(_BACKENDS.keys())

__all__ = [
    "AVAILABLE_METHODS",
    "Driver",
    "DriverResult",
    "DriverState",
    "MAX_ITERATIONS",
    "get_backend",
]
