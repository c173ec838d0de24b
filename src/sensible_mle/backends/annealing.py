"""Simulated annealing over a continuous parameter space (GSL siman schedule)."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Tuple

import numpy as np

from ..util import grid_distance
from .common import DriverResult

logger = logging.getLogger(__name__)


def take_step(x: np.ndarray, step_size: float, rng: np.random.Generator) -> np.ndarray:
    """Random move that visits every coordinate once, in random order.

    Each coordinate moves by step_left * u * (+/-1) with u ~ U(0, 1), after
    which step_left shrinks by u, so later coordinates move less.
    """
    new = np.array(x, dtype=float, copy=True)
    step_left = float(step_size)
    for dim in rng.permutation(new.shape[0]):
        sign = 1.0 if rng.random() > 0.5 else -1.0
        amt = rng.random()
        new[dim] += step_left * amt * sign
        step_left *= amt
    return new


class AnnealingDriver:
    """Metropolis annealing with geometric cooling.

    Starting at t_initial, iters_fixed_T trial moves are made per
    temperature; the temperature is then divided by mu_t, and the search
    stops once it falls below t_min. Moves shrink with the temperature
    (step_size * T / t_initial) and are projected onto the feasible region
    when the model carries a constraint. The point held when the schedule
    ends is the result; the best point seen is kept in the stats.
    """

    name = "annealing"
    records_gradients = True
    default_start = 1.0

    def run(self, ctx: Any, x0: np.ndarray) -> DriverResult:
        s = ctx.settings
        rng = s.rng if s.rng is not None else np.random.default_rng()
        verbose = int(s.verbose)
        want_cov = bool(s.want_cov)
        k = float(s.k)
        t_initial = float(s.t_initial)
        n_tries = int(s.n_tries)

        # Moves are projected, so the energy itself carries no penalty.
        ctx.use_constraint = False

        def energy(x: np.ndarray) -> float:
            e = ctx.negated_objective(x)
            if want_cov and math.isfinite(e):
                ctx.record(e, ctx.negated_gradient(x))
            return e

        x = ctx.project(np.asarray(x0, dtype=float))
        E = energy(x)
        best_x, best_E = x.copy(), E

        T = t_initial
        n_temps = 0
        n_evals = 1
        accepted = rejected = 0
        path_length = 0.0

        if verbose:
            logger.info("#-iter  temperature   energy    accepted   distance")

        while True:
            scale = float(s.step_size) * T / t_initial
            accepted_here = 0
            for _ in range(int(s.iters_fixed_T)):
                new_x, new_E, tries = self._trial(ctx, x, scale, rng, energy, n_tries)
                n_evals += tries

                if new_E <= best_E:
                    best_x, best_E = new_x.copy(), new_E

                if new_E < E or rng.random() < math.exp(-(new_E - E) / (k * T)):
                    path_length += grid_distance(x, new_x)
                    x, E = new_x, new_E
                    accepted += 1
                    accepted_here += 1
                else:
                    rejected += 1

            n_temps += 1
            if verbose:
                logger.info(
                    "%6d %12g %12g %5d/%d %10g",
                    n_temps,
                    T,
                    E,
                    accepted_here,
                    int(s.iters_fixed_T),
                    path_length,
                )
                if verbose > 1:
                    logger.info("      x=%s", np.array2string(x))

            T /= float(s.mu_t)
            if T < float(s.t_min):
                break

        state = "converged" if math.isfinite(E) else "numerical_failure"
        message = (
            f"Annealing finished after {n_temps} temperatures."
            if state == "converged"
            else "Annealing ended on a point with non-finite energy."
        )
        if state != "converged" and verbose:
            logger.warning(message)

        return DriverResult(
            theta=x,
            state=state,
            message=message,
            iterations=n_temps * int(s.iters_fixed_T),
            stats={
                "method": self.name,
                "fun": float(E),
                "best_x": best_x,
                "best_fun": float(best_E),
                "temperatures": n_temps,
                "final_temperature": T,
                "accepted": accepted,
                "rejected": rejected,
                "path_length": path_length,
                "nfev": n_evals,
            },
        )

    @staticmethod
    def _trial(
        ctx: Any,
        x: np.ndarray,
        scale: float,
        rng: np.random.Generator,
        energy: Callable[[np.ndarray], float],
        n_tries: int,
    ) -> Tuple[np.ndarray, float, int]:
        """Draw a projected trial point, redrawing while its energy is non-finite."""
        for attempt in range(1, n_tries + 1):
            cand = ctx.project(take_step(x, scale, rng))
            e = energy(cand)
            if math.isfinite(e):
                break
        return cand, e, attempt
