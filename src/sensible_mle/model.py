from __future__ import annotations

from dataclasses import dataclass, replace
import math
from typing import Any, Callable, Optional, Sequence, Tuple
from warnings import warn

from .backends import get_backend
from .backends.common import DriverResult
from .covariance import Covariance, estimate_covariance
from .objective import ObjectiveContext
from .params import ParameterSet, ParameterShape, unpack_like
from .run import Estimate
from .settings import MLESettings
from .util import observation_count

LogLikelihood = Callable[[ParameterSet, Any], float]
Density = Callable[[ParameterSet, Any], float]
Score = Callable[[ParameterSet, Any], Any]
Constraint = Callable[[ParameterSet], Tuple[float, ParameterSet]]


@dataclass(frozen=True)
class Model:
    """A statistical model: a likelihood over a structured parameter set.

    Capabilities are plain optional callables:
    - log_likelihood(params, data) -> float
    - p(params, data) -> float, a density used when log_likelihood is absent
    - score(params, data) -> gradient of log_likelihood (flat, packed order)
    - constraint(params) -> (penalty, feasible_params); penalty 0 if feasible
    """

    name: str
    shape: ParameterShape
    log_likelihood: Optional[LogLikelihood] = None
    p: Optional[Density] = None
    score: Optional[Score] = None
    constraint: Optional[Constraint] = None
    param_names: Tuple[str, ...] = ()

    # ---- constructors ----
    @staticmethod
    def from_log_likelihood(
        func: LogLikelihood,
        *,
        vector_size: Optional[int] = None,
        rows: Optional[int] = None,
        cols: Optional[int] = None,
        param_names: Sequence[str] = (),
        name: Optional[str] = None,
    ) -> "Model":
        """Construct a Model from a log-likelihood function.

        With only param_names given, the parameters form a vector of that length.
        """
        shape = _shape_for(vector_size, rows, cols, param_names)
        return Model(
            name=name or getattr(func, "__name__", "model"),
            shape=shape,
            log_likelihood=func,
        ).named(*param_names)

    @staticmethod
    def from_density(
        func: Density,
        *,
        vector_size: Optional[int] = None,
        rows: Optional[int] = None,
        cols: Optional[int] = None,
        param_names: Sequence[str] = (),
        name: Optional[str] = None,
    ) -> "Model":
        """Construct a Model from a probability density p(params, data)."""
        shape = _shape_for(vector_size, rows, cols, param_names)
        return Model(
            name=name or getattr(func, "__name__", "model"),
            shape=shape,
            p=func,
        ).named(*param_names)

    # ---- builders (pure; return new model) ----
    def with_score(self, fn: Score) -> "Model":
        """Return a new Model with an analytic score."""
        return replace(self, score=fn)

    def with_constraint(self, fn: Constraint) -> "Model":
        """Return a new Model with a constraint."""
        return replace(self, constraint=fn)

    def named(self, *names: str) -> "Model":
        """Return a new Model with flat parameter names (packed order)."""
        if names and len(names) != self.shape.size:
            raise ValueError(
                f"Got {len(names)} parameter names for {self.shape.size} parameters."
            )
        return replace(self, param_names=tuple(str(n) for n in names))

    # ---- evaluation ----
    def check(self) -> None:
        """Raise ValueError unless the model can evaluate a likelihood."""
        if self.log_likelihood is None and self.p is None:
            raise ValueError(
                f"Model {self.name!r} has neither a log_likelihood nor a density p."
            )

    @property
    def likelihood_fn(self) -> Callable[[ParameterSet, Any], float]:
        """The function being maximized: log_likelihood, else p."""
        self.check()
        return self.log_likelihood if self.log_likelihood is not None else self.p  # type: ignore[return-value]

    def evaluate_log_likelihood(self, params: ParameterSet, data: Any) -> float:
        """Log-likelihood at params; log(p) for density models (nan if p <= 0)."""
        self.check()
        if self.log_likelihood is not None:
            return float(self.log_likelihood(params, data))
        p = float(self.p(params, data))  # type: ignore[misc]
        if not p > 0.0:
            return float("nan")
        return math.log(p)

    def unpack(self, flat: Any) -> ParameterSet:
        return unpack_like(flat, self.shape, self.param_names)

    # ---- estimation ----
    def estimate(
        self,
        data: Any,
        settings: Optional[MLESettings] = None,
        **overrides: Any,
    ) -> Estimate:
        """Maximize the likelihood of data over this model's parameters.

        settings defaults to MLESettings(); keyword overrides replace single
        fields (e.g. method="simplex", tolerance=1e-6).

        Configuration problems (no likelihood, unknown method, starting point
        of the wrong length) raise ValueError. Non-convergence does not
        raise; it is reported through Estimate.status / state / message.
        """
        self.check()
        settings = settings if settings is not None else MLESettings()
        if overrides:
            settings = replace(settings, **overrides)

        driver = get_backend(settings.method)
        x0 = settings.start(self.shape.size, driver.default_start)
        ctx = ObjectiveContext(model=self, data=data, settings=settings)

        try:
            if self.shape.size == 0:
                result = DriverResult(
                    theta=x0, state="converged", message="Model has no parameters."
                )
            else:
                result = driver.run(ctx, x0)

            # Report the feasible point the objective was evaluated at.
            theta = ctx.project(result.theta)
            params = self.unpack(theta)
            loglike = self.evaluate_log_likelihood(params, data)

            if not settings.want_cov:
                cov = Covariance(status="not_requested", names=self.param_names)
            elif not driver.records_gradients:
                cov = Covariance(status="unsupported", names=self.param_names)
            else:
                cov = estimate_covariance(
                    ctx.trace,
                    n_obs=observation_count(data),
                    names=self.param_names,
                )
                if cov.status == "singular":
                    warn(
                        f"Information matrix for {self.name!r} is singular; "
                        "no covariance available.",
                        UserWarning,
                    )
        finally:
            ctx.trace.clear()

        stats = dict(result.stats)
        stats.setdefault("iterations", result.iterations)
        stats["n_evaluations"] = ctx.n_evaluations
        return Estimate(
            model=self,
            data=data,
            settings=settings,
            parameters=params,
            log_likelihood=loglike,
            status=0 if result.success else 1,
            state=result.state,
            message=result.message,
            covariance=cov,
            stats=stats,
        )


def maximum_likelihood(
    data: Any,
    model: Model,
    settings: Optional[MLESettings] = None,
    **overrides: Any,
) -> Estimate:
    """Functional form of Model.estimate."""
    return model.estimate(data, settings, **overrides)


def _shape_for(
    vector_size: Optional[int],
    rows: Optional[int],
    cols: Optional[int],
    param_names: Sequence[str],
) -> ParameterShape:
    if vector_size is None and rows is None and cols is None:
        if not param_names:
            raise ValueError("Give vector_size, rows/cols, or param_names.")
        vector_size = len(param_names)
    return ParameterShape(vector_size=vector_size, rows=rows, cols=cols)


