"""Maximum-likelihood imputation of missing (NaN) cells under a multivariate normal."""

from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np
from scipy.stats import multivariate_normal

from .model import Model
from .params import ParameterSet
from .run import Estimate
from .settings import MLESettings


def find_missing(data: Any) -> Tuple[np.ndarray, np.ndarray]:
    """Row and column indices of the NaN cells of a 2D array, in row-major order."""
    a = np.asarray(data, dtype=float)
    if a.ndim != 2:
        raise ValueError(f"Expected a 2D data array; got shape {a.shape}.")
    rows, cols = np.nonzero(np.isnan(a))
    return rows, cols


def _imputation_model(
    data: np.ndarray, mean: np.ndarray, cov: np.ndarray
) -> Model:
    rows, cols = find_missing(data)
    precision = np.linalg.inv(cov)
    dist = multivariate_normal(mean=mean, cov=cov)

    def fill(params: ParameterSet) -> np.ndarray:
        filled = np.array(data, dtype=float, copy=True)
        filled[rows, cols] = params.vector
        return filled

    def log_likelihood(params: ParameterSet, _data: Any) -> float:
        return float(np.sum(dist.logpdf(fill(params))))

    def score(params: ParameterSet, _data: Any) -> np.ndarray:
        # d/dx of the normal log-density is -precision @ (x - mean), per row.
        g = -(fill(params) - mean) @ precision
        return g[rows, cols]

    names = [f"x[{r},{c}]" for r, c in zip(rows.tolist(), cols.tolist())]
    return Model.from_log_likelihood(
        log_likelihood,
        vector_size=int(rows.shape[0]),
        param_names=names,
        name="Impute missing data via maximum likelihood",
    ).with_score(score)


def ml_imputation(
    data: np.ndarray,
    mean: Any,
    cov: Any,
    settings: Optional[MLESettings] = None,
    **overrides: Any,
) -> Estimate:
    """Fill the NaN cells of data with their most likely values.

    Each row of data is an observation from N(mean, cov). The missing cells
    are the parameters of a maximum-likelihood search; the optimum is
    written back into data in place and the Estimate is returned.

    Defaults differ from MLESettings(): method="annealing", step_size=2,
    tolerance=0.2, want_cov=False, and the search starts from the column
    means of the missing cells.
    """
    if not isinstance(data, np.ndarray) or not np.issubdtype(data.dtype, np.floating):
        raise TypeError("data must be a floating-point numpy array (filled in place).")
    mean = np.asarray(mean, dtype=float).reshape(-1)
    cov = np.asarray(cov, dtype=float)
    if data.ndim != 2 or mean.shape[0] != data.shape[1]:
        raise ValueError(
            f"data of shape {data.shape} does not match a mean of length {mean.shape[0]}."
        )
    if cov.shape != (mean.shape[0], mean.shape[0]):
        raise ValueError(f"cov must have shape {(mean.shape[0],) * 2}; got {cov.shape}.")

    rows, cols = find_missing(data)
    if rows.shape[0] == 0:
        raise ValueError("data has no missing values to impute.")

    if settings is None:
        settings = MLESettings(
            method="annealing",
            step_size=2.0,
            tolerance=0.2,
            want_cov=False,
            starting_pt=tuple(mean[cols].tolist()),
        )

    model = _imputation_model(data, mean, cov)
    est = model.estimate(data, settings, **overrides)
    data[rows, cols] = est.parameters.vector
    return est
