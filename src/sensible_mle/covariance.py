"""Score-based (BHHH) covariance from the gradients recorded during a search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp

from .objective import EvaluationTrace

CovarianceStatus = Literal["ok", "singular", "empty", "unsupported", "not_requested"]


@dataclass(frozen=True)
class Covariance:
    """Parameter covariance plus how it was (or was not) obtained."""

    matrix: Optional[np.ndarray] = None
    status: CovarianceStatus = "not_requested"
    names: Tuple[str, ...] = ()
    information: Optional[np.ndarray] = None

    @property
    def available(self) -> bool:
        return self.matrix is not None

    def stderr(self) -> Optional[np.ndarray]:
        if self.matrix is None:
            return None
        return np.sqrt(np.clip(np.diag(self.matrix), 0.0, np.inf))


def sample_weights(energies: Sequence[float]) -> np.ndarray:
    """Relative weight of each sample, w_j = 1 / (1 + sum_{k != j} exp(e_k - e_j)).

    Computed as exp(e_j - logsumexp(e)) so large energy gaps cannot overflow.
    """
    e = np.asarray(energies, dtype=float).reshape(-1)
    if e.size == 0:
        return e
    return np.exp(e - logsumexp(e))


def score_outer_product(trace: EvaluationTrace) -> np.ndarray:
    """Weighted sum of gradient outer products, sum_j w_j g_j g_j^T."""
    if len(trace) == 0:
        raise ValueError("Cannot form an outer product from an empty trace.")
    grads = np.stack(trace.gradients, axis=0)  # (S, P)
    w = sample_weights(trace.energies)
    out = np.einsum("s,si,sj->ij", w, grads, grads)
    return 0.5 * (out + out.T)


def estimate_covariance(
    trace: EvaluationTrace,
    n_obs: int = 1,
    names: Sequence[str] = (),
) -> Covariance:
    """Invert n_obs * sum_j w_j g_j g_j^T.

    A rank-deficient or otherwise non-invertible information matrix gives
    status="singular" instead of raising.
    """
    names = tuple(names)
    if len(trace) == 0:
        return Covariance(status="empty", names=names)

    info = score_outer_product(trace) * float(n_obs)
    dim = int(info.shape[0])

    if not np.all(np.isfinite(info)) or np.linalg.matrix_rank(info) < dim:
        return Covariance(status="singular", names=names, information=info)
    try:
        cov = np.linalg.inv(info)
        cov = 0.5 * (cov + cov.T)
    except np.linalg.LinAlgError:
        return Covariance(status="singular", names=names, information=info)
    if not np.all(np.isfinite(cov)):
        return Covariance(status="singular", names=names, information=info)

    if len(names) != dim:
        names = ()
    return Covariance(matrix=cov, status="ok", names=names, information=info)
