from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from .util import uncertainty_to_string


def plot_path(
    trace: Sequence[Sequence[float]],
    *,
    ax: Optional[Any] = None,
    estimate: Optional[Any] = None,
    show_params: bool = False,
    param_digits: int | str | None = "auto",
    path_kwargs: Optional[Mapping[str, Any]] = None,
    marker_kwargs: Optional[Mapping[str, Any]] = None,
    text_kwargs: Optional[Mapping[str, Any]] = None,
) -> Tuple[Any, Any]:
    """Plot the points a search evaluated, as collected by MLESettings(trace=[]).

    Parameters
    ----------
    trace : sequence of records
        (p0, loglike) for one-parameter models, (p0, p1, loglike) otherwise.
    ax : matplotlib.axes.Axes, optional
        If None, a new figure/axes is created.
    estimate : Estimate, optional
        Marks the final point of this estimate on the plot.
    show_params : bool
        If True (and estimate is given), annotate its parameters.
    param_digits : int | "auto"
        Significant digits for parameter uncertainty formatting.
    path_kwargs, marker_kwargs, text_kwargs : dict, optional
        Styling kwargs for the path, the estimate marker and the text box.

    One-parameter traces draw loglike against p0 in evaluation order;
    two-parameter traces scatter p0 against p1 coloured by loglike.
    """
    import matplotlib.pyplot as plt

    rec = np.asarray([tuple(r) for r in trace], dtype=float)
    if rec.ndim != 2 or rec.shape[0] == 0:
        raise ValueError("plot_path requires a non-empty trace of records.")
    if rec.shape[1] not in (2, 3):
        raise ValueError(
            f"trace records must have 2 or 3 fields; got {rec.shape[1]}."
        )

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    path_kwargs = dict(path_kwargs or {})
    marker_kwargs = dict(marker_kwargs or {})
    text_kwargs = dict(text_kwargs or {})

    finite = np.all(np.isfinite(rec), axis=1)
    rec = rec[finite]

    if rec.shape[1] == 2:
        path_kwargs.setdefault("marker", ".")
        path_kwargs.setdefault("lw", 0.5)
        path_kwargs.setdefault("ms", 3)
        ax.plot(rec[:, 0], rec[:, 1], **path_kwargs)
        ax.set_xlabel("p0")
        ax.set_ylabel("log-likelihood")
    else:
        path_kwargs.setdefault("s", 6)
        path_kwargs.setdefault("cmap", "viridis")
        sc = ax.scatter(rec[:, 0], rec[:, 1], c=rec[:, 2], **path_kwargs)
        fig.colorbar(sc, ax=ax, label="log-likelihood")
        ax.set_xlabel("p0")
        ax.set_ylabel("p1")

    if estimate is not None:
        theta = np.asarray(estimate.theta, dtype=float)
        marker_kwargs.setdefault("marker", "x")
        marker_kwargs.setdefault("color", "red")
        marker_kwargs.setdefault("ms", 8)
        marker_kwargs.setdefault("linestyle", "none")
        if rec.shape[1] == 2:
            ax.plot([theta[0]], [estimate.log_likelihood], **marker_kwargs)
        elif theta.shape[0] >= 2:
            ax.plot([theta[0]], [theta[1]], **marker_kwargs)

        if show_params:
            errs = estimate.stderr
            lines = []
            for i, name in enumerate(estimate.names):
                val = float(theta[i])
                if errs is None:
                    lines.append(f"{name}={val:.4g}")
                else:
                    lines.append(
                        f"{name}={uncertainty_to_string(val, float(errs[i]), precision=param_digits)}"
                    )
            if lines:
                text_kwargs.setdefault("ha", "left")
                text_kwargs.setdefault("va", "top")
                text_kwargs.setdefault("fontsize", 9)
                text_kwargs.setdefault("transform", ax.transAxes)
                text_kwargs.setdefault(
                    "bbox",
                    {"boxstyle": "round", "facecolor": "white", "alpha": 0.7, "edgecolor": "none"},
                )
                ax.text(0.02, 0.98, "\n".join(lines), **text_kwargs)

    return fig, ax
