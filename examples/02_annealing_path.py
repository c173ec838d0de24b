import numpy as np
import matplotlib.pyplot as plt
from sensible_mle import Model, ParameterSet, plot_path


def bumpy(params, data):
    # several local maxima; the global one is near (1, -1)
    x, y = params.vector
    return float(-((x - 1) ** 2 + (y + 1) ** 2) + 0.8 * np.cos(3 * x) * np.cos(3 * y))


def in_box(params):
    # keep the search inside [-3, 3]^2
    clipped = np.clip(params.vector, -3.0, 3.0)
    penalty = float(np.sum(np.abs(params.vector - clipped)))
    if penalty == 0.0:
        return 0.0, params
    return penalty, ParameterSet(vector=clipped)


model = Model.from_log_likelihood(bumpy, param_names=("x", "y")).with_constraint(in_box)

trace = []
est = model.estimate(
    None,
    method="annealing",
    starting_pt=[-2.5, 2.5],
    step_size=2.0,
    t_initial=5.0,
    mu_t=1.05,
    t_min=0.01,
    iters_fixed_T=40,
    want_cov=False,
    trace=trace,
    rng=np.random.default_rng(3),
)
print(est.summary())
print("evaluations:", len(trace), "accepted:", est.stats["accepted"])

fig, ax = plot_path(trace, estimate=est, show_params=True)
ax.set_title("Annealing path")
plt.show()
