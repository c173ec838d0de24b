import numpy as np
from sensible_mle import find_missing, ml_imputation

mean = np.array([10.0, 20.0, 5.0])
cov = np.array(
    [
        [4.0, 1.5, 0.5],
        [1.5, 9.0, -1.0],
        [0.5, -1.0, 1.0],
    ]
)

rng = np.random.default_rng(1)
data = rng.multivariate_normal(mean, cov, size=8)
data[[0, 3, 5], [1, 0, 2]] = np.nan

rows, cols = find_missing(data)
print("missing cells:", list(zip(rows.tolist(), cols.tolist())))

# The default search is annealing; a quick schedule is plenty here.
est = ml_imputation(
    data, mean, cov, t_initial=5.0, mu_t=1.05, t_min=0.05, iters_fixed_T=50,
    rng=np.random.default_rng(0),
)
print(est.summary())

# The analytic score makes a gradient search exact and fast.
data[rows, cols] = np.nan
est = ml_imputation(data, mean, cov, method="bfgs", tolerance=1e-6)
print(np.round(data, 3))
