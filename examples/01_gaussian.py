import numpy as np
from sensible_mle import Model


def gaussian(params, data):
    mu, log_sigma = params.vector
    sigma = np.exp(log_sigma)
    z = (data - mu) / sigma
    return float(-0.5 * np.sum(z * z) - data.size * (log_sigma + 0.5 * np.log(2 * np.pi)))


model = Model.from_log_likelihood(gaussian, param_names=("mu", "log_sigma"))

rng = np.random.default_rng(0)
data = rng.normal(3.0, 1.5, size=250)

# Conjugate gradient with a numerical gradient (no score supplied).
est = model.estimate(data, starting_pt=[0.0, 0.0])
print(est.summary(digits=2))

# Polish with BFGS at a tighter tolerance; keeps est unless it improves.
est = est.restart(method="bfgs", scale=0.01)
print(est.summary(digits=2))

if est.u is not None:
    mu, log_sigma = est.u
    sigma = np.exp(log_sigma.nominal_value)
    print("sigma =", sigma, "+/-", sigma * log_sigma.std_dev)
else:
    print("no covariance:", est.covariance.status)
