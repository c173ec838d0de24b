"""sensible_mle public API."""
from .covariance import Covariance, estimate_covariance
from .imputation import find_missing, ml_imputation
from .model import Model, maximum_likelihood
from .numdiff import DIFFERENTIAL_STEP, numerical_gradient
from .objective import EvaluationTrace, ObjectiveContext
from .params import ParameterSet, ParameterShape, pack, unpack
from .plotting import plot_path
from .run import RESTART_BOUND, Estimate, estimate_restart, restart_settings
from .settings import MLESettings
from .backends import AVAILABLE_METHODS

__all__ = [
    "AVAILABLE_METHODS",
    "Covariance",
    "DIFFERENTIAL_STEP",
    "Estimate",
    "EvaluationTrace",
    "MLESettings",
    "Model",
    "ObjectiveContext",
    "ParameterSet",
    "ParameterShape",
    "RESTART_BOUND",
    "estimate_covariance",
    "estimate_restart",
    "find_missing",
    "maximum_likelihood",
    "ml_imputation",
    "numerical_gradient",
    "pack",
    "plot_path",
    "restart_settings",
    "unpack",
]
