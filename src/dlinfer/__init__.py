"""
dlinfer: calibrated inference under distributional uncertainty.

Classical standard errors account for sampling noise only. When the
data-generating distribution is itself randomly perturbed, estimates from
equally valid models disagree by more than their standard errors suggest, and
sampling-only intervals under-cover. dlinfer estimates the strength of the
perturbation and folds it into one calibrated standard error and t test.

Key Features
------------
- Perturbation sampler: seeds that fix a random distributional perturbation
- Model-disagreement calibration over candidate OLS adjustment sets
- Background-moment calibration with auxiliary covariates of known mean
- sklearn-compatible estimators and statsmodels-style summaries
- Monte Carlo coverage study CLI (``dlinfer-mc``)

Basic Usage
-----------
>>> import dlinfer as dl
>>>
>>> # Perturbed data from one seed
>>> seed = dl.make_seed(500, delta=2.0, rng=0)
>>> x = dl.draw(seed, rng=1)
>>>
>>> # Calibrate a coefficient over candidate models
>>> result = dl.calibrate(["Y ~ T + X1", "Y ~ T + X1 + X2"], df, "T")
>>> estimate, std_error, p_value, delta_hat = result
>>> print(result.summary())
>>>
>>> # Calibrate a mean with background moments
>>> result = dl.calibrate(y, {"Z1": (z1, 0.0), "Z2": (z2, 0.0)})
"""

__version__ = "0.1.0"

# Perturbation sampler
from .perturbation import (
    PerturbationSeed,
    draw,
    inflation_to_delta,
    make_seed,
    set_random_state,
    variance_inflation,
)

# Model specifications and candidate fits
from .specs import ModelSpec, as_spec
from .classical import CandidateEstimate, fit_candidate, fit_candidates

# Strength estimation and calibration
from .strength import (
    ExcessVariance,
    delta_from_excess,
    estimate_from_background,
    estimate_from_candidates,
)
from .calibrate import (
    aggregate,
    calibrate,
    calibrate_background,
    calibrate_models,
    naive_inference,
    naive_mean,
)

# Results
from .results.calibrated_results import CalibratedResult

# Estimators
from .estimators import BackgroundCalibratedMean, CalibratedOLS

# Errors
from .exceptions import (
    DlinferError,
    InsufficientDegreesOfFreedom,
    InsufficientModels,
    InvalidArgument,
    InvalidData,
    SingularFit,
    TargetNotInModel,
)

__all__ = [
    # Version
    "__version__",
    # Sampler
    "PerturbationSeed",
    "make_seed",
    "draw",
    "set_random_state",
    "variance_inflation",
    "inflation_to_delta",
    # Specs and fits
    "ModelSpec",
    "as_spec",
    "CandidateEstimate",
    "fit_candidate",
    "fit_candidates",
    # Calibration
    "ExcessVariance",
    "estimate_from_candidates",
    "estimate_from_background",
    "delta_from_excess",
    "aggregate",
    "calibrate",
    "calibrate_models",
    "calibrate_background",
    "naive_inference",
    "naive_mean",
    # Results
    "CalibratedResult",
    # Estimators
    "CalibratedOLS",
    "BackgroundCalibratedMean",
    # Errors
    "DlinferError",
    "InvalidArgument",
    "InvalidData",
    "TargetNotInModel",
    "SingularFit",
    "InsufficientModels",
    "InsufficientDegreesOfFreedom",
]
