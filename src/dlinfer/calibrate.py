"""Calibrated aggregation and public entry points.

Combines a point estimate and its sampling variance with the excess variance
attributed to the distributional perturbation into one standard error, t
statistic and p-value.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from ._typing import ArrayLike, AuxiliaryMoments, DataLike, SpecLike
from .classical import CandidateEstimate, fit_candidate, fit_candidates
from .exceptions import InsufficientDegreesOfFreedom, InvalidArgument, InvalidData
from .results.calibrated_results import CalibratedResult
from .specs import ModelSpec, as_spec
from .strength import (
    ExcessVariance,
    as_vector,
    estimate_from_background,
    estimate_from_candidates,
)

logger = logging.getLogger(__name__)

WEIGHTS = ("equal", "precision")


def t_test(estimate: float, variance: float, dof: int, null_value: float = 0.0) -> tuple[float, float]:
    """Two-sided t test. Returns ``(statistic, p_value)``."""
    if dof < 1:
        raise InsufficientDegreesOfFreedom(f"t reference needs dof >= 1, got {dof}")
    if not variance > 0:
        raise InvalidData(f"combined variance must be positive, got {variance}")
    statistic = (estimate - null_value) / math.sqrt(variance)
    p_value = float(2 * stats.t.sf(abs(statistic), df=dof))
    return float(statistic), p_value


def _candidate_weights(estimates: Sequence[CandidateEstimate], weights: str) -> np.ndarray:
    k = len(estimates)
    if weights == "equal":
        return np.full(k, 1.0 / k)
    ses = np.array([e.sampling_se for e in estimates], dtype=np.float64)
    if np.any(ses <= 0):
        raise InvalidData("precision weights need positive standard errors")
    w = 1.0 / ses ** 2
    return w / w.sum()


def aggregate(
    estimates_or_sample: Union[Sequence[CandidateEstimate], ArrayLike],
    excess: ExcessVariance,
    *,
    weights: str = "equal",
    null_value: float = 0.0,
    target: str = "",
) -> CalibratedResult:
    """Fold the excess variance into a calibrated result.

    Parameters
    ----------
    estimates_or_sample : sequence of CandidateEstimate or array-like
        Candidate fits for a ``"models"`` excess, the target sample for a
        ``"background"`` excess.
    excess : ExcessVariance
        Output of the strength estimator.
    weights : {"equal", "precision"}, default="equal"
        Averaging of candidate points and sampling variances (models only).
    null_value : float, default=0.0
        Value tested under the null hypothesis.
    target : str, optional
        Name reported on the result.

    Returns
    -------
    CalibratedResult

    Raises
    ------
    InsufficientDegreesOfFreedom
        If ``excess.dof < 1``.
    """
    if weights not in WEIGHTS:
        raise InvalidArgument(f"weights must be one of {WEIGHTS}, got {weights!r}")
    if excess.dof < 1:
        raise InsufficientDegreesOfFreedom(f"t reference needs dof >= 1, got {excess.dof}")

    candidates: list[CandidateEstimate] = []
    if excess.mode == "models":
        candidates = list(estimates_or_sample)
        if not candidates or not all(isinstance(c, CandidateEstimate) for c in candidates):
            raise InvalidArgument("a 'models' excess must be aggregated over CandidateEstimate objects")
        w = _candidate_weights(candidates, weights)
        points = np.array([c.point for c in candidates], dtype=np.float64)
        ses = np.array([c.sampling_se for c in candidates], dtype=np.float64)
        estimate = float(w @ points)
        sampling = float(w @ ses ** 2)
        n_obs = min(c.n_obs for c in candidates)
    elif excess.mode == "background":
        y = as_vector(estimates_or_sample, "sample")
        if len(y) < 2:
            raise InvalidData(f"sample needs at least 2 observations, got {len(y)}")
        estimate = float(np.mean(y))
        sampling = float(np.var(y, ddof=1) / len(y))
        n_obs = len(y)
    else:
        raise InvalidArgument(f"unknown excess mode {excess.mode!r}")

    combined = sampling + excess.excess_variance
    statistic, p_value = t_test(estimate, combined, excess.dof, null_value)

    logger.debug(
        "aggregate %s: estimate=%.6g sampling=%.6g excess=%.6g dof=%d p=%.4g",
        excess.mode, estimate, sampling, excess.excess_variance, excess.dof, p_value,
    )
    return CalibratedResult(
        estimate=estimate,
        std_error=math.sqrt(combined),
        p_value=p_value,
        delta_hat=excess.delta_hat,
        statistic=statistic,
        dof=excess.dof,
        sampling_variance=sampling,
        excess_variance=excess.excess_variance,
        mode=excess.mode,
        target=target,
        n_obs=n_obs,
        null_value=null_value,
        candidates=candidates,
    )


# =============================================================================
# Entry points
# =============================================================================

def _is_response_pair(obj) -> bool:
    """A single ``(response, predictors)`` pair rather than a list of specs."""
    if not isinstance(obj, (tuple, list)) or len(obj) != 2:
        return False
    response, predictors = obj
    if not isinstance(response, str) or "~" in response:
        return False
    if isinstance(predictors, str):
        return "~" not in predictors
    return not isinstance(predictors, ModelSpec)


def _is_numeric(values) -> bool:
    if isinstance(values, (str, ModelSpec)):
        return False
    try:
        np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError):
        return False
    return True


def calibrate_models(
    formulas: Sequence[SpecLike],
    data: DataLike,
    target: str,
    *,
    weights: str = "equal",
    null_value: float = 0.0,
) -> CalibratedResult:
    """Mode A: calibrate a target coefficient over candidate models.

    Parameters
    ----------
    formulas : sequence of ModelSpec, formula strings or (response, predictors)
        Admissible candidate models; each must contain ``target``.
    data : DataFrame or mapping
        Observations shared by every candidate.
    target : str
        Coefficient of interest.

    Examples
    --------
    >>> formulas = ["Y ~ T + X1", "Y ~ T + X1 + X2", "Y ~ T + X1 + X3"]
    >>> result = calibrate_models(formulas, df, "T")
    >>> estimate, std_error, p_value, delta_hat = result
    """
    if isinstance(formulas, (str, ModelSpec)) or _is_response_pair(formulas):
        formulas = [formulas]
    specs = [as_spec(f) for f in formulas]
    estimates = fit_candidates(specs, data, target)
    excess = estimate_from_candidates(estimates)
    return aggregate(estimates, excess, weights=weights, null_value=null_value, target=target)


def calibrate_background(
    sample: ArrayLike,
    auxiliary: AuxiliaryMoments,
    *,
    null_value: float = 0.0,
    target: str = "mean",
) -> CalibratedResult:
    """Mode B: calibrate the mean of ``sample`` with background moments.

    Parameters
    ----------
    sample : array-like
        Target sample.
    auxiliary : mapping
        ``name -> (observed values, known population mean)``.
    """
    excess = estimate_from_background(sample, auxiliary)
    return aggregate(sample, excess, null_value=null_value, target=target)


def calibrate(
    first,
    second,
    target: str | None = None,
    *,
    weights: str = "equal",
    null_value: float = 0.0,
) -> CalibratedResult:
    """Calibrated inference, dispatching on the arguments.

    ``calibrate(formulas, data, target)`` runs model-disagreement calibration;
    ``calibrate(sample, auxiliary)`` runs background-moment calibration.
    """
    if target is None:
        is_moments = isinstance(second, Mapping) and not isinstance(second, pd.DataFrame)
        if is_moments and _is_numeric(first):
            return calibrate_background(first, second, null_value=null_value)
        raise InvalidArgument(
            "calibrate(formulas, data, target) needs a target; "
            "for background calibration pass a numeric sample and a mapping "
            "of auxiliary moments"
        )
    return calibrate_models(first, second, target, weights=weights, null_value=null_value)


# =============================================================================
# Uncalibrated baselines
# =============================================================================

def naive_inference(
    spec: SpecLike,
    data: DataLike,
    target: str,
    *,
    null_value: float = 0.0,
) -> CalibratedResult:
    """Sampling-only inference from a single candidate fit."""
    estimate = fit_candidate(as_spec(spec), data, target)
    dof = int(round(estimate.df_resid))
    variance = estimate.sampling_variance
    statistic, p_value = t_test(estimate.point, variance, dof, null_value)
    return CalibratedResult(
        estimate=estimate.point,
        std_error=estimate.sampling_se,
        p_value=p_value,
        delta_hat=0.0,
        statistic=statistic,
        dof=dof,
        sampling_variance=variance,
        excess_variance=0.0,
        mode="naive",
        target=target,
        n_obs=estimate.n_obs,
        null_value=null_value,
        candidates=[estimate],
    )


def naive_mean(sample: ArrayLike, *, null_value: float = 0.0, target: str = "mean") -> CalibratedResult:
    """Sampling-only one-sample t inference for the mean of ``sample``."""
    y = as_vector(sample, "sample")
    n = len(y)
    if n < 2:
        raise InvalidData(f"sample needs at least 2 observations, got {n}")
    estimate = float(np.mean(y))
    variance = float(np.var(y, ddof=1) / n)
    statistic, p_value = t_test(estimate, variance, n - 1, null_value)
    return CalibratedResult(
        estimate=estimate,
        std_error=math.sqrt(variance),
        p_value=p_value,
        delta_hat=0.0,
        statistic=statistic,
        dof=n - 1,
        sampling_variance=variance,
        excess_variance=0.0,
        mode="naive",
        target=target,
        n_obs=n,
        null_value=null_value,
    )
