"""Perturbation strength estimation.

Two ways to infer how much variance the distributional perturbation adds on
top of sampling noise:

Mode A (``"models"``)
    Disagreement among candidate model fits. Under pure sampling noise the
    spread of the candidate points is comparable to their standard errors;
    any excess spread is attributed to the perturbation.

Mode B (``"background"``)
    Auxiliary covariates with known population means. Their standardized
    squared mean deviations estimate the variance of a sample mean per unit
    variance, which exceeds ``1/n`` under perturbation.

Both modes report the excess variance, the degrees of freedom of the t
reference distribution and the implied perturbation strength ``delta_hat``.
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

from ._typing import ArrayLike, AuxiliaryMoments, Float64Array
from .classical import CandidateEstimate
from .exceptions import (
    InsufficientDegreesOfFreedom,
    InsufficientModels,
    InvalidArgument,
    InvalidData,
)
from .perturbation import inflation_to_delta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExcessVariance:
    """Variance attributed to the distributional perturbation.

    Attributes
    ----------
    excess_variance : float
        Non-negative variance added on top of the sampling variance.
    dof : int
        Degrees of freedom of the t reference distribution.
    delta_hat : float
        Implied perturbation strength (may be ``inf``).
    mode : str
        ``"models"`` or ``"background"``.
    diagnostics : dict
        Mode-specific intermediate quantities.
    """

    excess_variance: float
    dof: int
    delta_hat: float
    mode: str
    diagnostics: dict[str, Any] = field(default_factory=dict, compare=False)


def delta_from_excess(excess: float, sampling: float, n: Optional[int] = None) -> float:
    """Perturbation strength implied by ``excess`` on top of ``sampling``.

    Applies :func:`~dlinfer.perturbation.inflation_to_delta` to the inflation
    ``1 + excess / sampling``.
    """
    excess = float(excess)
    sampling = float(sampling)
    if not excess >= 0:
        raise InvalidArgument(f"excess variance must be non-negative, got {excess}")
    if not sampling > 0:
        raise InvalidArgument(f"sampling variance must be positive, got {sampling}")
    return inflation_to_delta(1.0 + excess / sampling, n)


def _warn_infinite(delta_hat: float, mode: str) -> None:
    if math.isinf(delta_hat):
        warnings.warn(
            f"{mode}: excess variance is larger than any finite perturbation "
            "strength explains; delta_hat is inf",
            UserWarning,
            stacklevel=3,
        )


# =============================================================================
# Mode A: disagreement among candidate models
# =============================================================================

def estimate_from_candidates(
    estimates: Sequence[CandidateEstimate],
    n_obs: Optional[int] = None,
) -> ExcessVariance:
    """Excess variance from the spread of candidate estimates.

    Parameters
    ----------
    estimates : sequence of CandidateEstimate
        At least two candidate fits of the same target.
    n_obs : int, optional
        Observations behind the fits, used to map the inflation to
        ``delta_hat``. Defaults to the ``n_obs`` recorded on the estimates;
        if none is recorded the large-sample relationship is used.

    Returns
    -------
    ExcessVariance
        ``excess_variance = max(0, v_between - v_within)`` with ``dof = k``.

    Raises
    ------
    InsufficientModels
        If fewer than two estimates are given.
    InvalidData
        If every candidate has zero standard error.
    """
    estimates = list(estimates)
    k = len(estimates)
    if k < 2:
        raise InsufficientModels(f"need at least 2 candidate estimates, got {k}")

    specs = [e.spec for e in estimates]
    if len(set(specs)) < k:
        warnings.warn(
            "duplicated candidate specifications add no disagreement information "
            "but still count toward the degrees of freedom",
            UserWarning,
            stacklevel=2,
        )

    points = np.array([e.point for e in estimates], dtype=np.float64)
    ses = np.array([e.sampling_se for e in estimates], dtype=np.float64)
    if not (np.all(np.isfinite(points)) and np.all(np.isfinite(ses))):
        raise InvalidData("candidate estimates contain non-finite values")

    v_between = float(np.var(points, ddof=1))
    v_within = float(np.mean(ses ** 2))
    if v_within <= 0:
        raise InvalidData("all candidate standard errors are zero (perfect fits)")

    v_excess = max(0.0, v_between - v_within)

    if n_obs is None:
        recorded = [e.n_obs for e in estimates if e.n_obs > 0]
        n_obs = min(recorded) if recorded else None
    delta_hat = delta_from_excess(v_excess, v_within, n_obs)
    _warn_infinite(delta_hat, "models")

    logger.debug(
        "mode A: k=%d v_between=%.6g v_within=%.6g v_excess=%.6g delta_hat=%.4g",
        k, v_between, v_within, v_excess, delta_hat,
    )
    return ExcessVariance(
        excess_variance=v_excess,
        dof=k,
        delta_hat=delta_hat,
        mode="models",
        diagnostics={
            "k": k,
            "mean_point": float(np.mean(points)),
            "v_between": v_between,
            "v_within": v_within,
            "n_obs": n_obs,
        },
    )


# =============================================================================
# Mode B: background moments
# =============================================================================

def as_vector(values: ArrayLike, name: str) -> Float64Array:
    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidData(f"'{name}' is not numeric: {e}") from e
    if arr.ndim != 1:
        raise InvalidData(f"'{name}' must be one-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidData(f"'{name}' contains non-finite values")
    return arr


def estimate_from_background(
    sample: ArrayLike,
    auxiliary: AuxiliaryMoments,
) -> ExcessVariance:
    """Excess variance from auxiliary covariates with known means.

    Parameters
    ----------
    sample : array-like
        Target sample of length ``n``.
    auxiliary : mapping
        ``name -> (observed values, known population mean)``; every sequence
        has length ``n``.

    Returns
    -------
    ExcessVariance
        ``excess_variance = var(sample) * max(0, r - 1/n)`` where ``r`` is the
        mean standardized squared deviation, with ``dof = m``.

    Raises
    ------
    InsufficientDegreesOfFreedom
        If ``auxiliary`` is empty.
    InvalidData
        Length mismatch, non-finite values, ``n < 2`` or zero variance.
    """
    y = as_vector(sample, "sample")
    n = len(y)
    m = len(auxiliary)
    if m == 0:
        raise InsufficientDegreesOfFreedom("background calibration needs at least one auxiliary covariate")
    if n < 2:
        raise InvalidData(f"sample needs at least 2 observations, got {n}")

    var_y = float(np.var(y, ddof=1))
    if var_y <= 0:
        raise InvalidData("target sample has zero variance")

    ratios = {}
    for name, moment in auxiliary.items():
        try:
            values, mu = moment
        except (TypeError, ValueError) as e:
            raise InvalidData(f"auxiliary '{name}' must be (values, known mean)") from e
        z = as_vector(values, name)
        if len(z) != n:
            raise InvalidData(f"auxiliary '{name}' has length {len(z)}, sample has {n}")
        mu = float(mu)
        if not math.isfinite(mu):
            raise InvalidData(f"known mean of '{name}' is not finite")
        var_z = float(np.var(z, ddof=1))
        if var_z <= 0:
            raise InvalidData(f"auxiliary '{name}' has zero variance")
        ratios[name] = (float(np.mean(z)) - mu) ** 2 / var_z

    r = float(np.mean(list(ratios.values())))
    v_excess = var_y * max(0.0, r - 1.0 / n)
    delta_hat = inflation_to_delta(max(1.0, n * r), n)
    _warn_infinite(delta_hat, "background")

    logger.debug(
        "mode B: m=%d n=%d r=%.6g v_excess=%.6g delta_hat=%.4g",
        m, n, r, v_excess, delta_hat,
    )
    return ExcessVariance(
        excess_variance=v_excess,
        dof=m,
        delta_hat=delta_hat,
        mode="background",
        diagnostics={
            "m": m,
            "n_obs": n,
            "ratios": ratios,
            "mean_ratio": r,
            "sample_variance": var_y,
        },
    )
