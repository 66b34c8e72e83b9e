"""Candidate estimator fitter.

Fits one OLS regression per candidate model specification with statsmodels
and extracts the target coefficient together with its classical standard
error.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping

import numpy as np
import pandas as pd
import statsmodels.api as sm

from ._typing import DataLike, SpecLike
from .exceptions import InvalidArgument, InvalidData, SingularFit, TargetNotInModel
from .specs import ModelSpec, as_spec

logger = logging.getLogger(__name__)

INTERCEPT = "Intercept"


@dataclass(frozen=True)
class CandidateEstimate:
    """Target coefficient from one candidate model."""
    point: float            # OLS coefficient on the target
    sampling_se: float      # Classical (homoskedastic) standard error
    spec: ModelSpec         # Model the estimate came from
    n_obs: int = 0          # Rows used in the fit
    df_resid: float = 0.0   # Residual degrees of freedom

    @property
    def sampling_variance(self) -> float:
        return self.sampling_se ** 2


def as_frame(data: DataLike) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        return data
    if isinstance(data, Mapping):
        try:
            return pd.DataFrame({k: np.asarray(v) for k, v in data.items()})
        except ValueError as e:
            raise InvalidData(f"columns differ in length: {e}") from e
    raise InvalidData(
        f"data must be a DataFrame or a mapping of column name to values, got {type(data).__name__}"
    )


def _build_design(spec: ModelSpec, frame: pd.DataFrame) -> tuple[np.ndarray, np.ndarray, list[str]]:
    """Build ``(y, design, column_names)`` as float64 copies of ``frame``."""
    missing = [c for c in spec.columns if c not in frame.columns]
    if missing:
        raise InvalidData(f"columns {missing} required by '{spec}' are missing from data")

    try:
        y = frame[spec.response].to_numpy(dtype=np.float64, copy=True)
        X = frame[list(spec.predictors)].to_numpy(dtype=np.float64, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidData(f"non-numeric values in columns of '{spec}': {e}") from e

    if not (np.all(np.isfinite(y)) and np.all(np.isfinite(X))):
        raise InvalidData(f"non-finite values in columns of '{spec}'")

    names = list(spec.predictors)
    if spec.intercept:
        if INTERCEPT in names:
            raise InvalidArgument(f"predictor name '{INTERCEPT}' is reserved for the constant")
        X = np.column_stack([np.ones(len(y)), X])
        names = [INTERCEPT] + names

    if X.shape[0] <= X.shape[1]:
        raise InvalidData(
            f"'{spec}' needs more than {X.shape[1]} rows, data has {X.shape[0]}"
        )
    return y, X, names


def fit_candidate(spec: SpecLike, data: DataLike, target: str) -> CandidateEstimate:
    """OLS fit of one candidate model: target coefficient and its SE.

    Parameters
    ----------
    spec : ModelSpec, formula string or (response, predictors)
        Candidate model.
    data : DataFrame or mapping
        Observations; not modified.
    target : str
        Predictor whose coefficient is reported.

    Returns
    -------
    CandidateEstimate

    Raises
    ------
    TargetNotInModel
        If ``target`` is not among the predictors of ``spec``.
    InvalidData
        Missing columns, ragged or non-numeric or non-finite values, or too
        few rows.
    SingularFit
        If the design is not of full column rank.
    """
    spec = as_spec(spec)
    if target not in spec.predictors:
        raise TargetNotInModel(target, spec)

    frame = as_frame(data)
    y, design, names = _build_design(spec, frame)

    rank = np.linalg.matrix_rank(design)
    if rank < design.shape[1]:
        raise SingularFit(f"design of '{spec}' has rank {rank} < {design.shape[1]} columns")

    result = sm.OLS(y, design).fit()

    idx = names.index(target)
    point = float(result.params[idx])
    se = float(result.bse[idx])
    if not math.isfinite(point) or not math.isfinite(se):
        raise SingularFit(f"non-finite coefficient or standard error for '{target}' in '{spec}'")

    logger.debug("fit %s: %s=%.6g se=%.6g n=%d", spec, target, point, se, len(y))
    return CandidateEstimate(
        point=point,
        sampling_se=se,
        spec=spec,
        n_obs=int(result.nobs),
        df_resid=float(result.df_resid),
    )


def fit_candidates(
    specs: Iterable[SpecLike], data: DataLike, target: str
) -> list[CandidateEstimate]:
    """Fit every candidate model in order."""
    frame = as_frame(data)
    return [fit_candidate(spec, frame, target) for spec in specs]
