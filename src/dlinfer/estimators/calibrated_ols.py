"""Calibrated OLS over candidate adjustment sets."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from .._typing import SpecLike
from ..calibrate import calibrate_models
from ..results.calibrated_results import CalibratedResult
from .base import CalibratedEstimatorBase


class CalibratedOLS(CalibratedEstimatorBase):
    """Target coefficient calibrated over several candidate OLS models.

    Each candidate is fit by OLS; the disagreement among the candidate
    coefficients beyond their sampling error is attributed to distributional
    perturbation and folded into the standard error.

    Parameters
    ----------
    formulas : sequence of str, ModelSpec or (response, predictors)
        At least two admissible candidate models, each containing `target`.
    target : str
        Predictor whose coefficient is calibrated.
    weights : {"equal", "precision"}, default="equal"
        How candidate points and sampling variances are averaged.
    null_value : float, default=0.0
        Value tested under the null hypothesis.

    Attributes
    ----------
    results_ : CalibratedResult
        Fitted results.
    candidates_ : list[CandidateEstimate]
        Per-candidate fits.
    delta_hat_ : float
        Estimated perturbation strength.

    Examples
    --------
    >>> model = CalibratedOLS(["Y ~ T + X1", "Y ~ T + X1 + X2"], target="T")
    >>> result = model.fit(df)
    >>> print(result.summary())
    """

    def __init__(
        self,
        formulas: Sequence[SpecLike] = (),
        target: str = "T",
        weights: str = "equal",
        null_value: float = 0.0,
    ):
        self.formulas = formulas
        self.target = target
        self.weights = weights
        self.null_value = null_value

    def _fit_impl(self, data: pd.DataFrame) -> CalibratedResult:
        result = calibrate_models(
            self.formulas,
            data,
            self.target,
            weights=self.weights,
            null_value=self.null_value,
        )
        self.candidates_ = list(result.candidates)
        return result
