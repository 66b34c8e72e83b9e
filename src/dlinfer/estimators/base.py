"""Base estimator class for dlinfer.

This module provides the base class for the calibrated estimators,
implementing the sklearn estimator interface so they can be cloned and have
their parameters inspected like any other estimator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.utils.validation import check_is_fitted

from .._typing import DataLike
from ..classical import as_frame

if TYPE_CHECKING:
    from ..results.calibrated_results import CalibratedResult


class CalibratedEstimatorBase(BaseEstimator, ABC):
    """Abstract base class for calibrated estimators.

    This class provides the sklearn-compatible interface with:
    - `fit(data)` returning a CalibratedResult
    - `summary()` / `confint()` delegating to the fitted result
    - Support for `clone()`

    All configuration happens in `__init__` (no side effects).
    All computation happens in `fit()`.

    Subclasses must implement `_fit_impl()`.
    """

    @abstractmethod
    def _fit_impl(self, data: pd.DataFrame) -> "CalibratedResult":
        """Implementation of the fitting procedure.

        Parameters
        ----------
        data : pd.DataFrame
            Observations.

        Returns
        -------
        CalibratedResult
            Calibrated estimate and inference.
        """
        pass

    def fit(self, data: DataLike, y=None) -> "CalibratedResult":
        """Fit the estimator.

        Parameters
        ----------
        data : DataFrame or mapping
            Observations containing every column the estimator reads.
        y : None
            Ignored; present for sklearn API consistency.

        Returns
        -------
        CalibratedResult
            Results object with `summary()` and `confint()` methods.
        """
        self.results_ = self._fit_impl(as_frame(data))
        self.delta_hat_ = self.results_.delta_hat
        self.is_fitted_ = True
        return self.results_

    def summary(self, alpha: float = 0.05) -> str:
        check_is_fitted(self, "results_")
        return self.results_.summary(alpha)

    def confint(self, alpha: float = 0.05) -> tuple[float, float]:
        check_is_fitted(self, "results_")
        return self.results_.confint(alpha)
