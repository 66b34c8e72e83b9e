"""Background-moment calibrated mean."""

from __future__ import annotations

from typing import Mapping

import pandas as pd

from ..calibrate import calibrate_background
from ..exceptions import InvalidData
from ..results.calibrated_results import CalibratedResult
from .base import CalibratedEstimatorBase


class BackgroundCalibratedMean(CalibratedEstimatorBase):
    """Mean of a target column calibrated with auxiliary covariates.

    Parameters
    ----------
    known_means : mapping of str to float
        Auxiliary column name -> known population mean.
    target : str, default="Y"
        Column whose mean is estimated.
    null_value : float, default=0.0
        Value tested under the null hypothesis.

    Examples
    --------
    >>> model = BackgroundCalibratedMean({"Z1": 0.0, "Z2": 0.0}, target="Y")
    >>> model.fit(df).p_value
    """

    def __init__(
        self,
        known_means: Mapping[str, float] | None = None,
        target: str = "Y",
        null_value: float = 0.0,
    ):
        self.known_means = known_means
        self.target = target
        self.null_value = null_value

    def _fit_impl(self, data: pd.DataFrame) -> CalibratedResult:
        known_means = dict(self.known_means or {})
        missing = [c for c in [self.target, *known_means] if c not in data.columns]
        if missing:
            raise InvalidData(f"columns {missing} are missing from data")

        auxiliary = {name: (data[name].to_numpy(), mu) for name, mu in known_means.items()}
        return calibrate_background(
            data[self.target].to_numpy(),
            auxiliary,
            null_value=self.null_value,
            target=self.target,
        )
