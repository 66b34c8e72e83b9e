"""Estimators for dlinfer."""

from .background import BackgroundCalibratedMean
from .base import CalibratedEstimatorBase
from .calibrated_ols import CalibratedOLS

__all__ = [
    "CalibratedEstimatorBase",
    "CalibratedOLS",
    "BackgroundCalibratedMean",
]
