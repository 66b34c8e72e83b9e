"""Result containers for dlinfer."""

from .calibrated_results import CalibratedResult

__all__ = ["CalibratedResult"]
