"""Exception hierarchy for dlinfer.

Every error raised by the package derives from :class:`DlinferError`.
Argument and data errors also derive from ``ValueError`` so that code
written against plain ``ValueError`` keeps working.
"""

from __future__ import annotations


class DlinferError(Exception):
    """Base class for all dlinfer errors."""


class InvalidArgument(DlinferError, ValueError):
    """Malformed parameter (seed size, perturbation strength, sd, spec)."""


class InvalidData(DlinferError, ValueError):
    """Malformed dataset: missing columns, ragged lengths, non-finite values."""


class TargetNotInModel(DlinferError, ValueError):
    """The target predictor does not appear in a model specification."""

    def __init__(self, target: str, spec: object) -> None:
        self.target = target
        self.spec = spec
        super().__init__(f"target '{target}' is not a predictor of {spec}")


class SingularFit(DlinferError, ArithmeticError):
    """The design matrix of a candidate fit is not full column rank."""


class InsufficientModels(DlinferError, ValueError):
    """Model-disagreement calibration needs at least two candidate fits."""


class InsufficientDegreesOfFreedom(DlinferError, ValueError):
    """No valid t reference distribution (dof < 1)."""
