"""Model specifications.

A model specification is a response name plus an ordered list of predictor
names (an adjustment set). Formulas are accepted through a thin adapter over
``formulaic`` that admits main-effect terms only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from formulaic import Formula
from formulaic.errors import FormulaicError

from ._typing import SpecLike
from .exceptions import InvalidArgument


@dataclass(frozen=True)
class ModelSpec:
    """Linear model ``response ~ [const +] predictors``.

    Parameters
    ----------
    response : str
        Name of the response column.
    predictors : sequence of str
        Ordered predictor column names. Stored as a tuple.
    intercept : bool, default=True
        Whether the design carries a constant column.

    Examples
    --------
    >>> ModelSpec("Y", ["T", "X1"])
    ModelSpec(response='Y', predictors=('T', 'X1'), intercept=True)
    >>> ModelSpec.from_formula("Y ~ T + X1 - 1").intercept
    False
    """

    response: str
    predictors: tuple[str, ...]
    intercept: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.predictors, str):
            raise InvalidArgument("predictors must be a sequence of names, not a string")
        object.__setattr__(self, "predictors", tuple(self.predictors))

        if not isinstance(self.response, str) or not self.response:
            raise InvalidArgument(f"response must be a non-empty name, got {self.response!r}")
        for name in self.predictors:
            if not isinstance(name, str) or not name:
                raise InvalidArgument(f"predictor names must be non-empty strings, got {name!r}")
        if not self.predictors:
            raise InvalidArgument(f"model for '{self.response}' has no predictors")
        if len(set(self.predictors)) != len(self.predictors):
            raise InvalidArgument(f"duplicate predictors in {list(self.predictors)}")
        if self.response in self.predictors:
            raise InvalidArgument(f"response '{self.response}' also listed as a predictor")

    @classmethod
    def from_formula(cls, formula: str) -> "ModelSpec":
        """Parse ``"y ~ a + b"``. ``- 1`` or ``+ 0`` drops the intercept."""
        if not isinstance(formula, str):
            raise InvalidArgument(f"formula must be a string, got {type(formula).__name__}")
        if "~" not in formula:
            raise InvalidArgument(f"formula '{formula}' has no response (expected 'y ~ ...')")
        try:
            parsed = Formula(formula)
        except FormulaicError as e:
            raise InvalidArgument(f"cannot parse formula '{formula}': {e}") from e

        lhs = [_term_name(term, formula) for term in parsed.lhs]
        if len(lhs) != 1 or lhs[0] is None:
            raise InvalidArgument(f"formula '{formula}' must have exactly one response")

        intercept = False
        predictors = []
        for term in parsed.rhs:
            name = _term_name(term, formula)
            if name is None:
                intercept = True
            else:
                predictors.append(name)
        return cls(lhs[0], tuple(predictors), intercept)

    @property
    def columns(self) -> tuple[str, ...]:
        """All data columns the model reads (response first)."""
        return (self.response,) + self.predictors

    def __str__(self) -> str:
        rhs = " + ".join(self.predictors)
        if not self.intercept:
            rhs += " - 1"
        return f"{self.response} ~ {rhs}"


def _term_name(term, formula: str) -> str | None:
    """Column name of a main-effect term; ``None`` for the intercept."""
    if str(term) == "1":
        return None
    factors = list(term.factors)
    if len(factors) != 1:
        raise InvalidArgument(
            f"formula '{formula}': only main effects are supported, got '{term}'"
        )
    return str(factors[0].expr)


def as_spec(obj: SpecLike) -> ModelSpec:
    """Coerce a ModelSpec, a formula string, or a ``(response, predictors)`` pair."""
    if isinstance(obj, ModelSpec):
        return obj
    if isinstance(obj, str):
        return ModelSpec.from_formula(obj)
    if isinstance(obj, Sequence) and len(obj) == 2:
        response, predictors = obj
        if isinstance(predictors, str):
            predictors = (predictors,)
        return ModelSpec(response, tuple(predictors))
    raise InvalidArgument(
        f"cannot interpret {obj!r} as a model specification "
        "(expected ModelSpec, formula string or (response, predictors))"
    )
