"""Data Generating Processes for calibration studies.

Every variable of one dataset is drawn from the same perturbation seed, so the
whole dataset shares one realized distributional perturbation.

- causal: confounded treatment effect with 8 valid adjustment sets
    X1..X4 ~ N(0, 1), e_T, e_Y ~ N(0, 1)
    T = X1 + X2 + e_T
    Y = tau*T + X1 + X3 + e_Y
- background: target Y ~ N(mu, 1) with auxiliary covariates Z1..Zm ~ N(0, 1)
  whose population means (0) are known
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import combinations
from typing import Optional

import numpy as np
import pandas as pd

from ._typing import Float64Array
from .perturbation import PerturbationSeed, make_seed


@dataclass
class DGPResult:
    """Container for generated data."""
    data: pd.DataFrame
    truth: float                                    # True value of the target
    seed: PerturbationSeed
    formulas: list[str] = field(default_factory=list)
    known_means: dict[str, float] = field(default_factory=dict)

    def auxiliary(self) -> dict[str, tuple[Float64Array, float]]:
        """Background moments ``name -> (values, known mean)``."""
        return {
            name: (self.data[name].to_numpy(), mu)
            for name, mu in self.known_means.items()
        }


class BaseDGP(ABC):
    """Abstract base for DGPs."""
    name: str = "base"

    def __init__(self, n: int = 500, delta: float = 2.0, seed: int = 42):
        if n < 2:
            raise ValueError("n must be at least 2")
        if delta < 0:
            raise ValueError("delta must be non-negative")
        self.n = n
        self.delta = delta
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def reset_rng(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self.seed = seed
        self.rng = np.random.default_rng(self.seed)

    def _make_seed(self) -> PerturbationSeed:
        return make_seed(self.n, self.delta, rng=self.rng)

    @abstractmethod
    def generate(self) -> DGPResult:
        pass


class CausalEffectDGP(BaseDGP):
    """Y = tau*T + X1 + X3 + e_Y with T = X1 + X2 + e_T.

    X1 confounds treatment and outcome, X2 drives only the treatment, X3 only
    the outcome and X4 neither. Every adjustment set containing X1 identifies
    tau, which gives 8 valid candidate models.
    """
    name = "causal"
    optional = ("X2", "X3", "X4")

    def __init__(self, n: int = 500, delta: float = 2.0, tau: float = 1.0, seed: int = 42):
        super().__init__(n, delta, seed)
        self.tau = tau

    @classmethod
    def candidate_formulas(cls) -> list[str]:
        """``Y ~ T + X1 + S`` for every subset S of {X2, X3, X4}."""
        formulas = []
        for size in range(len(cls.optional) + 1):
            for subset in combinations(cls.optional, size):
                formulas.append(" + ".join(("Y ~ T", "X1") + subset))
        return formulas

    def generate(self) -> DGPResult:
        seed = self._make_seed()
        X1, X2, X3, X4, e_T, e_Y = (seed.draw(rng=self.rng) for _ in range(6))
        T = X1 + X2 + e_T
        Y = self.tau * T + X1 + X3 + e_Y
        data = pd.DataFrame({"Y": Y, "T": T, "X1": X1, "X2": X2, "X3": X3, "X4": X4})
        return DGPResult(data, float(self.tau), seed, formulas=self.candidate_formulas())


class BackgroundDGP(BaseDGP):
    """Y ~ N(mu, 1) with auxiliary Z1..Zm ~ N(0, 1) of known mean 0."""
    name = "background"

    def __init__(
        self,
        n: int = 100,
        delta: float = 10.0,
        n_auxiliary: int = 4,
        mu: float = 1.0,
        seed: int = 42,
    ):
        super().__init__(n, delta, seed)
        if n_auxiliary < 0:
            raise ValueError("n_auxiliary must be non-negative")
        self.n_auxiliary = n_auxiliary
        self.mu = mu

    def generate(self) -> DGPResult:
        seed = self._make_seed()
        columns = {"Y": seed.draw(mean=self.mu, rng=self.rng)}
        known_means = {}
        for j in range(1, self.n_auxiliary + 1):
            columns[f"Z{j}"] = seed.draw(rng=self.rng)
            known_means[f"Z{j}"] = 0.0
        return DGPResult(pd.DataFrame(columns), float(self.mu), seed, known_means=known_means)


DGPS = {
    "causal": CausalEffectDGP,
    "background": BackgroundDGP,
}


def get_dgp(name: str, **kwargs) -> BaseDGP:
    if name not in DGPS:
        raise ValueError(f"Unknown DGP: {name}. Available: {list(DGPS.keys())}")
    return DGPS[name](**kwargs)
