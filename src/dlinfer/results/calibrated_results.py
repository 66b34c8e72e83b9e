"""Results container for calibrated inference.

This module provides the CalibratedResult class that holds the calibrated
estimate of one target quantity and provides methods for statistical
inference (summary, confint).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator

import numpy as np
from scipy import stats
from tabulate import tabulate

from ..classical import CandidateEstimate


@dataclass
class CalibratedResult:
    """Calibrated estimate, standard error and test for one target.

    The first four fields are the reported quantities, in fixed order;
    unpacking a result yields exactly these four::

        estimate, std_error, p_value, delta_hat = result

    Attributes
    ----------
    estimate : float
        Calibrated point estimate.
    std_error : float
        Square root of the combined (sampling + excess) variance.
    p_value : float
        Two-sided p-value of ``estimate == null_value`` against a t
        distribution with ``dof`` degrees of freedom.
    delta_hat : float
        Estimated perturbation strength.
    statistic : float
        t statistic.
    dof : int
        Degrees of freedom of the reference t distribution.
    sampling_variance : float
        Variance from ordinary sampling noise.
    excess_variance : float
        Variance attributed to the distributional perturbation.
    mode : str
        ``"models"``, ``"background"`` or ``"naive"``.
    target : str
        Name of the target quantity.
    n_obs : int
        Observations in the sample.
    null_value : float
        Value tested under the null hypothesis.
    candidates : list[CandidateEstimate]
        Candidate fits behind a ``"models"`` result.

    Examples
    --------
    >>> result = calibrate(formulas, data, "T")
    >>> print(result.summary())
    >>> result.confint(alpha=0.05)
    """

    estimate: float
    std_error: float
    p_value: float
    delta_hat: float
    statistic: float = math.nan
    dof: int = 0
    sampling_variance: float = math.nan
    excess_variance: float = 0.0
    mode: str = "models"
    target: str = ""
    n_obs: int = 0
    null_value: float = 0.0
    candidates: list[CandidateEstimate] = field(default_factory=list, repr=False)

    def __iter__(self) -> Iterator[float]:
        return iter((self.estimate, self.std_error, self.p_value, self.delta_hat))

    @property
    def combined_variance(self) -> float:
        return self.std_error ** 2

    @property
    def variance_share(self) -> float:
        """Fraction of the combined variance attributed to the perturbation."""
        total = self.sampling_variance + self.excess_variance
        if not total > 0:
            return math.nan
        return float(self.excess_variance / total)

    def confint(self, alpha: float = 0.05) -> tuple[float, float]:
        """Confidence interval from the t reference distribution.

        Parameters
        ----------
        alpha : float, default=0.05
            Significance level. Default gives 95% CI.

        Returns
        -------
        tuple[float, float]
            ``(lower, upper)``.
        """
        if not 0 < alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {alpha}")
        q = float(stats.t.ppf(1 - alpha / 2, df=self.dof))
        return (self.estimate - q * self.std_error, self.estimate + q * self.std_error)

    def to_dict(self) -> dict[str, Any]:
        """Flat dictionary of the scalar fields (candidates summarized)."""
        return {
            "estimate": self.estimate,
            "std_error": self.std_error,
            "p_value": self.p_value,
            "delta_hat": self.delta_hat,
            "statistic": self.statistic,
            "dof": self.dof,
            "sampling_variance": self.sampling_variance,
            "excess_variance": self.excess_variance,
            "mode": self.mode,
            "target": self.target,
            "n_obs": self.n_obs,
            "null_value": self.null_value,
            "n_candidates": len(self.candidates),
        }

    def summary(self, alpha: float = 0.05) -> str:
        """Generate a summary table.

        Parameters
        ----------
        alpha : float, default=0.05
            Significance level for the confidence interval.

        Returns
        -------
        str
            Formatted summary table.
        """
        titles = {
            "models": "Calibrated Inference: Model Disagreement",
            "background": "Calibrated Inference: Background Moments",
            "naive": "Uncalibrated Inference: Sampling Only",
        }
        lines = []
        lines.append("=" * 78)
        lines.append(titles.get(self.mode, "Calibrated Inference").center(78).rstrip())
        lines.append("=" * 78)
        lines.append(f"Target:           {self.target}")
        lines.append(f"Mode:             {self.mode}")
        lines.append(f"No. Observations: {self.n_obs:,}")
        lines.append(f"Df (t reference): {self.dof}")
        if self.candidates:
            lines.append(f"Candidate models: {len(self.candidates)}")
        lines.append("-" * 78)
        lines.append(f"Sampling var:     {self.sampling_variance:.6g}")
        lines.append(f"Excess var:       {self.excess_variance:.6g}")
        lines.append(f"delta_hat:        {self.delta_hat:.4f}")
        lines.append("=" * 78)
        lines.append("")

        lower, upper = self.confint(alpha)
        ci_level = int(round((1 - alpha) * 100))
        p = f"{self.p_value:.4f}" if not np.isnan(self.p_value) else "-"
        rows = [[
            self.target,
            f"{self.estimate:.6f}",
            f"{self.std_error:.6f}",
            f"{self.statistic:.3f}",
            p,
            f"[{lower:.4f}, {upper:.4f}]",
        ]]
        headers = ["", "coef", "std err", "t", "P>|t|", f"[{ci_level}% CI]"]
        lines.append(tabulate(rows, headers=headers, tablefmt="simple"))

        if self.candidates:
            lines.append("-" * 78)
            cand_rows = [
                [str(c.spec), f"{c.point:.6f}", f"{c.sampling_se:.6f}"]
                for c in self.candidates
            ]
            lines.append(tabulate(cand_rows, headers=["candidate", "coef", "std err"], tablefmt="simple"))

        lines.append("=" * 78)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CalibratedResult(estimate={self.estimate:.6g}, "
            f"std_error={self.std_error:.6g}, "
            f"p_value={self.p_value:.4g}, "
            f"delta_hat={self.delta_hat:.4g}, "
            f"mode='{self.mode}')"
        )
