"""Pytest configuration and fixtures for dlinfer tests."""

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def seed():
    """Random seed for reproducibility."""
    return 42


@pytest.fixture
def regression_data(seed):
    """Unperturbed linear data: Y = 2*T + X1 + eps, T = X1 + nu.

    True coefficient on T = 2.0
    """
    rng = np.random.default_rng(seed)
    n = 200
    X1 = rng.normal(size=n)
    X2 = rng.normal(size=n)
    T = X1 + rng.normal(size=n)
    Y = 2.0 * T + X1 + rng.normal(size=n)
    return pd.DataFrame({"Y": Y, "T": T, "X1": X1, "X2": X2})


@pytest.fixture
def causal_data(seed):
    """Causal-effect scenario (n=500, delta=2, tau=1)."""
    from dlinfer.dgp import CausalEffectDGP

    return CausalEffectDGP(n=500, delta=2.0, tau=1.0, seed=seed).generate()


@pytest.fixture
def background_data(seed):
    """Background-moment scenario with moderate perturbation."""
    from dlinfer.dgp import BackgroundDGP

    return BackgroundDGP(n=200, delta=1.0, n_auxiliary=4, mu=1.0, seed=seed).generate()


@pytest.fixture
def make_estimate():
    """Factory for hand-made candidate estimates with distinct specs."""
    from dlinfer.classical import CandidateEstimate
    from dlinfer.specs import ModelSpec

    def _make(points, ses, n_obs=0):
        return [
            CandidateEstimate(
                point=float(p),
                sampling_se=float(s),
                spec=ModelSpec("Y", ["T"] + [f"X{j}" for j in range(1, i + 1)]),
                n_obs=n_obs,
            )
            for i, (p, s) in enumerate(zip(points, ses))
        ]

    return _make
