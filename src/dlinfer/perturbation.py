"""Distributional perturbation sampler.

A perturbation seed fixes a random discrete perturbation of the nominal
distribution. The perturbed distribution is drawn from a Dirichlet process
whose base measure is the nominal distribution and whose concentration is
``alpha = n / delta**2``. The seed stores, for each of the ``n`` positions,
the latent atom it was drawn from (sequential Polya urn):

- position ``i`` starts a new atom with probability ``alpha / (alpha + i)``
- otherwise it copies the atom of a uniformly chosen earlier position

Every draw against one seed reuses the same atom structure, so all variables
drawn from a seed are perturbed together. With ``delta = 0`` every position is
its own atom and draws are ordinary iid samples.

The realized sample mean of a draw has variance

    sd**2 / n * (1 + delta**2 * (n - 1) / (n + delta**2))

which is approximately ``(1 + delta**2)`` times the sampling variance.
"""

from __future__ import annotations

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

import numpy as np

from ._typing import Float64Array, Int64Array, RandomState
from .exceptions import InvalidArgument

logger = logging.getLogger(__name__)

_global_rng = np.random.default_rng()
_global_lock = threading.Lock()


def set_random_state(seed: Optional[int] = None) -> None:
    """Reseed the process-wide generator used when ``rng`` is omitted."""
    global _global_rng
    with _global_lock:
        _global_rng = np.random.default_rng(seed)


@contextmanager
def _generator(rng: RandomState) -> Iterator[np.random.Generator]:
    """Yield a generator for ``rng``, holding the global lock if needed."""
    if rng is None:
        with _global_lock:
            yield _global_rng
    elif isinstance(rng, np.random.Generator):
        yield rng
    elif isinstance(rng, (int, np.integer)) and not isinstance(rng, bool):
        yield np.random.default_rng(int(rng))
    else:
        raise InvalidArgument(
            f"rng must be a numpy Generator, an int seed or None, got {type(rng).__name__}"
        )


# =============================================================================
# Inflation relationship
# =============================================================================

def variance_inflation(delta: float, n: Optional[int] = None) -> float:
    """Factor by which a perturbation of strength ``delta`` inflates the
    variance of a sample mean over ``n`` positions.

    With ``n=None`` the large-sample limit ``1 + delta**2`` is returned.
    """
    delta = float(delta)
    if not delta >= 0:
        raise InvalidArgument(f"delta must be non-negative, got {delta}")
    if math.isinf(delta):
        return float(n) if n is not None else math.inf
    d2 = delta ** 2
    if n is None:
        return 1.0 + d2
    return 1.0 + d2 * (n - 1) / (n + d2)


def inflation_to_delta(inflation: float, n: Optional[int] = None) -> float:
    """Invert :func:`variance_inflation`.

    Returns ``inf`` when the inflation is at least ``n``, which no finite
    perturbation strength produces.
    """
    f = float(inflation)
    if not f >= 1.0:
        raise InvalidArgument(f"inflation must be at least 1, got {f}")
    if n is None:
        return math.sqrt(f - 1.0) if math.isfinite(f) else math.inf
    if f >= n:
        return math.inf
    return math.sqrt(n * (f - 1.0) / (n - f))


# =============================================================================
# Seed
# =============================================================================

@dataclass(frozen=True)
class PerturbationSeed:
    """Realized distributional perturbation for samples of size ``n``.

    Attributes
    ----------
    n : int
        Sample size of every draw.
    delta : float
        Perturbation strength.
    labels : ndarray of int64
        Atom label of each position (read-only).
    """

    n: int
    delta: float
    labels: Int64Array = field(repr=False, compare=False)

    @property
    def n_atoms(self) -> int:
        """Number of distinct atoms in the realized perturbation."""
        return int(self.labels.max()) + 1

    @property
    def atom_sizes(self) -> Int64Array:
        return np.bincount(self.labels)

    def draw(self, mean: float = 0.0, sd: float = 1.0, rng: RandomState = None) -> Float64Array:
        """Draw one perturbed sample. See :func:`draw`."""
        return draw(self, mean=mean, sd=sd, rng=rng)


def _urn_labels(n: int, alpha: float, rng: np.random.Generator) -> Int64Array:
    labels = np.empty(n, dtype=np.int64)
    u = rng.random(n)
    v = rng.random(n)
    next_label = 0
    for i in range(n):
        if math.isinf(alpha) or u[i] * (alpha + i) < alpha:
            labels[i] = next_label
            next_label += 1
        else:
            labels[i] = labels[int(v[i] * i)]
    return labels


def make_seed(n: int, delta: float, rng: RandomState = None) -> PerturbationSeed:
    """Draw a new perturbation seed.

    Parameters
    ----------
    n : int
        Positive sample size.
    delta : float
        Non-negative, finite perturbation strength. ``0`` means no
        perturbation.
    rng : Generator, int or None
        Random source. ``None`` uses the process-wide generator.

    Returns
    -------
    PerturbationSeed

    Raises
    ------
    InvalidArgument
        If ``n`` is not a positive integer or ``delta`` is negative or not
        finite.
    """
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidArgument(f"n must be a positive integer, got {n!r}")
    n = int(n)
    if n <= 0:
        raise InvalidArgument(f"n must be a positive integer, got {n}")
    try:
        delta = float(delta)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"delta must be a number, got {delta!r}") from e
    if not math.isfinite(delta) or delta < 0:
        raise InvalidArgument(f"delta must be finite and non-negative, got {delta}")

    alpha = math.inf if delta == 0 else n / delta ** 2
    with _generator(rng) as gen:
        labels = _urn_labels(n, alpha, gen)
    labels.setflags(write=False)

    seed = PerturbationSeed(n=n, delta=delta, labels=labels)
    logger.debug("perturbation seed: n=%d delta=%.4g atoms=%d", n, delta, seed.n_atoms)
    return seed


def draw(
    seed: PerturbationSeed,
    mean: float = 0.0,
    sd: float = 1.0,
    rng: RandomState = None,
) -> Float64Array:
    """Draw a perturbed sample of length ``seed.n``.

    Each value is marginally ``N(mean, sd**2)``; positions that share an atom
    of ``seed`` take identical values. The seed is not modified and every call
    draws fresh atom values.

    Raises
    ------
    InvalidArgument
        If ``sd`` is not positive or ``mean``/``sd`` are not finite.
    """
    if not isinstance(seed, PerturbationSeed):
        raise InvalidArgument(f"seed must be a PerturbationSeed, got {type(seed).__name__}")
    mean = float(mean)
    sd = float(sd)
    if not math.isfinite(mean):
        raise InvalidArgument(f"mean must be finite, got {mean}")
    if not math.isfinite(sd) or sd <= 0:
        raise InvalidArgument(f"sd must be finite and positive, got {sd}")

    with _generator(rng) as gen:
        z = gen.standard_normal(seed.n_atoms)
    return mean + sd * z[seed.labels]
