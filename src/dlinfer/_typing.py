"""Type definitions for dlinfer.

This module provides type aliases using numpy.typing for clear,
consistent type annotations throughout the package.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    import pandas as pd

    from .specs import ModelSpec

# Core numeric types
Float64Array = NDArray[np.float64]
Int64Array = NDArray[np.int64]

# Flexible input types (accept both numpy and pandas)
ArrayLike = Union[Float64Array, "pd.Series", Sequence[float]]
DataLike = Union["pd.DataFrame", Mapping[str, ArrayLike]]

# Random source: explicit generator, integer seed, or the shared generator
RandomState = Union[np.random.Generator, int, None]

# Model specifications: spec object, formula string, or (response, predictors)
SpecLike = Union["ModelSpec", str, Tuple[str, Sequence[str]]]

# Background moments: name -> (observed values, known population mean)
AuxiliaryMoments = Mapping[str, Tuple[ArrayLike, float]]
