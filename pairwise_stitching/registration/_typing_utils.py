"""Type aliases and utilities for phase correlation.

This module provides commonly used type aliases for numpy arrays and shape
arguments used throughout the registration package.
"""
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt

# Array type aliases
NumArray = npt.NDArray[Any]
FloatArray = npt.NDArray[np.float64]
ComplexArray = npt.NDArray[np.complexfloating]
IntArray = npt.NDArray[np.int_]

# Shape aliases
Shape = Tuple[int, ...]
PerAxis = Union[int, Sequence[int]]
OptionalPerAxis = Optional[PerAxis]


def per_axis(value: PerAxis, ndim: int, name: str) -> Shape:
    """Broadcast an int or a per-axis sequence to a tuple of length ``ndim``.

    Raises:
        ValueError: If a sequence of the wrong length is given.
    """
    if isinstance(value, (int, np.integer)):
        return (int(value),) * ndim
    values = tuple(int(v) for v in value)
    if len(values) != ndim:
        raise ValueError(
            f"{name} must have one entry per dimension ({ndim}), got {len(values)}"
        )
    return values
