"""Element kinds supported by the phase correlation pipeline.

Images, spectra and correlation matrices are numpy arrays whose element type
must be one of a small closed set: 32/64-bit floats for real data and
complex64/complex128 for spectra. Each kind knows how to allocate a buffer of
itself and how to do the few pointwise operations the pipeline needs.
"""
import enum
from typing import Any, Optional

import numpy as np

from ._typing_utils import NumArray, Shape


class UnsupportedElementTypeError(TypeError):
    """Raised when a working buffer cannot be created for an element type."""

    def __init__(self, dtype: Any, reason: str = "") -> None:
        self.dtype = dtype
        message = f"Cannot instantiate a buffer for element type {dtype!s}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ElementKind(enum.Enum):
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def is_complex(self) -> bool:
        return self in (ElementKind.COMPLEX64, ElementKind.COMPLEX128)

    @property
    def real_kind(self) -> "ElementKind":
        """The real kind with the same precision."""
        if self in (ElementKind.FLOAT32, ElementKind.COMPLEX64):
            return ElementKind.FLOAT32
        return ElementKind.FLOAT64

    @property
    def complex_kind(self) -> "ElementKind":
        """The complex kind with the same precision."""
        if self in (ElementKind.FLOAT32, ElementKind.COMPLEX64):
            return ElementKind.COMPLEX64
        return ElementKind.COMPLEX128

    def allocate(self, shape: Shape) -> NumArray:
        """Allocate a zero-filled buffer of this kind."""
        return np.zeros(shape, dtype=self.dtype)

    def magnitude(self, values: NumArray) -> NumArray:
        """Pointwise magnitude, in the real kind of the same precision."""
        return np.abs(values).astype(self.real_kind.dtype, copy=False)

    def conjugate(self, values: NumArray, out: Optional[NumArray] = None) -> NumArray:
        """Pointwise complex conjugate; a copy (or ``out``) for real kinds."""
        return np.conjugate(values, out=out)

    def multiply(
        self, a: NumArray, b: NumArray, out: Optional[NumArray] = None
    ) -> NumArray:
        """Pointwise product of ``a`` and ``b``."""
        return np.multiply(a, b, out=out)

    @classmethod
    def from_dtype(cls, dtype: Any) -> "ElementKind":
        """Look up the kind of an existing buffer.

        Raises:
            UnsupportedElementTypeError: If the dtype is not in the closed set.
        """
        try:
            dtype = np.dtype(dtype)
        except TypeError as e:
            raise UnsupportedElementTypeError(dtype, str(e)) from e
        for kind in cls:
            if kind.dtype == dtype:
                return kind
        raise UnsupportedElementTypeError(dtype)

    @classmethod
    def coerce(cls, value: Any) -> "ElementKind":
        """Accept either an ``ElementKind`` or anything numpy understands as a dtype."""
        if isinstance(value, cls):
            return value
        return cls.from_dtype(value)

    @classmethod
    def for_image(cls, dtype: Any) -> "ElementKind":
        """Pick the real kind used to transform an image of ``dtype``.

        Small integer and boolean images are promoted to float32, wider
        integers to float64. Complex images are rejected because the forward
        transform is real-to-complex.

        Raises:
            UnsupportedElementTypeError: If the image dtype cannot be used.
        """
        dtype = np.dtype(dtype)
        if dtype == np.bool_:
            return cls.FLOAT32
        if np.issubdtype(dtype, np.integer):
            return cls.FLOAT32 if dtype.itemsize <= 2 else cls.FLOAT64
        if np.issubdtype(dtype, np.complexfloating):
            raise UnsupportedElementTypeError(
                dtype, "images must be real-valued for a real-to-complex transform"
            )
        if dtype == np.float16:
            return cls.FLOAT32
        return cls.from_dtype(dtype)
