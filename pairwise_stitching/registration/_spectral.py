"""Spectral side of phase correlation.

Turns two real images (or two precomputed spectra) into a phase correlation
matrix (PCM):

    PCM = IRFFT( F1/|F1| * conj(F2/|F2|) )

Images are mirror-extended and padded to a transform-friendly size first, so
the hard image borders do not show up as spurious high frequencies. The real
transform runs along the last axis; every other axis is a full complex
transform.
"""
import functools
import logging
from concurrent.futures import Executor
from typing import Callable, Tuple, Union

import numpy as np
import scipy.fft

from ..benchmarking_util import debug_timing
from ._element_kinds import ElementKind, UnsupportedElementTypeError
from ._parallel import chunk_bounds, run_all
from ._typing_utils import ComplexArray, FloatArray, NumArray, PerAxis, Shape, per_axis

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = 10

KindLike = Union[ElementKind, str, np.dtype, type]


# ============================================================================
# VALIDATION
# ============================================================================

def validate_image_pair(image1: NumArray, image2: NumArray) -> None:
    """Validate a pair of images before any transform work.

    The images may differ in size but must have the same dimensionality.

    Raises:
        ValueError: If the images are empty, non-finite or of different dimensionality
        UnsupportedElementTypeError: If an image is not real-valued numeric data
    """
    if image1.ndim != image2.ndim:
        raise ValueError(
            f"Images must have the same number of dimensions. "
            f"Got shapes {image1.shape} and {image2.shape}"
        )
    if image1.ndim == 0:
        raise ValueError("Images must have at least one dimension")
    if image1.size == 0 or image2.size == 0:
        raise ValueError(f"Images must not be empty. Got shapes {image1.shape} and {image2.shape}")

    ElementKind.for_image(image1.dtype)
    ElementKind.for_image(image2.dtype)

    if not np.isfinite(image1).all() or not np.isfinite(image2).all():
        raise ValueError("Images contain non-finite values")


def _validate_spectrum_pair(fft1: ComplexArray, fft2: ComplexArray) -> Tuple[ElementKind, ElementKind]:
    if fft1.shape != fft2.shape:
        raise ValueError(
            f"Spectra must have the same shape. Got {fft1.shape} and {fft2.shape}"
        )
    kinds = []
    for spectrum in (fft1, fft2):
        kind = ElementKind.from_dtype(spectrum.dtype)
        if not kind.is_complex:
            raise UnsupportedElementTypeError(spectrum.dtype, "spectra must be complex")
        kinds.append(kind)
    return kinds[0], kinds[1]


# ============================================================================
# SIZES AND PADDING
# ============================================================================

def extended_size(shape1: Shape, shape2: Shape, extension: PerAxis = DEFAULT_EXTENSION) -> Shape:
    """Size of the box covering both images plus a mirrored border on each side.

    The border is capped at one pixel less than the image along each axis; a
    wider mirror only repeats the image. Singleton axes get no border at all.
    """
    ext = per_axis(extension, len(shape1), "extension")
    if any(e < 0 for e in ext):
        raise ValueError(f"extension must be non-negative, got {ext}")
    sizes = [max(a, b) for a, b in zip(shape1, shape2)]
    return tuple(size + 2 * min(e, size - 1) for size, e in zip(sizes, ext))


def _next_fast_even_length(n: int) -> int:
    # An odd real length cannot be recovered from the half spectrum.
    size = scipy.fft.next_fast_len(max(n, 2), real=True)
    while size % 2:
        size = scipy.fft.next_fast_len(size + 1, real=True)
    return size


def real_to_complex_fast_size(extended: Shape) -> Tuple[Shape, Shape]:
    """Smallest fast padded real size covering ``extended`` and its spectrum size.

    Returns:
        Tuple of (padded_real_shape, spectrum_shape)
    """
    padded = tuple(scipy.fft.next_fast_len(int(n)) for n in extended[:-1])
    padded += (_next_fast_even_length(int(extended[-1])),)
    spectrum = padded[:-1] + (padded[-1] // 2 + 1,)
    return padded, spectrum


def complex_to_real_size(spectrum_shape: Shape) -> Shape:
    """Shape of the real array whose real-to-complex transform has ``spectrum_shape``."""
    if spectrum_shape[-1] < 2:
        raise ValueError(f"Spectrum too small to invert: {spectrum_shape}")
    return tuple(spectrum_shape[:-1]) + (2 * (spectrum_shape[-1] - 1),)


def centering_offset(size: int, padded: int) -> int:
    """Where an image of ``size`` starts when centred in a box of ``padded``."""
    return (padded - size) // 2


def extend_image_mirrored(image: NumArray, padded_shape: Shape) -> NumArray:
    """Centre ``image`` in ``padded_shape``, filling the border by mirroring."""
    pad_width = []
    for size, padded in zip(image.shape, padded_shape):
        if padded < size:
            raise ValueError(f"Padded shape {padded_shape} is smaller than image {image.shape}")
        before = centering_offset(size, padded)
        pad_width.append((before, padded - size - before))
    return np.pad(image, pad_width, mode="reflect")


# ============================================================================
# TRANSFORMS
# ============================================================================

def forward_transform(
    image: NumArray, padded_shape: Shape, fft_kind: KindLike = ElementKind.COMPLEX128
) -> ComplexArray:
    """Mirror-extend ``image`` to ``padded_shape`` and return its half spectrum."""
    fft_kind = ElementKind.coerce(fft_kind)
    if not fft_kind.is_complex:
        raise UnsupportedElementTypeError(fft_kind.dtype, "spectra must be complex")
    real = np.asarray(image, dtype=fft_kind.real_kind.dtype)
    spectrum = scipy.fft.rfftn(extend_image_mirrored(real, padded_shape))
    return spectrum.astype(fft_kind.dtype, copy=False)


def inverse_transform(cross_power: ComplexArray, pcm_kind: KindLike = ElementKind.FLOAT64) -> FloatArray:
    """Freshly allocated real PCM from a cross-power spectrum."""
    pcm_kind = ElementKind.coerce(pcm_kind)
    if pcm_kind.is_complex:
        raise UnsupportedElementTypeError(pcm_kind.dtype, "a phase correlation matrix is real-valued")
    shape = complex_to_real_size(cross_power.shape)
    pcm = scipy.fft.irfftn(cross_power, s=shape)
    return pcm.astype(pcm_kind.dtype, copy=False)


# ============================================================================
# POINTWISE SPECTRAL OPERATIONS
# ============================================================================

def _for_each_chunk(executor: Executor, length: int, fn: Callable[[slice], None]) -> None:
    run_all(executor, [functools.partial(fn, slice(start, stop)) for start, stop in chunk_bounds(length)])


def normalize_spectrum(src: ComplexArray, dst: ComplexArray, executor: Executor) -> ComplexArray:
    """Write ``src / |src|`` into ``dst``; zero-magnitude samples become zero.

    ``dst`` may be ``src`` itself.
    """
    kind = ElementKind.from_dtype(dst.dtype)

    def normalize_chunk(chunk: slice) -> None:
        values = src[chunk]
        out = dst[chunk]
        magnitude = kind.magnitude(values)
        nonzero = magnitude != 0
        np.divide(values, magnitude, out=out, where=nonzero)
        out[~nonzero] = 0

    _for_each_chunk(executor, src.shape[0], normalize_chunk)
    return dst


def conjugate_spectrum(src: ComplexArray, dst: ComplexArray, executor: Executor) -> ComplexArray:
    """Write the complex conjugate of ``src`` into ``dst`` (which may be ``src``)."""
    kind = ElementKind.from_dtype(dst.dtype)

    def conjugate_chunk(chunk: slice) -> None:
        kind.conjugate(src[chunk], out=dst[chunk])

    _for_each_chunk(executor, src.shape[0], conjugate_chunk)
    return dst


def multiply_spectra(a: ComplexArray, b: ComplexArray, dst: ComplexArray, executor: Executor) -> ComplexArray:
    """Write the pointwise product ``a * b`` into ``dst`` (which may alias ``a`` or ``b``)."""
    kind = ElementKind.from_dtype(dst.dtype)

    def multiply_chunk(chunk: slice) -> None:
        kind.multiply(a[chunk], b[chunk], out=dst[chunk])

    _for_each_chunk(executor, a.shape[0], multiply_chunk)
    return dst


def cross_power_spectrum(
    fft1: ComplexArray,
    fft1_work: ComplexArray,
    fft2: ComplexArray,
    fft2_work: ComplexArray,
    executor: Executor,
) -> ComplexArray:
    """Normalized cross-power spectrum of ``fft1`` and ``fft2``.

    The result is left in ``fft1_work``; ``fft2_work`` holds the conjugated
    normalized second spectrum afterwards. Work buffers may be the inputs
    themselves.
    """
    normalize_spectrum(fft1, fft1_work, executor)
    normalize_spectrum(fft2, fft2_work, executor)
    conjugate_spectrum(fft2_work, fft2_work, executor)
    return multiply_spectra(fft1_work, fft2_work, fft1_work, executor)


def calculate_pcm_in_place(
    fft1: ComplexArray,
    fft2: ComplexArray,
    executor: Executor,
    pcm_kind: KindLike = ElementKind.FLOAT64,
) -> FloatArray:
    """Phase correlation matrix of two spectra, consuming both of them.

    ``fft1`` is overwritten with the cross-power spectrum and ``fft2`` with its
    normalized conjugate. Use ``calculate_pcm`` to keep the inputs.
    """
    _validate_spectrum_pair(fft1, fft2)
    with debug_timing("cross-power spectrum (in place)", logger):
        cross_power = cross_power_spectrum(fft1, fft1, fft2, fft2, executor)
    return inverse_transform(cross_power, pcm_kind)


def calculate_pcm(
    fft1: ComplexArray,
    fft2: ComplexArray,
    executor: Executor,
    pcm_kind: KindLike = ElementKind.FLOAT64,
) -> FloatArray:
    """Phase correlation matrix of two spectra; the inputs are left untouched.

    Raises:
        ValueError: If the spectra differ in shape
        UnsupportedElementTypeError: If no working copy can be made for a spectrum's type
    """
    kind1, kind2 = _validate_spectrum_pair(fft1, fft2)
    fft1_copy = kind1.allocate(fft1.shape)
    fft2_copy = kind2.allocate(fft2.shape)
    with debug_timing("cross-power spectrum", logger):
        cross_power = cross_power_spectrum(fft1, fft1_copy, fft2, fft2_copy, executor)
    return inverse_transform(cross_power, pcm_kind)


def calculate_pcm_from_images(
    image1: NumArray,
    image2: NumArray,
    executor: Executor,
    extension: PerAxis = DEFAULT_EXTENSION,
    pcm_kind: KindLike = ElementKind.FLOAT64,
    fft_kind: KindLike = ElementKind.COMPLEX128,
) -> FloatArray:
    """Phase correlation matrix of two real images.

    Args:
        image1: First image
        image2: Second image, same number of dimensions as ``image1``
        executor: Worker pool the pointwise stages and transforms run on
        extension: Mirrored border added on each side, per axis or for all axes
        pcm_kind: Element kind of the returned PCM
        fft_kind: Element kind of the intermediate spectra

    Returns:
        The PCM, whose shape is the padded transform size.
    """
    image1 = np.asarray(image1)
    image2 = np.asarray(image2)
    validate_image_pair(image1, image2)
    fft_kind = ElementKind.coerce(fft_kind)

    extended = extended_size(image1.shape, image2.shape, extension)
    padded, spectrum_shape = real_to_complex_fast_size(extended)
    logger.debug(
        f"Phase correlation of {image1.shape} and {image2.shape}: "
        f"extended {extended}, padded {padded}, spectrum {spectrum_shape}"
    )

    with debug_timing("forward transforms", logger):
        fft1, fft2 = run_all(
            executor,
            [
                functools.partial(forward_transform, image1, padded, fft_kind),
                functools.partial(forward_transform, image2, padded, fft_kind),
            ],
        )
    return calculate_pcm_in_place(fft1, fft2, executor, pcm_kind)
