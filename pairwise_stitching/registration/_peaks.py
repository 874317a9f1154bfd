"""Peak extraction from a phase correlation matrix (PCM).

The PCM is periodic, so maxima are searched with a wrap-around neighbourhood.
The matrix is split into slabs along its first axis; each slab is scanned on
the worker pool and contributes its own top-N, which are then merged into the
global top-N.
"""
import dataclasses
import functools
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from scipy import ndimage

from ._parallel import chunk_bounds, run_all
from ._typing_utils import FloatArray, IntArray, NumArray

logger = logging.getLogger(__name__)

DEFAULT_PEAK_COUNT = 5


@dataclass
class PhaseCorrelationPeak:
    """A PCM maximum and, once expanded, one physical shift it may stand for.

    ``cross_correlation`` stays ``None`` until the candidate has been refined;
    a disqualified candidate carries ``-inf``.
    """
    pcm_location: Tuple[int, ...]
    pcm_value: float
    shift: Optional[Tuple[int, ...]] = None
    subpixel_shift: Optional[Tuple[float, ...]] = None
    cross_correlation: Optional[float] = None
    n_pixels: int = 0

    @property
    def is_refined(self) -> bool:
        return self.cross_correlation is not None

    def with_shift(self, shift: Tuple[int, ...]) -> "PhaseCorrelationPeak":
        """Copy of this peak standing for ``shift``, not yet refined."""
        return dataclasses.replace(
            self,
            shift=tuple(int(s) for s in shift),
            subpixel_shift=None,
            cross_correlation=None,
            n_pixels=0,
        )


def _validate_pcm_input(pcm: NumArray) -> None:
    if not hasattr(pcm, "shape") or not hasattr(pcm, "dtype"):
        raise TypeError(f"PCM must be array-like with 'shape' and 'dtype' attributes, got {type(pcm)}")
    if pcm.ndim == 0 or pcm.size == 0:
        raise ValueError(f"PCM cannot be empty, got shape {pcm.shape}")
    if not np.issubdtype(pcm.dtype, np.number) or np.issubdtype(pcm.dtype, np.complexfloating):
        raise ValueError(f"PCM must be real-valued, got dtype {pcm.dtype}")
    if not np.all(np.isfinite(pcm)):
        raise ValueError("PCM contains non-finite values (NaN or infinity)")


def _validate_max_peaks(max_peaks: int) -> None:
    if not isinstance(max_peaks, (int, np.integer)) or isinstance(max_peaks, bool):
        raise TypeError(f"max_peaks must be an integer, got {type(max_peaks)}")
    if max_peaks < 1:
        raise ValueError(f"max_peaks must be positive, got {max_peaks}")


def _top_n(positions: IntArray, values: FloatArray, n: int) -> Tuple[IntArray, FloatArray]:
    # Stable so that equal values keep raster order.
    order = np.argsort(-values, kind="stable")[:n]
    return positions[order], values[order]


def get_pcm_maxima(
    pcm: FloatArray,
    executor: Executor,
    max_peaks: int = DEFAULT_PEAK_COUNT,
) -> List[PhaseCorrelationPeak]:
    """Find the ``max_peaks`` highest local maxima of a PCM.

    A pixel is a local maximum when no pixel in its 3x3(x3...) periodic
    neighbourhood is larger. Equal-valued maxima come back in a deterministic
    order, but callers should not depend on which one is first.

    Args:
        pcm: Phase correlation matrix
        executor: Worker pool scanning the slabs
        max_peaks: Maximum number of peaks to return

    Returns:
        Peaks sorted by PCM value, highest first.

    Raises:
        TypeError: If the PCM is not array-like or max_peaks is not an integer
        ValueError: If the PCM is empty or non-finite, or max_peaks < 1
    """
    _validate_pcm_input(pcm)
    _validate_max_peaks(max_peaks)

    wrapped = np.pad(pcm, 1, mode="wrap")
    inner = (slice(1, -1),) * pcm.ndim

    def slab_maxima(start: int, stop: int) -> Tuple[IntArray, FloatArray]:
        slab = wrapped[start:stop + 2]
        neighbourhood_max = ndimage.maximum_filter(slab, size=3, mode="nearest")
        values = slab[inner]
        coords = np.nonzero(values >= neighbourhood_max[inner])
        positions = np.stack(coords, axis=1).astype(np.int64)
        positions[:, 0] += start
        return _top_n(positions, values[coords].astype(np.float64), max_peaks)

    slab_results = run_all(
        executor,
        [
            functools.partial(slab_maxima, start, stop)
            for start, stop in chunk_bounds(pcm.shape[0])
        ],
    )

    positions = np.concatenate([p for p, _ in slab_results], axis=0)
    values = np.concatenate([v for _, v in slab_results])
    positions, values = _top_n(positions, values, max_peaks)

    peaks = [
        PhaseCorrelationPeak(
            pcm_location=tuple(int(c) for c in position),
            pcm_value=float(value),
        )
        for position, value in zip(positions, values)
    ]
    logger.debug(f"Found {len(peaks)} PCM peaks: {[(p.pcm_location, p.pcm_value) for p in peaks]}")
    return peaks


def subpixel_peak_offset(pcm: FloatArray, location: Tuple[int, ...]) -> Tuple[float, ...]:
    """Fit a parabola through each axis of a PCM peak and return the vertex offsets.

    Neighbours are taken periodically. Axes shorter than three pixels, or where
    the peak is not strictly curved downwards, get an offset of 0.
    """
    centre = float(pcm[tuple(location)])
    offsets = []
    for axis, position in enumerate(location):
        size = pcm.shape[axis]
        if size < 3:
            offsets.append(0.0)
            continue
        index = list(location)
        index[axis] = (position - 1) % size
        left = float(pcm[tuple(index)])
        index[axis] = (position + 1) % size
        right = float(pcm[tuple(index)])

        curvature = left - 2.0 * centre + right
        if curvature >= 0 or not np.isfinite(curvature):
            offsets.append(0.0)
            continue
        offset = 0.5 * (left - right) / curvature
        offsets.append(float(np.clip(offset, -0.5, 0.5)))
    return tuple(offsets)
