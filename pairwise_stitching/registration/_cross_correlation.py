"""Real-space verification of shift candidates by normalized cross-correlation."""
import functools
import logging
from concurrent.futures import Executor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ._parallel import run_all
from ._peaks import PhaseCorrelationPeak
from ._typing_utils import NumArray, OptionalPerAxis, Shape, per_axis

logger = logging.getLogger(__name__)

# Score of a candidate that cannot be trusted (too little overlap, flat data).
DISQUALIFIED_SCORE = float("-inf")


def resolve_min_overlap(min_overlap: OptionalPerAxis, ndim: int) -> Optional[Shape]:
    """Broadcast a minimum overlap to one entry per axis.

    Raises:
        ValueError: On a negative value or a sequence of the wrong length.
    """
    if min_overlap is None:
        return None
    resolved = per_axis(min_overlap, ndim, "min_overlap")
    if any(m < 0 for m in resolved):
        raise ValueError(f"min_overlap must be non-negative, got {resolved}")
    return resolved


def get_overlap_slices(
    shape1: Shape, shape2: Shape, shift: Sequence[int]
) -> Optional[Tuple[Tuple[slice, ...], Tuple[slice, ...]]]:
    """Slices into image1 and image2 covering their overlap under ``shift``.

    Returns:
        Tuple of (image1 slices, image2 slices), or None if the images do not
        overlap along some axis.
    """
    slices1 = []
    slices2 = []
    for s, size1, size2 in zip(shift, shape1, shape2):
        s = int(s)
        start1 = max(0, s)
        stop1 = min(size1, s + size2)
        if stop1 <= start1:
            return None
        slices1.append(slice(start1, stop1))
        slices2.append(slice(start1 - s, stop1 - s))
    return tuple(slices1), tuple(slices2)


def ncc(region1: NumArray, region2: NumArray) -> float:
    """Normalized cross-correlation of two equally shaped regions.

    Uses NCC = sum((I1 - mu1)(I2 - mu2)) / sqrt(sum((I1 - mu1)^2) * sum((I2 - mu2)^2)).

    Returns:
        NCC value between -1 and 1, or DISQUALIFIED_SCORE when either region is
        constant or the result is not finite.
    """
    if region1.shape != region2.shape or region1.size == 0:
        return DISQUALIFIED_SCORE

    centered1 = region1.astype(np.float64) - np.mean(region1, dtype=np.float64)
    centered2 = region2.astype(np.float64) - np.mean(region2, dtype=np.float64)

    numerator = float(np.sum(centered1 * centered2))
    var1 = float(np.sum(centered1 * centered1))
    var2 = float(np.sum(centered2 * centered2))

    denominator = np.sqrt(var1 * var2)
    if denominator == 0.0 or not np.isfinite(denominator):
        return DISQUALIFIED_SCORE

    value = numerator / denominator
    if not np.isfinite(value):
        return DISQUALIFIED_SCORE
    # Clamp rounding noise
    return float(np.clip(value, -1.0, 1.0))


def cross_correlation(
    image1: NumArray,
    image2: NumArray,
    shift: Sequence[int],
    min_overlap: OptionalPerAxis = None,
) -> Tuple[float, int]:
    """Score one candidate shift.

    Args:
        image1: First (unpadded) image
        image2: Second (unpadded) image
        shift: Offset of image2 in image1's frame
        min_overlap: Smallest acceptable overlap length, per axis or for all axes

    Returns:
        Tuple of (score, number of overlapping pixels). The score is
        DISQUALIFIED_SCORE when the overlap is empty, shorter than
        ``min_overlap`` along some axis, or flat.
    """
    slices = get_overlap_slices(image1.shape, image2.shape, shift)
    if slices is None:
        return DISQUALIFIED_SCORE, 0
    slices1, slices2 = slices

    overlap = tuple(sl.stop - sl.start for sl in slices1)
    n_pixels = int(np.prod(overlap))
    minimum = resolve_min_overlap(min_overlap, image1.ndim)
    if minimum is not None and any(o < m for o, m in zip(overlap, minimum)):
        return DISQUALIFIED_SCORE, n_pixels

    return ncc(image1[slices1], image2[slices2]), n_pixels


def _refine_candidate(
    peak: PhaseCorrelationPeak,
    image1: NumArray,
    image2: NumArray,
    min_overlap: Optional[Shape],
) -> None:
    peak.cross_correlation, peak.n_pixels = cross_correlation(
        image1, image2, peak.shift, min_overlap
    )


def calculate_cross_corr_parallel(
    peaks: List[PhaseCorrelationPeak],
    image1: NumArray,
    image2: NumArray,
    min_overlap: OptionalPerAxis,
    executor: Executor,
) -> List[PhaseCorrelationPeak]:
    """Fill in ``cross_correlation`` and ``n_pixels`` of every candidate.

    One task per candidate runs on ``executor``; each task writes only to its
    own candidate. Blocks until all candidates are scored.
    """
    minimum = resolve_min_overlap(min_overlap, image1.ndim)
    for peak in peaks:
        if peak.shift is None:
            raise ValueError(f"Peak at {peak.pcm_location} has no shift to verify")

    run_all(
        executor,
        [functools.partial(_refine_candidate, peak, image1, image2, minimum) for peak in peaks],
    )
    n_disqualified = sum(1 for p in peaks if p.cross_correlation == DISQUALIFIED_SCORE)
    logger.debug(f"Scored {len(peaks)} shift candidates, {n_disqualified} disqualified")
    return peaks
