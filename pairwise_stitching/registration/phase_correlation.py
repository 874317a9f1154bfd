"""Pairwise translation estimation by phase correlation.

The pipeline for one pair of overlapping tiles is::

    images -> spectra -> cross-power spectrum -> PCM -> top-N PCM peaks
           -> all shifts each peak may stand for -> NCC of every shift
           -> best shift

Every stage runs its sub-tasks on a caller-owned executor and finishes before
the next one starts. ``calculate_pcm_default``, ``get_shift_default`` and
``compute_shift`` are thin wrappers that create their own thread pool and shut
it down before returning.

A shift ``s`` places image2 at offset ``s`` in image1's frame, so two tiles of
width 400 overlapping by 80 pixels along the first axis give ``s[0] == 320``.
"""
import logging
from concurrent.futures import Executor
from typing import TYPE_CHECKING, List, Optional

import numpy as np

from ..benchmarking_util import debug_timing
from ._cross_correlation import DISQUALIFIED_SCORE, calculate_cross_corr_parallel
from ._element_kinds import ElementKind
from ._parallel import worker_pool
from ._peaks import DEFAULT_PEAK_COUNT, PhaseCorrelationPeak, get_pcm_maxima, subpixel_peak_offset
from ._shift_candidates import (
    base_shift,
    collapse_singleton_axes,
    expand_peak_list_to_possible_shifts,
)
from ._spectral import DEFAULT_EXTENSION, KindLike, calculate_pcm_from_images
from ._typing_utils import FloatArray, NumArray, OptionalPerAxis, PerAxis

if TYPE_CHECKING:
    from ..parameters import PhaseCorrelationParameters

logger = logging.getLogger(__name__)


def sort_peaks_by_cross_correlation(peaks: List[PhaseCorrelationPeak]) -> List[PhaseCorrelationPeak]:
    """Candidates ordered by cross-correlation, best first.

    Equal scores keep the order they were discovered in (peak order, then
    wrap-around combination order).

    Raises:
        RuntimeError: If any candidate has not been scored yet.
    """
    unrefined = [p for p in peaks if not p.is_refined]
    if unrefined:
        raise RuntimeError(
            f"{len(unrefined)} shift candidates have no cross-correlation score; "
            f"refine them before ranking"
        )
    return sorted(peaks, key=lambda p: -p.cross_correlation)


def _no_overlap_peak(
    peaks: List[PhaseCorrelationPeak], pcm: FloatArray, image1: NumArray, image2: NumArray
) -> PhaseCorrelationPeak:
    best = peaks[0]
    shift = base_shift(best.pcm_location, pcm.shape, image1.shape, image2.shape)
    result = best.with_shift(shift)
    result.cross_correlation = DISQUALIFIED_SCORE
    return result


def get_shift(
    pcm: FloatArray,
    image1: NumArray,
    image2: NumArray,
    executor: Executor,
    n_highest_peaks: int = DEFAULT_PEAK_COUNT,
    min_overlap: OptionalPerAxis = None,
    subpixel_accuracy: bool = False,
) -> PhaseCorrelationPeak:
    """Best shift between two images given their phase correlation matrix.

    Args:
        pcm: Phase correlation matrix of the two images
        image1: First (unpadded) image
        image2: Second (unpadded) image
        executor: Worker pool for peak search and candidate scoring
        n_highest_peaks: How many PCM maxima to consider
        min_overlap: Candidates overlapping less than this along any axis are
            disqualified
        subpixel_accuracy: Also fill in ``subpixel_shift`` of the result

    Returns:
        The winning candidate. Its ``cross_correlation`` is ``-inf`` when no
        candidate could be trusted.
    """
    image1 = np.asarray(image1)
    image2 = np.asarray(image2)
    if not (pcm.ndim == image1.ndim == image2.ndim):
        raise ValueError(
            f"PCM and images must have the same number of dimensions. "
            f"Got {pcm.shape}, {image1.shape} and {image2.shape}"
        )
    pcm = collapse_singleton_axes(pcm, image1.shape, image2.shape)

    with debug_timing("PCM peak search", logger):
        peaks = get_pcm_maxima(pcm, executor, n_highest_peaks)
    candidates = expand_peak_list_to_possible_shifts(peaks, pcm.shape, image1.shape, image2.shape)
    if not candidates:
        logger.warning(
            f"None of the {len(peaks)} PCM peaks gives overlapping images "
            f"{image1.shape} and {image2.shape}; no reliable shift"
        )
        return _no_overlap_peak(peaks, pcm, image1, image2)

    with debug_timing("cross-correlation of shift candidates", logger):
        calculate_cross_corr_parallel(candidates, image1, image2, min_overlap, executor)
    best = sort_peaks_by_cross_correlation(candidates)[0]

    if best.cross_correlation == DISQUALIFIED_SCORE:
        logger.warning(
            f"All {len(candidates)} shift candidates were disqualified; no reliable shift"
        )
    elif subpixel_accuracy:
        offsets = subpixel_peak_offset(pcm, best.pcm_location)
        best.subpixel_shift = tuple(float(s + o) for s, o in zip(best.shift, offsets))

    logger.debug(
        f"Best shift {best.shift} (ncc={best.cross_correlation:.4f}, "
        f"pcm={best.pcm_value:.4g}, overlap={best.n_pixels} px)"
    )
    return best


def calculate_pcm_default(
    image1: NumArray,
    image2: NumArray,
    extension: PerAxis = DEFAULT_EXTENSION,
    pcm_kind: KindLike = ElementKind.FLOAT64,
    fft_kind: KindLike = ElementKind.COMPLEX128,
) -> FloatArray:
    """``calculate_pcm_from_images`` on a temporary pool sized to the hardware."""
    with worker_pool() as executor:
        return calculate_pcm_from_images(image1, image2, executor, extension, pcm_kind, fft_kind)


def get_shift_default(pcm: FloatArray, image1: NumArray, image2: NumArray) -> PhaseCorrelationPeak:
    """``get_shift`` with 5 peaks, no minimum overlap and a temporary pool."""
    with worker_pool() as executor:
        return get_shift(pcm, image1, image2, executor, DEFAULT_PEAK_COUNT, None)


def compute_shift(
    image1: NumArray,
    image2: NumArray,
    params: Optional["PhaseCorrelationParameters"] = None,
) -> PhaseCorrelationPeak:
    """Run the whole pipeline for one image pair on a temporary pool.

    Args:
        image1: First image
        image2: Second image
        params: Pipeline settings; defaults when None

    Returns:
        The best shift candidate.
    """
    if params is None:
        from ..parameters import PhaseCorrelationParameters
        params = PhaseCorrelationParameters()

    with worker_pool(params.num_workers) as executor:
        with debug_timing("phase correlation", logger):
            pcm = calculate_pcm_from_images(
                image1,
                image2,
                executor,
                extension=params.extension,
                pcm_kind=params.pcm_dtype,
                fft_kind=params.fft_dtype,
            )
        return get_shift(
            pcm,
            image1,
            image2,
            executor,
            n_highest_peaks=params.n_highest_peaks,
            min_overlap=params.min_overlap,
            subpixel_accuracy=params.subpixel_accuracy,
        )
