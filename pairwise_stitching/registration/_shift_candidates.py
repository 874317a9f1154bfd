"""Turning periodic PCM peak positions into physical shift candidates.

The discrete Fourier transform is circular: a peak at position ``p`` along an
axis of length ``n`` is equally well explained by a shift of ``p`` or of
``p - n``. With D axes, one peak therefore stands for up to 2^D shifts.
Shifts for which the two images would not overlap at all are dropped.

A shift ``s`` places image2 at offset ``s`` in image1's frame, i.e.
``image2[x] ~ image1[x + s]``.
"""
import itertools
import logging
from typing import Iterable, List, Tuple

from ._peaks import PhaseCorrelationPeak
from ._spectral import centering_offset
from ._typing_utils import FloatArray, Shape

logger = logging.getLogger(__name__)


def _validate_shapes(pcm_shape: Shape, shape1: Shape, shape2: Shape) -> None:
    if not (len(pcm_shape) == len(shape1) == len(shape2)):
        raise ValueError(
            f"PCM and images must have the same number of dimensions. "
            f"Got {pcm_shape}, {shape1} and {shape2}"
        )


def collapse_singleton_axes(pcm: FloatArray, shape1: Shape, shape2: Shape) -> FloatArray:
    """View of the PCM with axes where both images are one pixel thick reduced to length 1.

    The shift along such an axis can only be 0, but the real-to-complex
    transform may have padded it (to 2 along the last axis), which makes the
    PCM repeat every maximum there.
    """
    _validate_shapes(pcm.shape, shape1, shape2)
    index = tuple(
        slice(0, 1) if max(size1, size2) == 1 else slice(None)
        for size1, size2 in zip(shape1, shape2)
    )
    return pcm[index]


def base_shift(location: Tuple[int, ...], pcm_shape: Shape, shape1: Shape, shape2: Shape) -> Tuple[int, ...]:
    """Raw PCM position corrected for where each image sat in the padded box.

    Both images are centred in the PCM-sized box before the transform, so if
    they differ in size their origins differ by the difference of their
    centring offsets. The result is reduced modulo the PCM size.
    """
    shift = []
    for position, n, size1, size2 in zip(location, pcm_shape, shape1, shape2):
        offset = centering_offset(size2, n) - centering_offset(size1, n)
        shift.append((position + offset) % n)
    return tuple(shift)


def shift_has_overlap(shift: Tuple[int, ...], shape1: Shape, shape2: Shape) -> bool:
    """Whether image2 placed at ``shift`` overlaps image1 on every axis."""
    return all(-size2 < s < size1 for s, size1, size2 in zip(shift, shape1, shape2))


def expand_peak_to_possible_shifts(
    peak: PhaseCorrelationPeak,
    pcm_shape: Shape,
    shape1: Shape,
    shape2: Shape,
) -> List[PhaseCorrelationPeak]:
    """All overlapping shifts a single PCM peak may stand for.

    Candidates come in a fixed order: combination ``i`` wraps axis ``d``
    (``p - n``) when bit ``d`` of ``i`` is set, starting from the all-forward
    combination.
    """
    _validate_shapes(pcm_shape, shape1, shape2)
    forward = base_shift(peak.pcm_location, pcm_shape, shape1, shape2)
    ndim = len(pcm_shape)

    candidates = []
    for combination in range(2 ** ndim):
        shift = tuple(
            s - n if (combination >> d) & 1 else s
            for d, (s, n) in enumerate(zip(forward, pcm_shape))
        )
        if shift_has_overlap(shift, shape1, shape2):
            candidates.append(peak.with_shift(shift))
    return candidates


def expand_peak_list_to_possible_shifts(
    peaks: Iterable[PhaseCorrelationPeak],
    pcm_shape: Shape,
    shape1: Shape,
    shape2: Shape,
) -> List[PhaseCorrelationPeak]:
    """Expand every peak, keeping peak order and then combination order."""
    peaks = list(peaks)
    candidates = list(itertools.chain.from_iterable(
        expand_peak_to_possible_shifts(peak, pcm_shape, shape1, shape2) for peak in peaks
    ))
    logger.debug(f"Expanded {len(peaks)} PCM peaks into {len(candidates)} shift candidates")
    return candidates
