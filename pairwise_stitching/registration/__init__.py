"""Registration module for pairwise tile stitching.

This module estimates the translation between two overlapping image tiles by
phase correlation, verified by normalized cross-correlation.
"""

from ._cross_correlation import (
    DISQUALIFIED_SCORE,
    calculate_cross_corr_parallel,
    cross_correlation,
    get_overlap_slices,
)
from ._element_kinds import ElementKind, UnsupportedElementTypeError
from ._parallel import worker_pool
from ._peaks import PhaseCorrelationPeak, get_pcm_maxima, subpixel_peak_offset
from ._shift_candidates import (
    collapse_singleton_axes,
    expand_peak_list_to_possible_shifts,
    expand_peak_to_possible_shifts,
)
from ._spectral import (
    calculate_pcm,
    calculate_pcm_from_images,
    calculate_pcm_in_place,
)
from .phase_correlation import (
    calculate_pcm_default,
    compute_shift,
    get_shift,
    get_shift_default,
    sort_peaks_by_cross_correlation,
)

__all__ = [
    'DISQUALIFIED_SCORE',
    'ElementKind',
    'UnsupportedElementTypeError',
    'PhaseCorrelationPeak',
    'worker_pool',
    'calculate_pcm',
    'calculate_pcm_in_place',
    'calculate_pcm_from_images',
    'calculate_pcm_default',
    'get_pcm_maxima',
    'subpixel_peak_offset',
    'collapse_singleton_axes',
    'expand_peak_to_possible_shifts',
    'expand_peak_list_to_possible_shifts',
    'get_overlap_slices',
    'cross_correlation',
    'calculate_cross_corr_parallel',
    'sort_peaks_by_cross_correlation',
    'get_shift',
    'get_shift_default',
    'compute_shift',
]
