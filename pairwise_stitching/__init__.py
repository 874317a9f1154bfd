"""Pairwise Stitching Package.

This package estimates the translational offset between two overlapping
n-dimensional microscope tiles, the first stage of an image-stitching
pipeline.

Main functionality:
- Phase correlation: FFT-based correlation of mirror-padded tiles
- Peak extraction: Top-N maxima of the phase correlation matrix
- Shift disambiguation: All physical shifts a periodic peak may stand for
- Verification: Normalized cross-correlation of every candidate, in parallel

The package exposes the key registration functions at the top level for convenience.
"""

from .parameters import PhaseCorrelationParameters
from .registration.phase_correlation import (
    calculate_pcm_default,
    compute_shift,
    get_shift,
    get_shift_default,
)
from .registration._cross_correlation import DISQUALIFIED_SCORE
from .registration._element_kinds import ElementKind, UnsupportedElementTypeError
from .registration._parallel import worker_pool
from .registration._peaks import PhaseCorrelationPeak
from .registration._spectral import (
    calculate_pcm,
    calculate_pcm_from_images,
    calculate_pcm_in_place,
)

__all__ = [
    'PhaseCorrelationParameters',
    'PhaseCorrelationPeak',
    'ElementKind',
    'UnsupportedElementTypeError',
    'DISQUALIFIED_SCORE',
    'worker_pool',
    'calculate_pcm',
    'calculate_pcm_in_place',
    'calculate_pcm_from_images',
    'calculate_pcm_default',
    'get_shift',
    'get_shift_default',
    'compute_shift',
]
