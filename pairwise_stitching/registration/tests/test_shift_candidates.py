"""Tests for expanding periodic PCM peaks into shift candidates."""
import itertools

import numpy as np
import pytest

from .._peaks import PhaseCorrelationPeak
from .._shift_candidates import (
    base_shift,
    collapse_singleton_axes,
    expand_peak_list_to_possible_shifts,
    expand_peak_to_possible_shifts,
    shift_has_overlap,
)


def _peak(*location):
    return PhaseCorrelationPeak(pcm_location=tuple(location), pcm_value=1.0)


def test_all_four_combinations_in_bit_order():
    candidates = expand_peak_to_possible_shifts(_peak(8, 9), (16, 16), (12, 12), (12, 12))
    assert [c.shift for c in candidates] == [(8, 9), (-8, 9), (8, -7), (-8, -7)]
    assert all(c.pcm_location == (8, 9) for c in candidates)
    assert all(c.cross_correlation is None for c in candidates)


def test_non_overlapping_shifts_are_dropped():
    candidates = expand_peak_to_possible_shifts(_peak(3, 5), (20, 30), (10, 10), (10, 10))
    assert [c.shift for c in candidates] == [(3, 5)]

    candidates = expand_peak_to_possible_shifts(_peak(15, 25), (20, 30), (12, 12), (12, 12))
    assert [c.shift for c in candidates] == [(-5, -5)]


def test_unequal_image_sizes_are_compensated():
    # image1 starts at 5 and image2 at 7 inside the padded box
    assert base_shift((0,), (20,), (10,), (6,)) == (2,)
    candidates = expand_peak_to_possible_shifts(_peak(0), (20,), (10,), (6,))
    assert [c.shift for c in candidates] == [(2,)]


def test_singleton_axis_only_keeps_zero_shift():
    candidates = expand_peak_to_possible_shifts(_peak(100, 0, 0), (420, 420, 24), (400, 400, 1), (400, 400, 1))
    assert [c.shift for c in candidates] == [(100, 0, 0), (-320, 0, 0)]


def test_shift_has_overlap():
    assert shift_has_overlap((0, 0), (10, 10), (10, 10))
    assert shift_has_overlap((9, -9), (10, 10), (10, 10))
    assert not shift_has_overlap((10, 0), (10, 10), (10, 10))
    assert not shift_has_overlap((0, -10), (10, 10), (10, 10))


def test_list_expansion_keeps_discovery_order():
    peaks = [_peak(8, 9), _peak(3, 5)]
    candidates = expand_peak_list_to_possible_shifts(peaks, (16, 16), (12, 12), (12, 12))
    assert [c.pcm_location for c in candidates] == [(8, 9)] * 4 + [(3, 5)] * 2
    assert [c.shift for c in candidates[4:]] == [(3, 5), (3, -11)]


def test_dimensionality_mismatch():
    with pytest.raises(ValueError):
        expand_peak_to_possible_shifts(_peak(1, 1), (16, 16), (12, 12, 1), (12, 12))


@pytest.mark.parametrize("shape1,shape2", [((12, 12), (12, 12)), ((30, 7), (11, 19)), ((5, 40), (40, 5))])
def test_shifts_never_exceed_combined_extent(shape1, shape2):
    pcm_shape = tuple(max(a, b) + 20 for a, b in zip(shape1, shape2))
    peaks = [_peak(*loc) for loc in itertools.product(*(range(n) for n in pcm_shape))]
    candidates = expand_peak_list_to_possible_shifts(peaks, pcm_shape, shape1, shape2)
    assert candidates
    shifts = np.array([c.shift for c in candidates])
    assert np.all(np.abs(shifts) <= np.array(shape1) + np.array(shape2))
    assert all(shift_has_overlap(c.shift, shape1, shape2) for c in candidates)


def test_collapse_singleton_axes():
    pcm = np.arange(4 * 6 * 2, dtype=float).reshape(4, 6, 2)
    collapsed = collapse_singleton_axes(pcm, (3, 5, 1), (3, 5, 1))
    assert collapsed.shape == (4, 6, 1)
    np.testing.assert_array_equal(collapsed[..., 0], pcm[..., 0])

    # One thick image keeps the axis.
    assert collapse_singleton_axes(pcm, (3, 5, 1), (3, 5, 2)).shape == pcm.shape

    candidates = expand_peak_to_possible_shifts(_peak(2, 3, 0), collapsed.shape, (3, 5, 1), (3, 5, 1))
    assert all(c.shift[2] == 0 for c in candidates)

    with pytest.raises(ValueError):
        collapse_singleton_axes(pcm, (3, 5), (3, 5))
