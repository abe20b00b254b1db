from __future__ import annotations

import numpy as np
import pytest

from analysis.motion.model import Rect
from analysis.motion.utils.motion_utils import (
    abs_difference,
    annotate,
    build_motion_mask,
    extract_blobs,
    to_luma,
)


def _noise(seed: int, shape=(48, 64)) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=shape, dtype=np.uint8)


def test_luma_uses_bt709_weights():
    img = np.zeros((2, 3, 3), dtype=np.uint8)
    img[0, 0] = (0, 0, 255)  # pure red (BGR)
    img[0, 1] = (0, 255, 0)  # pure green
    img[0, 2] = (255, 0, 0)  # pure blue
    img[1, :] = (200, 200, 200)

    luma = to_luma(img)

    assert luma.shape == (2, 3)
    assert luma.dtype == np.uint8
    assert abs(int(luma[0, 0]) - 54) <= 1  # 0.2126 * 255
    assert abs(int(luma[0, 1]) - 182) <= 1  # 0.7152 * 255
    assert abs(int(luma[0, 2]) - 18) <= 1  # 0.0722 * 255
    assert abs(int(luma[1, 0]) - 200) <= 1


def test_luma_passes_through_single_channel_and_drops_alpha():
    gray = _noise(1)
    out = to_luma(gray)
    assert np.array_equal(out, gray)
    assert out is not gray

    bgra = np.full((4, 4, 4), 100, dtype=np.uint8)
    assert to_luma(bgra).shape == (4, 4)


def test_luma_rejects_odd_shapes():
    with pytest.raises(ValueError):
        to_luma(np.zeros((4, 4, 2), dtype=np.uint8))


def test_difference_is_absolute_and_shape_checked():
    a = np.array([[10, 200]], dtype=np.uint8)
    b = np.array([[50, 100]], dtype=np.uint8)
    assert abs_difference(a, b).tolist() == [[40, 100]]
    assert abs_difference(b, a).tolist() == [[40, 100]]

    with pytest.raises(ValueError):
        abs_difference(a, np.zeros((2, 2), dtype=np.uint8))


def test_mask_is_strictly_greater_than_threshold():
    diff = np.array([[14, 15, 16, 255]], dtype=np.uint8)
    mask = build_motion_mask(diff, 15)
    assert mask.tolist() == [[0, 0, 255, 255]]


def test_mask_is_deterministic():
    ref, cur = _noise(2), _noise(3)
    diff = abs_difference(cur, ref)
    first = build_motion_mask(diff, 15)
    for _ in range(3):
        assert np.array_equal(build_motion_mask(abs_difference(cur, ref), 15), first)


def test_higher_threshold_never_adds_motion_pixels():
    diff = abs_difference(_noise(4), _noise(5))
    counts = [int(np.count_nonzero(build_motion_mask(diff, t))) for t in range(0, 256, 5)]
    assert all(b <= a for a, b in zip(counts, counts[1:]))


def test_extract_blobs_returns_bounding_rects():
    mask = np.zeros((60, 80), dtype=np.uint8)
    mask[5:15, 10:30] = 255
    mask[40:55, 50:58] = 255

    blobs = sorted(extract_blobs(mask), key=lambda r: r.x)

    assert blobs == [Rect(10, 5, 20, 10), Rect(50, 40, 8, 15)]


def test_extract_blobs_empty_mask():
    assert extract_blobs(np.zeros((10, 10), dtype=np.uint8)) == []


def test_extract_blobs_connectivity():
    # Two pixels touching only at a corner.
    mask = np.zeros((4, 4), dtype=np.uint8)
    mask[1, 1] = 255
    mask[2, 2] = 255

    assert len(extract_blobs(mask, connectivity=8)) == 1
    assert len(extract_blobs(mask, connectivity=4)) == 2
    with pytest.raises(ValueError):
        extract_blobs(mask, connectivity=6)


def test_annotate_draws_on_a_copy():
    img = np.zeros((50, 50, 3), dtype=np.uint8)
    out = annotate(img, [Rect(5, 5, 10, 10)], roi=Rect(0, 0, 49, 49))

    assert not img.any()
    assert tuple(out[5, 5]) == (0, 255, 0)
    assert tuple(out[0, 25]) == (0, 0, 255)
