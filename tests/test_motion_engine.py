from __future__ import annotations

import numpy as np
import pytest

from analysis.motion import MotionConfig, MotionEngine, MotionResult, Rect
from common.frame import Frame


def _frame(fid: int, square_at=None, size=40, shape=(120, 160)) -> Frame:
    img = np.zeros((*shape, 3), dtype=np.uint8)
    if square_at is not None:
        x, y = square_at
        img[y : y + size, x : x + size] = 255
    return Frame(img=img, pts_ms=1_700_000_000_000.0 + fid * 100.0, frame_id=fid)


def test_first_frame_only_seeds_reference():
    eng = MotionEngine(MotionConfig())
    assert eng.differencer.reference is None

    out = eng.step(_frame(0, square_at=(10, 10)))

    assert isinstance(out, MotionResult)
    assert out.is_motion is None
    assert out.seeded
    assert out.rects == []
    assert eng.differencer.reference is not None
    assert eng.differencer.reference.shape == (120, 160)


def test_appearing_square_is_motion():
    eng = MotionEngine(MotionConfig())
    eng.step(_frame(0))
    out = eng.step(_frame(1, square_at=(30, 20)))

    assert out.is_motion is True
    assert out.rects == [Rect(30, 20, 40, 40)]
    assert out.blob_count == 1
    assert out.motion_px == 40 * 40
    assert out.frame_id == 1


def test_static_scene_is_not_motion():
    eng = MotionEngine(MotionConfig())
    eng.step(_frame(0, square_at=(30, 20)))
    out = eng.step(_frame(1, square_at=(30, 20)))

    assert out.is_motion is False
    assert out.rects == []
    assert out.motion_px == 0


def test_small_change_is_filtered_by_size():
    eng = MotionEngine(MotionConfig())
    eng.step(_frame(0))
    out = eng.step(_frame(1, square_at=(30, 20), size=5))

    assert out.is_motion is False
    assert out.blob_count == 1


def test_roi_excludes_motion_elsewhere():
    eng = MotionEngine(MotionConfig(roi=Rect(0, 0, 20, 20)))
    eng.step(_frame(0))
    out = eng.step(_frame(1, square_at=(100, 60)))

    assert out.is_motion is False
    assert out.blob_count == 1


def test_reference_is_replaced_every_cycle():
    eng = MotionEngine(MotionConfig())
    eng.step(_frame(0))
    eng.step(_frame(1, square_at=(30, 20)))
    # Same picture as the previous frame: the reference must now hold it.
    out = eng.step(_frame(2, square_at=(30, 20)))
    assert out.is_motion is False
    assert int(eng.differencer.reference[30, 40]) == 255


def test_size_change_reseeds_without_verdict():
    eng = MotionEngine(MotionConfig())
    eng.step(_frame(0))
    out = eng.step(_frame(1, square_at=(10, 10), shape=(60, 80)))

    assert out.is_motion is None
    assert eng.differencer.reference.shape == (60, 80)


def test_failed_cycle_keeps_previous_reference(monkeypatch):
    from analysis.motion import engine as engine_mod

    eng = MotionEngine(MotionConfig())
    eng.step(_frame(0))
    seeded = eng.differencer.reference.copy()

    def broken(mask, connectivity=8):
        raise RuntimeError("labeling failed")

    monkeypatch.setattr(engine_mod, "extract_blobs", broken)
    with pytest.raises(RuntimeError):
        eng.step(_frame(1, square_at=(30, 20)))
    assert np.array_equal(eng.differencer.reference, seeded)

    monkeypatch.undo()
    out = eng.step(_frame(2, square_at=(30, 20)))
    assert out.is_motion is True
