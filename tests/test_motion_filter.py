from __future__ import annotations

from analysis.motion import MotionFilter, Rect, SizeEnvelope


def _envelope() -> SizeEnvelope:
    return SizeEnvelope(min_width=20, min_height=20, max_width=500, max_height=500)


def test_size_envelope_rejects_small_and_accepts_large():
    flt = MotionFilter(_envelope())

    verdict, accepted = flt.apply([Rect(10, 10, 5, 5)])
    assert verdict is False
    assert accepted == []

    verdict, accepted = flt.apply([Rect(10, 10, 25, 25)])
    assert verdict is True
    assert accepted == [Rect(10, 10, 25, 25)]


def test_size_envelope_bounds_are_inclusive():
    flt = MotionFilter(_envelope())
    assert flt.accepts(Rect(0, 0, 20, 20))
    assert flt.accepts(Rect(0, 0, 500, 500))
    assert not flt.accepts(Rect(0, 0, 501, 100))
    assert not flt.accepts(Rect(0, 0, 100, 19))


def test_blob_outside_roi_never_counts():
    roi = Rect(0, 0, 100, 100)
    flt = MotionFilter(_envelope(), roi=roi)

    outside = Rect(200, 200, 50, 50)
    verdict, accepted = flt.apply([outside])
    assert verdict is False
    assert accepted == []

    # Only touching the ROI edge is not an intersection.
    verdict, _ = flt.apply([Rect(100, 0, 30, 30)])
    assert verdict is False


def test_blob_overlapping_roi_counts():
    flt = MotionFilter(_envelope(), roi=Rect(0, 0, 100, 100))
    verdict, accepted = flt.apply([Rect(90, 90, 40, 40), Rect(300, 300, 40, 40)])
    assert verdict is True
    assert accepted == [Rect(90, 90, 40, 40)]


def test_no_roi_means_whole_frame():
    flt = MotionFilter(_envelope(), roi=None)
    verdict, _ = flt.apply([Rect(5000, 5000, 30, 30)])
    assert verdict is True


def test_empty_blob_set():
    assert MotionFilter().apply([]) == (False, [])
