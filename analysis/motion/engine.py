"""Frame-difference motion engine.

The engine turns each incoming `common.frame.Frame` into a `MotionResult`:

- `FrameDifferencer` keeps the previous frame's BT.709 luma buffer as the
  reference and yields |incoming - reference|.
- The difference map is thresholded into a binary mask.
- Connected regions of the mask become blob rectangles.
- `MotionFilter` keeps blobs inside the size envelope and the ROI.

There is no background model: the reference is always exactly the previous
frame, replaced once per cycle.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from common.frame import Frame

from .filter import MotionFilter
from .model import MotionConfig, MotionResult
from .utils.motion_utils import abs_difference, build_motion_mask, extract_blobs, to_luma

_LOG = logging.getLogger(__name__)


class FrameDifferencer:
    """One-slot rolling buffer of the previous frame's luma.

    ``reference`` is ``None`` until the first frame of a session has been
    seen; that first frame (and any frame whose size differs from the
    reference) only seeds the buffer and produces no difference map.
    """

    def __init__(self) -> None:
        self._reference: Optional[np.ndarray] = None

    @property
    def reference(self) -> Optional[np.ndarray]:
        return self._reference

    def compute(self, img: np.ndarray) -> Tuple[Optional[np.ndarray], np.ndarray]:
        """Return ``(diff_or_None, luma)`` without touching the reference."""
        luma = to_luma(img)
        ref = self._reference
        if ref is None:
            return None, luma
        if ref.shape != luma.shape:
            _LOG.info("Frame size changed %s -> %s; reseeding reference", ref.shape, luma.shape)
            return None, luma
        return abs_difference(luma, ref), luma

    def commit(self, luma: np.ndarray) -> None:
        self._reference = luma


class MotionEngine:
    """Stateful frame-difference motion engine.

    Holds only the reference luma buffer; mask, difference and blob buffers
    live for a single `step` call.
    """

    def __init__(self, config: Optional[MotionConfig] = None) -> None:
        self._cfg = config or MotionConfig()
        self._diff = FrameDifferencer()
        self._filter = MotionFilter(self._cfg.envelope(), self._cfg.roi)

    @property
    def config(self) -> MotionConfig:
        return self._cfg

    @property
    def differencer(self) -> FrameDifferencer:
        return self._diff

    @property
    def motion_filter(self) -> MotionFilter:
        return self._filter

    def step(self, frame: Frame) -> MotionResult:
        """Process a single frame and return a `MotionResult`.

        Errors raised by the image operations propagate to the caller; the
        reference is left untouched in that case.
        """
        pts_ms = float(frame.pts_ms)
        frame_id = int(frame.frame_id)

        diff, luma = self._diff.compute(frame.img)
        if diff is None:
            self._diff.commit(luma)
            return MotionResult(is_motion=None, pts_ms=pts_ms, frame_id=frame_id)

        mask = build_motion_mask(diff, self._cfg.threshold)
        blobs = extract_blobs(mask, self._cfg.connectivity)
        verdict, accepted = self._filter.apply(blobs)
        # Every stage succeeded; this frame becomes the next reference.
        self._diff.commit(luma)

        motion_px = int(np.count_nonzero(mask))
        total_px = int(mask.size)
        return MotionResult(
            is_motion=verdict,
            pts_ms=pts_ms,
            frame_id=frame_id,
            rects=accepted,
            blob_count=len(blobs),
            motion_px=motion_px,
            area_frac=float(motion_px) / float(total_px) if total_px > 0 else 0.0,
        )
