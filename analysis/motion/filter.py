from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .model import Rect, SizeEnvelope


class MotionFilter:
    """Reject blobs outside the size envelope or the region of interest.

    A blob counts iff ``min_w <= w <= max_w``, ``min_h <= h <= max_h`` and
    either no ROI is set or the ROI intersects the blob rectangle. Each blob is
    judged on its own.
    """

    def __init__(self, envelope: Optional[SizeEnvelope] = None, roi: Optional[Rect] = None):
        self._envelope = envelope or SizeEnvelope()
        self._roi = roi

    @property
    def roi(self) -> Optional[Rect]:
        return self._roi

    @property
    def envelope(self) -> SizeEnvelope:
        return self._envelope

    def accepts(self, rect: Rect) -> bool:
        if not self._envelope.contains(rect):
            return False
        return self._roi is None or self._roi.intersects(rect)

    def apply(self, blobs: Iterable[Rect]) -> Tuple[bool, List[Rect]]:
        accepted = [r for r in blobs if self.accepts(r)]
        return bool(accepted), accepted
