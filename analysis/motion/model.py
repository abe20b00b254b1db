from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Rect:
    """Axis-aligned pixel rectangle (x, y, width, height)."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def intersects(self, other: Rect) -> bool:
        # Edges that only touch do not count as an intersection.
        return (
            other.x < self.right
            and self.x < other.right
            and other.y < self.bottom
            and self.y < other.bottom
        )


@dataclass(frozen=True)
class SizeEnvelope:
    """Inclusive width/height bounds a blob must fall within to count."""

    min_width: int = 20
    min_height: int = 20
    max_width: int = 500
    max_height: int = 500

    def contains(self, rect: Rect) -> bool:
        return (
            self.min_width <= rect.width <= self.max_width
            and self.min_height <= rect.height <= self.max_height
        )


@dataclass
class MotionResult:
    """
    Per-frame output of the motion engine.

    ``is_motion`` is ``None`` when no verdict was possible for the frame (the
    first frame of a session, or a frame whose size differs from the
    reference). Downstream components treat that exactly like ``False``
    except that it is reported as "seeded" rather than "still".
    """

    is_motion: Optional[bool]
    pts_ms: float  # producer-aligned epoch ms for the frame
    frame_id: int

    # Accepted blob rectangles (after the size envelope and ROI).
    rects: List[Rect] = field(default_factory=list)

    # Telemetry (best-effort; safe defaults so callers can rely on presence)
    blob_count: int = 0  # blobs found before filtering
    motion_px: int = 0  # pixels above threshold in the mask
    area_frac: float = 0.0  # fraction of frame marked as motion

    @property
    def seeded(self) -> bool:
        return self.is_motion is None


@dataclass
class MotionConfig:
    """
    Configuration knobs for the frame-difference motion engine.
    """

    # Binary mask: a pixel is motion iff |incoming - reference| > threshold.
    threshold: int = 15

    # Blob size envelope (inclusive).
    min_width: int = 20
    min_height: int = 20
    max_width: int = 500
    max_height: int = 500

    # Region of interest; None means the whole frame counts.
    roi: Optional[Rect] = None

    # Pixel connectivity for blob extraction (4 or 8).
    connectivity: int = 8

    def envelope(self) -> SizeEnvelope:
        return SizeEnvelope(
            min_width=self.min_width,
            min_height=self.min_height,
            max_width=self.max_width,
            max_height=self.max_height,
        )
