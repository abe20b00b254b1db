from __future__ import annotations

from typing import List, Optional, Sequence

import cv2
import numpy as np

from ..model import Rect

# ITU-R BT.709 luma weights, ordered for BGR input.
BT709_BGR = np.array([[0.0722, 0.7152, 0.2126]], dtype=np.float32)


# --- Luminance -------------------------------------------------------------------
def to_luma(img: np.ndarray) -> np.ndarray:
    """
    Convert a BGR (H,W,3) or BGRA (H,W,4) frame into a single-channel uint8
    luma buffer with BT.709 weights. Single-channel input is returned as a
    uint8 copy so the caller always owns the result.
    """
    arr = np.asarray(img)
    if arr.ndim == 2:
        return arr.astype(np.uint8, copy=True)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported frame shape for luma conversion: {arr.shape}")
    if arr.shape[2] == 4:
        arr = arr[:, :, :3]
    # cv2.transform saturates to the input depth, so uint8 in -> uint8 out.
    luma = cv2.transform(np.ascontiguousarray(arr, dtype=np.uint8), BT709_BGR)
    return luma.reshape(arr.shape[0], arr.shape[1])


# --- Difference / threshold ------------------------------------------------------
def abs_difference(incoming: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Per-pixel |incoming - reference| for two equally sized luma buffers."""
    if incoming.shape != reference.shape:
        raise ValueError(
            f"Difference requires equal shapes, got {incoming.shape} vs {reference.shape}"
        )
    return cv2.absdiff(incoming, reference)


def build_motion_mask(diff: np.ndarray, threshold: int) -> np.ndarray:
    """Binary mask (0/255): motion iff diff > threshold. Pure function."""
    _, mask = cv2.threshold(diff, int(threshold), 255, cv2.THRESH_BINARY)
    return mask


# --- Connected components ----------------------------------------------------------
def extract_blobs(mask: np.ndarray, connectivity: int = 8) -> List[Rect]:
    """
    Return one bounding Rect per maximal connected region of motion pixels.

    Labels come from cv2.connectedComponentsWithStats, which scans in raster
    order, so identical masks always yield identical output.
    """
    if connectivity not in (4, 8):
        raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")
    if not mask.any():
        return []
    num, _labels, stats, _ = cv2.connectedComponentsWithStats(
        mask, connectivity=int(connectivity)
    )
    out: List[Rect] = []
    # Label 0 is the background.
    for i in range(1, num):
        x, y, w, h, _area = stats[i]
        out.append(Rect(int(x), int(y), int(w), int(h)))
    return out


# --- Drawing -----------------------------------------------------------------------
def annotate(
    img: np.ndarray,
    rects: Sequence[Rect],
    roi: Optional[Rect] = None,
    thickness: int = 2,
) -> np.ndarray:
    """Copy of ``img`` with motion rects in green and the ROI in red."""
    out = img.copy()
    if out.ndim == 2:
        out = cv2.cvtColor(out, cv2.COLOR_GRAY2BGR)
    for r in rects:
        cv2.rectangle(out, (r.x, r.y), (r.right, r.bottom), (0, 255, 0), thickness)
    if roi is not None:
        cv2.rectangle(out, (roi.x, roi.y), (roi.right, roi.bottom), (0, 0, 255), thickness)
    return out
