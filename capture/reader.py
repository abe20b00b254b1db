from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, Union

import cv2
import numpy as np

_LOG = logging.getLogger(__name__)


class FrameSourceError(Exception):
    """A frame stream could not be opened or read."""


class FrameStream(Protocol):
    def start(self) -> None: ...
    def read(self) -> Optional[Tuple[np.ndarray, float, int]]: ...  # (frame_bgr, pts_ms, frame_id)
    def close(self) -> None: ...


class NullTransport:
    """A tiny source that synthesizes black frames. Useful for tests/dev."""

    def __init__(self, width: int = 640, height: int = 360, fps: float = 15.0):
        self.width, self.height, self.fps = width, height, fps
        self._running = False
        self._next_ts = 0.0
        self._frame_id = 0

    def start(self) -> None:
        self._running = True
        self._next_ts = time.time() * 1000.0

    def read(self) -> Optional[Tuple[np.ndarray, float, int]]:
        if not self._running:
            return None
        now_ms = time.time() * 1000.0
        if now_ms < self._next_ts:
            return None
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        fid = self._frame_id
        self._frame_id += 1
        self._next_ts += 1000.0 / max(self.fps, 0.001)
        return frame, now_ms, fid

    def close(self) -> None:
        self._running = False


class OpenCVTransport:
    """Camera index, file path or stream URL read through ``cv2.VideoCapture``.

    ``read`` blocks until the device delivers a frame; frames are stamped with
    wall-clock epoch ms on arrival.
    """

    def __init__(
        self,
        device: Union[int, str] = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
        fps: Optional[float] = None,
    ):
        self.device = device
        self.width, self.height, self.fps = width, height, fps
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_id = 0

    def start(self) -> None:
        cap = cv2.VideoCapture(self.device)
        if not cap.isOpened():
            cap.release()
            raise FrameSourceError(f"cannot open video device {self.device!r}")
        if self.width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self.width))
        if self.height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self.height))
        if self.fps:
            cap.set(cv2.CAP_PROP_FPS, float(self.fps))
        self._cap = cap
        _LOG.info(
            "Opened video device %r (%dx%d)",
            self.device,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def read(self) -> Optional[Tuple[np.ndarray, float, int]]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        fid = self._frame_id
        self._frame_id += 1
        return frame, time.time() * 1000.0, fid

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None


# --- Discovery ---------------------------------------------------------------


@dataclass
class ReaderConfig:
    prefer: str = "opencv"  # or "null"
    device: Union[int, str] = 0
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[float] = None


def parse_device(text: str) -> Union[int, str]:
    """``"0"`` -> camera index 0; anything else is a path or URL."""
    return int(text) if text.isdigit() else text


class ReaderFactory:
    @staticmethod
    def from_config(cfg: ReaderConfig) -> FrameStream:
        if cfg.prefer == "null":
            return NullTransport(
                width=cfg.width or 640, height=cfg.height or 360, fps=cfg.fps or 15.0
            )
        if cfg.prefer == "opencv":
            return OpenCVTransport(cfg.device, width=cfg.width, height=cfg.height, fps=cfg.fps)
        raise ValueError(f"Unknown reader backend: {cfg.prefer!r}")
