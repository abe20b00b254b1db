from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import cv2
import numpy as np

from common.time import file_stamp

_LOG = logging.getLogger(__name__)


class SnapshotError(Exception):
    """A snapshot could not be written."""


class SnapshotStore:
    """Persist motion snapshots as JPEG files under one directory.

    Files are named ``Motion_<YYYYMMDD_HHMMSSfff>.jpg`` (local time of the
    frame). The directory is created on first use if it is missing.

    ``event_log`` is optional; when given it must expose ``info(str)`` and
    receives "created directory" / "saved" lines.
    """

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "Motion",
        jpeg_quality: int = 90,
        event_log: Optional[Any] = None,
    ) -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self.jpeg_quality = int(jpeg_quality)
        self._event_log = event_log

    def path_for(self, ts_ms: float) -> Path:
        return self.directory / f"{self.prefix}_{file_stamp(ts_ms)}.jpg"

    def _ensure_directory(self) -> None:
        if self.directory.is_dir():
            return
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SnapshotError(f"cannot create {self.directory}: {exc}") from exc
        if self._event_log is not None:
            self._event_log.info(f"Created save directory: {self.directory}")

    def save(self, img: np.ndarray, ts_ms: float) -> Path:
        """Write ``img`` and return the path; raises SnapshotError on failure."""
        self._ensure_directory()
        path = self.path_for(ts_ms)
        try:
            ok = cv2.imwrite(str(path), img, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
        except cv2.error as exc:
            raise SnapshotError(f"cannot encode snapshot {path}: {exc}") from exc
        if not ok:
            raise SnapshotError(f"cannot write snapshot {path}")

        _LOG.debug("Snapshot written: %s", path)
        if self._event_log is not None:
            self._event_log.info(f"Snapshot saved to: {path}")
        return path
