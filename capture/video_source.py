from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Callable, Optional, Protocol

from common.frame import Frame

from .reader import FrameSourceError, FrameStream

_LOG = logging.getLogger(__name__)

FrameCallback = Callable[[Frame], object]


class FrameSource(Protocol):
    """Push-style source: calls ``on_frame`` once per arriving frame."""

    def start(self, on_frame: FrameCallback) -> None: ...
    def stop(self) -> None: ...


class PollingFrameSource:
    """Turn a pull `FrameStream` into a push `FrameSource`.

    A single worker thread reads the stream and invokes the callback, so
    frames are delivered strictly one at a time and in arrival order. The
    frame handed to the callback is only guaranteed valid for that call.

    Each run gets its own stop event. A restart waits for the previous
    worker to exit (it owns and closes the stream) and raises
    `FrameSourceError` if it is still busy after ``stop_timeout_s``.
    """

    def __init__(
        self,
        stream: FrameStream,
        idle_sleep_s: float = 0.005,
        stop_timeout_s: float = 2.0,
    ) -> None:
        self._stream = stream
        self._idle_sleep_s = idle_sleep_s
        self._stop_timeout_s = stop_timeout_s
        self._run_ev = threading.Event()
        self._thr: Optional[threading.Thread] = None
        self._on_frame: Optional[FrameCallback] = None

    @property
    def running(self) -> bool:
        return self._run_ev.is_set()

    def start(self, on_frame: FrameCallback) -> None:
        if self.running:
            return
        self._wait_previous()
        # Open the stream on the caller's thread so start errors propagate.
        self._stream.start()
        self._on_frame = on_frame
        run_ev = threading.Event()
        run_ev.set()
        self._run_ev = run_ev
        self._thr = threading.Thread(
            target=self._worker, args=(run_ev,), name="frame-source", daemon=True
        )
        self._thr.start()

    def _wait_previous(self) -> None:
        thr = self._thr
        if thr is None:
            return
        if thr is threading.current_thread():
            raise FrameSourceError("cannot restart the frame source from its own callback")
        thr.join(timeout=self._stop_timeout_s)
        if thr.is_alive():
            raise FrameSourceError("previous frame worker is still running")
        self._thr = None

    def _worker(self, run_ev: threading.Event) -> None:
        try:
            while run_ev.is_set():
                try:
                    item = self._stream.read()
                except Exception as exc:
                    _LOG.warning("Frame read failed: %s", exc)
                    time.sleep(self._idle_sleep_s)
                    continue
                if item is None:
                    time.sleep(self._idle_sleep_s)
                    continue
                img, pts_ms, fid = item
                cb = self._on_frame
                if cb is None or not run_ev.is_set():
                    break
                try:
                    cb(Frame(img=img, pts_ms=float(pts_ms), frame_id=int(fid)))
                except Exception:
                    _LOG.exception("Frame callback raised; frame %s dropped", fid)
        finally:
            with contextlib.suppress(Exception):
                self._stream.close()

    def stop(self) -> None:
        self._run_ev.clear()
        self._on_frame = None
        thr = self._thr
        if thr is None:
            with contextlib.suppress(Exception):
                self._stream.close()
            return
        # stop() may be called from inside the callback; never join ourselves.
        if thr is not threading.current_thread():
            thr.join(timeout=self._stop_timeout_s)
        # A worker that has not exited yet stays tracked until a later start().
        if not thr.is_alive():
            self._thr = None
