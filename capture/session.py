from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from analysis.motion.pipeline import FrameOutcome, MotionPipeline
from common.frame import Frame
from effects import status as st
from effects.status import StatusReporter
from eventlog.notice import UserNotice

from .video_source import FrameSource

_LOG = logging.getLogger(__name__)

PipelineFactory = Callable[[], MotionPipeline]


class MotionSession:
    """A capture session: one frame source feeding one fresh pipeline.

    - ``start()`` builds a new pipeline from ``pipeline_factory`` (clean
      reference frame, Inactive state, unfired cooldowns) and starts the
      source.
    - ``handle_frame()`` is the per-frame error boundary: ``MemoryError``
      stops the session, any other exception drops the frame's verdict.
      Nothing propagates back to the frame source.
    - ``stop()`` stops delivery and discards the pipeline.
    """

    def __init__(
        self,
        source: FrameSource,
        pipeline_factory: PipelineFactory,
        event_log: Optional[Any] = None,
        status: Optional[StatusReporter] = None,
        notice: Optional[UserNotice] = None,
    ) -> None:
        self._source = source
        self._factory = pipeline_factory
        self._event_log = event_log
        self._status = status
        self._notice = notice

        # Held for a whole frame cycle so stop() never lands mid-cycle.
        self._lock = threading.RLock()
        self._pipeline: Optional[MotionPipeline] = None
        self._running = False

    # ------------------------------------------------------------------ state

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pipeline(self) -> Optional[MotionPipeline]:
        return self._pipeline

    # ------------------------------------------------------------------ control

    def start(self) -> bool:
        """Start a session; returns False if the source failed to start."""
        with self._lock:
            if self._running:
                return True
            self._report(st.LOADING)
            self._pipeline = self._factory()
            self._running = True

        try:
            self._source.start(self.handle_frame)
        except Exception as exc:
            with self._lock:
                self._running = False
                self._pipeline = None
            self._log("error", f"Failed to start video source: {exc}")
            self._report(st.START_FAILED)
            self._show("Camera Error", f"Could not start the camera: {exc}")
            return False

        self._report(st.STARTED)
        self._log("info", "Application started. Camera activated.")
        return True

    def stop(self) -> None:
        with self._lock:
            was_running = self._running
            self._running = False
            pipeline, self._pipeline = self._pipeline, None
        if not was_running:
            return

        # Outside the lock: the source thread may be waiting on it.
        try:
            self._source.stop()
        except Exception as exc:
            self._log("error", f"Exception while stopping video source: {exc}")
        if pipeline is not None:
            pipeline.close()

        self._report(st.STOPPED)
        self._log("info", "Camera stopped. Resources disposed and reset.")

    # ------------------------------------------------------------------ frames

    def handle_frame(self, frame: Frame) -> Optional[FrameOutcome]:
        with self._lock:
            pipeline = self._pipeline
            if not self._running or pipeline is None:
                return None
            try:
                return pipeline.process(frame)
            except MemoryError as exc:
                self._log(
                    "critical",
                    f"Out of memory during frame processing: {exc}. Stopping camera.",
                )
                self._show(
                    "Critical Error",
                    "System ran out of memory during image processing. Stopping camera.",
                )
            except Exception as exc:
                _LOG.debug("Frame %s failed", frame.frame_id, exc_info=True)
                self._log("error", f"Exception during frame processing: {exc}")
                self._report(st.FRAME_ERROR)
                return None

        # Only the out-of-memory path gets here.
        self.stop()
        return None

    # ------------------------------------------------------------------ helpers

    def _report(self, text: str) -> None:
        if self._status is None:
            return
        try:
            self._status.report(text)
        except Exception as exc:
            _LOG.warning("Status report %r failed: %s", text, exc)

    def _log(self, level: str, message: str) -> None:
        if self._event_log is not None:
            getattr(self._event_log, level)(message)
        else:
            getattr(_LOG, level)(message)

    def _show(self, title: str, message: str) -> None:
        if self._notice is not None:
            self._notice.show(title, message)
