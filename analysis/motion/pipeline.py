from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from common.frame import Frame
from effects import status as st
from effects.dispatcher import EffectDispatcher
from effects.status import StatusReporter

from .engine import MotionEngine
from .events import MotionSignal, MotionStateMachine, SignalKind
from .model import MotionResult
from .utils.motion_utils import annotate

_LOG = logging.getLogger(__name__)


@dataclass
class FrameOutcome:
    """Everything one frame produced."""

    result: MotionResult
    # None when the frame only seeded the reference.
    signal: Optional[MotionSignal] = None
    fired: List[str] = field(default_factory=list)


class MotionPipeline:
    """Run one frame through analysis, the state machine and the effects.

    A pipeline instance owns all session state (reference frame, motion
    state, cooldowns). Build a new one for every session instead of
    resetting an old one. ``process`` is a plain synchronous call and must
    not be entered concurrently.

    With ``annotate_effects`` the effects (snapshots in particular) receive a
    copy of the frame with the accepted blobs and the ROI drawn on it.
    """

    def __init__(
        self,
        engine: MotionEngine,
        state_machine: MotionStateMachine,
        dispatcher: EffectDispatcher,
        event_log: Optional[Any] = None,
        status: Optional[StatusReporter] = None,
        status_enabled: bool = True,
        annotate_effects: bool = False,
    ) -> None:
        self.engine = engine
        self.state_machine = state_machine
        self.dispatcher = dispatcher
        self._event_log = event_log
        self._status = status
        self._status_enabled = status_enabled
        self._annotate_effects = annotate_effects

    def process(self, frame: Frame) -> FrameOutcome:
        result = self.engine.step(frame)
        if result.seeded:
            return FrameOutcome(result=result)

        signal = self.state_machine.update(bool(result.is_motion), result.pts_ms)

        if signal.kind is SignalKind.STARTED:
            self._report(st.MOTION_DETECTED)
            self._log_alert("Motion event started.")
        elif signal.kind is SignalKind.SUSTAINED:
            self._report(st.MOTION_ACTIVE)
        elif signal.kind is SignalKind.ENDED:
            self._report(st.IDLE)
            duration_s = (signal.duration_ms or 0.0) / 1000.0
            self._log_info(f"Motion event ended. Duration: {duration_s:.2f} seconds.")
        elif signal.kind is SignalKind.IDLE:
            self._report(st.IDLE)

        if self._annotate_effects and signal.triggers_effects:
            frame = Frame(
                img=annotate(frame.img, result.rects, self.engine.config.roi),
                pts_ms=frame.pts_ms,
                frame_id=frame.frame_id,
            )
        fired = self.dispatcher.dispatch(signal, frame)
        return FrameOutcome(result=result, signal=signal, fired=fired)

    def close(self) -> None:
        """Release the effect workers; the pipeline is not reused afterwards."""
        self.dispatcher.close()

    # ------------------------------------------------------------------ helpers

    def _report(self, text: str) -> None:
        if not self._status_enabled or self._status is None:
            return
        try:
            self._status.report(text)
        except Exception as exc:
            _LOG.warning("Status report %r failed: %s", text, exc)

    def _log_alert(self, message: str) -> None:
        if self._event_log is not None:
            self._event_log.alert(message)

    def _log_info(self, message: str) -> None:
        if self._event_log is not None:
            self._event_log.info(message)
