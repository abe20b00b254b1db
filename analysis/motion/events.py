from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Optional


class MotionState(str, enum.Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


class SignalKind(str, enum.Enum):
    STARTED = "started"  # Inactive -> Active
    SUSTAINED = "sustained"  # Active -> Active on a positive frame
    HOLD = "hold"  # Active, negative frame inside the grace period
    ENDED = "ended"  # Active -> Inactive
    IDLE = "idle"  # Inactive -> Inactive


@dataclass(frozen=True)
class MotionSignal:
    """What a single frame did to the motion state."""

    kind: SignalKind
    at_ms: float
    # Only set for ENDED: now - state-entry time.
    duration_ms: Optional[float] = None

    @property
    def triggers_effects(self) -> bool:
        return self.kind in (SignalKind.STARTED, SignalKind.SUSTAINED)


@dataclass(frozen=True)
class MotionStatus:
    """Immutable snapshot of the state machine; replaced on every change."""

    state: MotionState = MotionState.INACTIVE
    entered_ms: Optional[float] = None
    last_positive_ms: Optional[float] = None


@dataclass
class MotionEventConfig:
    """
    Configuration for the MotionStateMachine.
    """

    # How long (ms) without a positive frame before an active event ends.
    grace_ms: float = 1000.0


class MotionStateMachine:
    """
    Track Inactive/Active motion across frames.

    API:
        sm = MotionStateMachine(MotionEventConfig())
        signal = sm.update(verdict, now_ms)   # MotionSignal

    The machine is purely reactive: it holds no queue and never looks ahead.
    The grace period is the only temporal smoothing, so short detection gaps
    do not end and restart an event.
    """

    def __init__(self, config: Optional[MotionEventConfig] = None) -> None:
        self._cfg = config or MotionEventConfig()
        self._status = MotionStatus()

    @property
    def status(self) -> MotionStatus:
        return self._status

    @property
    def state(self) -> MotionState:
        return self._status.state

    @property
    def active(self) -> bool:
        return self._status.state is MotionState.ACTIVE

    def update(self, verdict: bool, now_ms: float) -> MotionSignal:
        st = self._status

        if verdict:
            if st.state is MotionState.INACTIVE:
                self._status = MotionStatus(
                    state=MotionState.ACTIVE,
                    entered_ms=now_ms,
                    last_positive_ms=now_ms,
                )
                return MotionSignal(SignalKind.STARTED, now_ms)
            self._status = replace(st, last_positive_ms=now_ms)
            return MotionSignal(SignalKind.SUSTAINED, now_ms)

        if st.state is MotionState.INACTIVE:
            return MotionSignal(SignalKind.IDLE, now_ms)

        last = st.last_positive_ms if st.last_positive_ms is not None else now_ms
        if (now_ms - last) > float(self._cfg.grace_ms):
            entered = st.entered_ms if st.entered_ms is not None else now_ms
            self._status = MotionStatus(state=MotionState.INACTIVE)
            return MotionSignal(SignalKind.ENDED, now_ms, duration_ms=now_ms - entered)
        return MotionSignal(SignalKind.HOLD, now_ms)
