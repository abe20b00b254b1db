"""Public exports for the motion analysis package."""

from __future__ import annotations

from .engine import FrameDifferencer, MotionEngine
from .events import (
    MotionEventConfig,
    MotionSignal,
    MotionState,
    MotionStateMachine,
    MotionStatus,
    SignalKind,
)
from .filter import MotionFilter
from .model import MotionConfig, MotionResult, Rect, SizeEnvelope

__all__ = [
    "FrameDifferencer",
    "MotionEngine",
    "MotionResult",
    "MotionConfig",
    "MotionFilter",
    "Rect",
    "SizeEnvelope",
    "MotionEventConfig",
    "MotionSignal",
    "MotionState",
    "MotionStateMachine",
    "MotionStatus",
    "SignalKind",
]
