from __future__ import annotations

from typing import List, Optional

import numpy as np

from analysis.motion import MotionConfig, MotionEngine, MotionEventConfig, MotionState
from analysis.motion import MotionStateMachine
from analysis.motion.pipeline import MotionPipeline
from capture.session import MotionSession
from common.frame import Frame
from effects import status as st
from effects.dispatcher import BEEP, SNAPSHOT, EffectDispatcher, EffectsConfig
from eventlog.notice import UserNotice


class _ManualSource:
    """Push source driven by the test: ``push(frame)`` calls the callback."""

    def __init__(self, fail_start: bool = False) -> None:
        self.fail_start = fail_start
        self.on_frame = None
        self.starts = 0
        self.stops = 0

    def start(self, on_frame) -> None:
        if self.fail_start:
            raise RuntimeError("no camera")
        self.starts += 1
        self.on_frame = on_frame

    def stop(self) -> None:
        self.stops += 1
        self.on_frame = None

    def push(self, frame: Frame):
        if self.on_frame is None:
            return None
        return self.on_frame(frame)


class _Status:
    def __init__(self) -> None:
        self.lines: List[str] = []

    def report(self, text: str) -> None:
        self.lines.append(text)


class _Log:
    def __init__(self) -> None:
        self.lines: List[str] = []

    def _add(self, prefix: str, message: str) -> None:
        self.lines.append(f"{prefix}: {message}")

    def info(self, message):
        self._add("INFO", message)

    def alert(self, message):
        self._add("ALERT", message)

    def error(self, message):
        self._add("ERROR", message)

    def critical(self, message):
        self._add("CRITICAL ERROR", message)


class _Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, *args) -> None:
        self.calls += 1


def _frame(fid: int, square: Optional[int] = None) -> Frame:
    img = np.zeros((120, 160, 3), dtype=np.uint8)
    if square is not None:
        img[20:60, square : square + 40] = 255
    return Frame(img=img, pts_ms=fid * 200.0, frame_id=fid)


def _session(source, log=None, status=None, notice=None, tone=None, store=None):
    log = log or _Log()
    status = status or _Status()

    def factory() -> MotionPipeline:
        return MotionPipeline(
            engine=MotionEngine(MotionConfig()),
            state_machine=MotionStateMachine(MotionEventConfig()),
            dispatcher=EffectDispatcher.build(
                EffectsConfig(), tone=tone, snapshot=store, event_log=log
            ),
            event_log=log,
            status=status,
        )

    return MotionSession(source, factory, event_log=log, status=status, notice=notice)


def test_pipeline_end_to_end_through_session():
    src, log, status, tone, store = _ManualSource(), _Log(), _Status(), _Counter(), _Counter()
    sess = _session(src, log=log, status=status, tone=tone, store=store)
    assert sess.start()

    first = src.push(_frame(0))
    assert first.signal is None

    out = src.push(_frame(1, square=10))
    assert out.result.is_motion is True
    assert sorted(out.fired) == sorted([BEEP, SNAPSHOT])
    assert sess.pipeline.state_machine.state is MotionState.ACTIVE
    assert st.MOTION_DETECTED in status.lines
    assert "ALERT: Motion event started." in log.lines

    # Square keeps moving: sustained.
    src.push(_frame(2, square=60))
    assert status.lines[-1] == st.MOTION_ACTIVE

    # Scene goes still; after the grace period the event ends.
    src.push(_frame(3, square=60))
    src.push(_frame(10, square=60))
    assert sess.pipeline.state_machine.state is MotionState.INACTIVE
    assert any(line.startswith("INFO: Motion event ended. Duration:") for line in log.lines)
    assert status.lines[-1] == st.IDLE


def test_stop_then_restart_starts_clean():
    src, tone = _ManualSource(), _Counter()
    sess = _session(src, tone=tone)
    sess.start()
    src.push(_frame(0))
    src.push(_frame(1, square=10))
    old = sess.pipeline
    assert old.state_machine.active
    assert old.dispatcher.effect(BEEP).cooldown.last_fired_ms is not None

    sess.stop()
    assert not sess.running
    assert sess.pipeline is None
    assert src.stops == 1
    sess.stop()  # idempotent
    assert src.stops == 1

    assert sess.start()
    new = sess.pipeline
    assert new is not old
    assert new.state_machine.state is MotionState.INACTIVE
    assert new.engine.differencer.reference is None
    assert all(e.cooldown.last_fired_ms is None for e in new.dispatcher.effects)

    # First frame of the new session never yields a verdict, even if it differs.
    out = src.push(_frame(2, square=90))
    assert out.result.is_motion is None
    assert out.signal is None
    assert tone.calls == 1


def test_start_twice_is_a_noop():
    src = _ManualSource()
    sess = _session(src)
    assert sess.start()
    pipeline = sess.pipeline
    assert sess.start()
    assert sess.pipeline is pipeline
    assert src.starts == 1


def test_frames_after_stop_are_ignored():
    src = _ManualSource()
    sess = _session(src)
    sess.start()
    on_frame = src.on_frame
    sess.stop()
    assert on_frame(_frame(0)) is None


def test_stage_exception_drops_verdict_and_keeps_running():
    src, log = _ManualSource(), _Log()
    sess = _session(src, log=log)
    sess.start()
    src.push(_frame(0))

    bad = Frame(img=np.zeros((4, 4, 2), dtype=np.uint8), pts_ms=100.0, frame_id=1)
    assert src.push(bad) is None
    assert sess.running
    assert any(line.startswith("ERROR: Exception during frame processing") for line in log.lines)
    assert sess.pipeline.state_machine.state is MotionState.INACTIVE

    # The good reference survived the failed cycle.
    out = src.push(_frame(2, square=10))
    assert out.result.is_motion is True


def test_memory_error_stops_session_and_notifies_once():
    src, log, shown = _ManualSource(), _Log(), []
    notice = UserNotice(notify=lambda t, m: shown.append(t), clock=lambda: 0.0)
    sess = _session(src, log=log, notice=notice)
    sess.start()

    def boom(frame):
        raise MemoryError("cannot allocate")

    sess.pipeline.process = boom  # type: ignore[method-assign]
    assert src.push(_frame(0)) is None

    assert not sess.running
    assert sess.pipeline is None
    assert src.stops == 1
    assert shown == ["Critical Error"]
    assert any(line.startswith("CRITICAL ERROR: Out of memory") for line in log.lines)
    assert "INFO: Camera stopped. Resources disposed and reset." in log.lines


def test_source_start_failure_reports_error():
    src, log, status = _ManualSource(fail_start=True), _Log(), _Status()
    sess = _session(src, log=log, status=status)

    assert sess.start() is False
    assert not sess.running
    assert sess.pipeline is None
    assert status.lines[-1] == st.START_FAILED
    assert any("Failed to start video source" in line for line in log.lines)


def test_annotated_frames_reach_the_snapshot_effect():
    saved = []
    pipeline = MotionPipeline(
        engine=MotionEngine(MotionConfig()),
        state_machine=MotionStateMachine(MotionEventConfig()),
        dispatcher=EffectDispatcher.build(
            EffectsConfig(), snapshot=lambda img, ts: saved.append((img, ts))
        ),
        annotate_effects=True,
    )
    raw = _frame(1, square=10)
    pipeline.process(_frame(0))
    out = pipeline.process(raw)

    assert out.fired == [SNAPSHOT]
    img, ts = saved[0]
    assert ts == raw.pts_ms
    assert img is not raw.img
    # Green box on the blob outline; the source frame is untouched.
    assert tuple(img[20, 10]) == (0, 255, 0)
    assert tuple(raw.img[20, 10]) == (255, 255, 255)
