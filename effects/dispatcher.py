from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from analysis.motion.events import MotionSignal
from common.cooldown import Cooldown
from common.frame import Frame
from eventlog.notice import UserNotice

from .background import BackgroundCall

_LOG = logging.getLogger(__name__)

BEEP = "beep"
SPEECH = "speech"
SNAPSHOT = "snapshot"


def _always() -> bool:
    return True


@dataclass
class EffectsConfig:
    """Enable flags and cooldowns (ms) for the motion side effects."""

    beep_enabled: bool = True
    beep_cooldown_ms: float = 5000.0

    speech_enabled: bool = True
    speech_cooldown_ms: float = 4000.0
    speech_text: str = "Motion Alert"

    snapshot_enabled: bool = True
    snapshot_cooldown_ms: float = 3000.0

    # Motion status lines ("MOTION DETECTED!" etc.) on the status reporter.
    status_enabled: bool = True


@dataclass
class Effect:
    """One debounced side effect.

    ``action`` receives the frame that triggered it. ``available`` lets a
    collaborator opt out silently (e.g. no speech engine); an unavailable
    effect neither fires nor consumes its cooldown. With ``offload`` the
    action runs on a dedicated worker thread owned by the dispatcher.
    """

    name: str
    action: Callable[[Frame], Any]
    cooldown: Cooldown
    enabled: bool = True
    available: Callable[[], bool] = field(default=_always)
    fired_message: Optional[str] = None
    notify_on_failure: bool = False
    offload: bool = False


class EffectDispatcher:
    """Fire each effect independently when its cooldown allows.

    On a STARTED or SUSTAINED signal every effect is evaluated on its own:
    it fires iff enabled, available and ``now - last_fired > cooldown``.
    Firing stamps the cooldown first, then calls the collaborator, so a
    failing collaborator is retried only after its cooldown. A failure in
    one effect never stops the others.

    Offloaded effects go through the same success/failure handling, only on
    their worker thread: the "played"/"saved" line or the error line and
    user notice are written once the collaborator has actually finished.
    """

    def __init__(
        self,
        effects: Sequence[Effect],
        event_log: Optional[Any] = None,
        notice: Optional[UserNotice] = None,
        offload_queue_max: int = 4,
    ) -> None:
        self._effects: Dict[str, Effect] = {e.name: e for e in effects}
        self._event_log = event_log
        self._notice = notice
        self._workers: Dict[str, BackgroundCall] = {
            e.name: BackgroundCall(self._run, name=e.name, queue_max=offload_queue_max)
            for e in effects
            if e.offload
        }

    @classmethod
    def build(
        cls,
        config: EffectsConfig,
        tone: Optional[Callable[[], Any]] = None,
        speech: Optional[Any] = None,
        snapshot: Optional[Callable[[Any, float], Any]] = None,
        event_log: Optional[Any] = None,
        notice: Optional[UserNotice] = None,
        offload: bool = False,
    ) -> EffectDispatcher:
        """Assemble the standard beep / speech / snapshot effects.

        ``tone`` is a zero-argument callable; ``speech`` exposes
        ``speak(text)`` and optionally ``available``; ``snapshot`` is called
        as ``snapshot(img, ts_ms)``. Missing collaborators disable the effect.
        ``offload`` moves tone and snapshot onto worker threads; speech
        already runs detached.
        """
        effects: List[Effect] = []

        effects.append(
            Effect(
                name=BEEP,
                action=lambda _frame: tone(),  # type: ignore[misc]
                cooldown=Cooldown(config.beep_cooldown_ms),
                enabled=config.beep_enabled and tone is not None,
                fired_message="Alert sound played.",
                offload=offload,
            )
        )

        text = config.speech_text
        effects.append(
            Effect(
                name=SPEECH,
                action=lambda _frame: speech.speak(text),  # type: ignore[union-attr]
                cooldown=Cooldown(config.speech_cooldown_ms),
                enabled=config.speech_enabled and speech is not None,
                available=lambda: bool(getattr(speech, "available", True)),
                fired_message=f"Speech alert '{text}' played.",
            )
        )

        effects.append(
            Effect(
                name=SNAPSHOT,
                action=lambda frame: snapshot(frame.img, frame.pts_ms),  # type: ignore[misc]
                cooldown=Cooldown(config.snapshot_cooldown_ms),
                enabled=config.snapshot_enabled and snapshot is not None,
                notify_on_failure=True,
                offload=offload,
            )
        )
        return cls(effects, event_log=event_log, notice=notice)

    # ------------------------------------------------------------------ public

    @property
    def effects(self) -> List[Effect]:
        return list(self._effects.values())

    def effect(self, name: str) -> Effect:
        return self._effects[name]

    def dispatch(self, signal: MotionSignal, frame: Frame) -> List[str]:
        """Evaluate every effect for ``signal``; return the names that fired.

        An offloaded effect counts as fired once it is handed to its worker.
        """
        if not signal.triggers_effects:
            return []

        now = signal.at_ms
        fired: List[str] = []
        owned: Optional[Frame] = None
        for eff in self._effects.values():
            if not eff.enabled or not eff.cooldown.ready(now):
                continue
            if not eff.available():
                continue
            eff.cooldown.fire(now)
            worker = self._workers.get(eff.name)
            if worker is not None:
                # The source may reuse its buffer once this call returns.
                if owned is None:
                    owned = Frame(
                        img=frame.img.copy(), pts_ms=frame.pts_ms, frame_id=frame.frame_id
                    )
                worker(eff, owned)
                fired.append(eff.name)
            elif self._run(eff, frame):
                fired.append(eff.name)
        return fired

    def close(self) -> None:
        """Stop the offload workers; queued calls get a short grace period."""
        for worker in self._workers.values():
            worker.close()

    # ------------------------------------------------------------------ helpers

    def _run(self, eff: Effect, frame: Frame) -> bool:
        try:
            eff.action(frame)
        except Exception as exc:
            self._failed(eff, exc)
            return False
        if eff.fired_message:
            self._info(eff.fired_message)
        return True

    def _info(self, message: str) -> None:
        if self._event_log is not None:
            self._event_log.info(message)

    def _failed(self, eff: Effect, exc: Exception) -> None:
        _LOG.debug("Effect %s failed", eff.name, exc_info=True)
        if self._event_log is not None:
            self._event_log.error(f"Failed to run {eff.name} effect: {exc}")
        else:
            _LOG.error("Failed to run %s effect: %s", eff.name, exc)
        if eff.notify_on_failure and self._notice is not None:
            self._notice.show(f"{eff.name.capitalize()} Error", f"{eff.name} failed: {exc}")
