from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Cooldown:
    """Minimum interval between repeated firings of one effect.

    ``last_fired_ms`` is ``None`` until the first firing, so a fresh cooldown
    is always ready. Readiness is strict: ``now - last_fired > interval``.
    """

    interval_ms: float
    last_fired_ms: Optional[float] = None

    def ready(self, now_ms: float) -> bool:
        if self.last_fired_ms is None:
            return True
        return (now_ms - self.last_fired_ms) > self.interval_ms

    def fire(self, now_ms: float) -> None:
        self.last_fired_ms = now_ms

    def try_fire(self, now_ms: float) -> bool:
        """Mark as fired and return True if ready, else return False."""
        if not self.ready(now_ms):
            return False
        self.fire(now_ms)
        return True
