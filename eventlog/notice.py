from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from common.cooldown import Cooldown
from common.time import now_ms

_LOG = logging.getLogger(__name__)

NoticeFn = Callable[[str, str], None]


def _log_notice(title: str, message: str) -> None:
    _LOG.error("%s: %s", title, message)


class UserNotice:
    """Rate-limited user-facing failure notice.

    One cooldown is shared by every caller, so a burst of failures from
    different components still produces a single notice per window.
    """

    def __init__(
        self,
        notify: Optional[NoticeFn] = None,
        cooldown_ms: float = 300_000.0,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._notify = notify or _log_notice
        self._cooldown = Cooldown(float(cooldown_ms))
        self._clock = clock
        self._lock = threading.Lock()

    def show(self, title: str, message: str) -> bool:
        """Deliver the notice if the cooldown allows; return whether it was shown."""
        with self._lock:
            allowed = self._cooldown.try_fire(self._clock())
        if not allowed:
            _LOG.debug("Notice suppressed (cooldown): %s", title)
            return False
        try:
            self._notify(title, message)
        except Exception as exc:
            _LOG.warning("User notice %r could not be delivered: %s", title, exc)
            return False
        return True
