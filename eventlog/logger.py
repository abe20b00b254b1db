from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from common.time import now_ms

from .notice import UserNotice
from .severity import Severity, format_line, parse_message
from .sinks import FallbackSink, FileLogSink, PrimarySink, SystemLogSink

_LOG = logging.getLogger(__name__)


@dataclass
class EventLogConfig:
    """Configuration for the activity log.

    Parameters
    ----------
    path:
        Primary append-only log file.
    enabled:
        When False, ``log()`` is a no-op.
    max_consecutive_failures:
        Consecutive primary-sink failures after which the primary sink is
        abandoned for the rest of the session.
    notice_cooldown_ms:
        Minimum spacing of user-facing failure notices.
    fallback_ident:
        Identifier used by the system-log fallback sink.
    """

    path: Path = Path("motion_log.txt")
    enabled: bool = True
    max_consecutive_failures: int = 5
    notice_cooldown_ms: float = 300_000.0
    fallback_ident: str = "motion-watch"


class ResilientLogger:
    """Activity log with one-way escalation from a primary to a fallback sink.

    - Each record goes to the primary sink until it has failed
      ``max_consecutive_failures`` times in a row; a success resets the count.
    - After that the primary sink is marked critically failed and never
      called again; a one-time notice goes to the fallback sink.
    - The fallback sink always receives WARNING/ALERT/ERROR/CRITICAL records,
      and every record once the primary has failed.
    - Nothing here raises into the caller.

    One instance is shared by the frame thread, effect workers and the
    control thread; a lock serializes sink writes and the failure counter.
    """

    def __init__(
        self,
        primary: PrimarySink,
        fallback: FallbackSink,
        config: Optional[EventLogConfig] = None,
        notice: Optional[UserNotice] = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._cfg = config or EventLogConfig()
        self._notice = notice or UserNotice(cooldown_ms=self._cfg.notice_cooldown_ms)
        self._clock = clock

        # Re-entrant: a notice callback may log through this instance.
        self._lock = threading.RLock()
        self._consecutive_failures = 0
        self._critically_failed = False

    @classmethod
    def from_config(
        cls, config: EventLogConfig, notice: Optional[UserNotice] = None
    ) -> ResilientLogger:
        return cls(
            primary=FileLogSink(config.path),
            fallback=SystemLogSink(ident=config.fallback_ident),
            config=config,
            notice=notice,
        )

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def critically_failed(self) -> bool:
        return self._critically_failed

    @property
    def notice(self) -> UserNotice:
        return self._notice

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def log(self, message: str, severity: Optional[Severity] = None) -> Optional[str]:
        """Record ``message`` and return the formatted line (None if disabled).

        Without an explicit ``severity`` it is derived from the message prefix.
        """
        if not self._cfg.enabled:
            return None

        if severity is None:
            severity, text = parse_message(message)
        else:
            text = message
        with self._lock:
            line = format_line(self._clock(), severity, text)

            if not self._critically_failed:
                self._write_primary(line)

            if self._critically_failed or severity.always_fallback:
                self._write_fallback(line, severity)

        _LOG.debug(line)
        return line

    def info(self, message: str) -> Optional[str]:
        return self.log(message, Severity.INFO)

    def alert(self, message: str) -> Optional[str]:
        return self.log(message, Severity.ALERT)

    def warning(self, message: str) -> Optional[str]:
        return self.log(message, Severity.WARNING)

    def error(self, message: str) -> Optional[str]:
        return self.log(message, Severity.ERROR)

    def critical(self, message: str) -> Optional[str]:
        return self.log(message, Severity.CRITICAL)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _write_primary(self, line: str) -> None:
        try:
            self._primary.write(line)
        except Exception as exc:
            self._consecutive_failures += 1
            _LOG.debug(
                "Primary log write failed (attempt %d): %s", self._consecutive_failures, exc
            )
            if self._consecutive_failures >= int(self._cfg.max_consecutive_failures):
                self._critically_failed = True
                self._write_fallback(
                    format_line(
                        self._clock(),
                        Severity.CRITICAL,
                        f"File logging disabled due to persistent errors: {exc}",
                    ),
                    Severity.CRITICAL,
                )
                self._notice.show(
                    "Logging Error",
                    f"Persistent errors writing to the log file. "
                    f"File logging will be disabled. Error: {exc}",
                )
            else:
                self._write_fallback(
                    format_line(
                        self._clock(),
                        Severity.WARNING,
                        f"Temporary file logging error: {exc}",
                    ),
                    Severity.WARNING,
                )
        else:
            self._consecutive_failures = 0

    def _write_fallback(self, line: str, severity: Severity) -> None:
        try:
            self._fallback.write(line, severity)
        except Exception as exc:
            _LOG.warning("Fallback log write failed: %s - Message: %s", exc, line)
            self._notice.show(
                "Event Log Error",
                f"Critical error: failed to write to the system log. Error: {exc}",
            )
