from __future__ import annotations

import enum
import logging
from typing import Tuple

from common.time import log_stamp


class Severity(enum.Enum):
    """Severity of an activity-log record.

    The value is the textual prefix written in front of the message, so the
    on-disk format stays ``<stamp> - <PREFIX>: <text>``.
    """

    INFO = "INFO"
    ALERT = "ALERT"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL ERROR"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @property
    def level(self) -> int:
        """Matching stdlib ``logging`` level."""
        return _LEVEL[self]

    @property
    def always_fallback(self) -> bool:
        """Records at or above ALERT/WARNING also go to the fallback sink."""
        return self.rank >= _RANK[Severity.WARNING]


_RANK = {
    Severity.INFO: 0,
    Severity.ALERT: 1,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}

_LEVEL = {
    Severity.INFO: logging.INFO,
    Severity.ALERT: logging.WARNING,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}

# Longest prefix first: "CRITICAL ERROR" must win over "ERROR".
_PREFIX_ORDER = (
    Severity.CRITICAL,
    Severity.ERROR,
    Severity.WARNING,
    Severity.ALERT,
    Severity.INFO,
)


def parse_message(message: str) -> Tuple[Severity, str]:
    """Split ``"PREFIX: text"`` into ``(Severity, "text")``.

    Messages without a known prefix are informational and returned as-is.
    """
    for sev in _PREFIX_ORDER:
        prefix = sev.value
        if message.startswith(prefix):
            rest = message[len(prefix) :]
            if not rest or rest[0] in ": ":
                return sev, rest.lstrip(":").strip()
    return Severity.INFO, message


def format_line(ts_ms: float, severity: Severity, text: str) -> str:
    return f"{log_stamp(ts_ms)} - {severity.value}: {text}"
