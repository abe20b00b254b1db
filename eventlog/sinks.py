# ruff: noqa: UP007  # keep Optional[...] for Py3.9; don't force X | Y
from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from contextlib import suppress
from pathlib import Path
from typing import Optional, Protocol, TextIO

from .severity import Severity

_LOG = logging.getLogger(__name__)

SYSLOG_SOCKET = "/dev/log"


class LogSinkError(Exception):
    """A log sink could not accept a record."""


class PrimarySink(Protocol):
    def write(self, line: str) -> None: ...


class FallbackSink(Protocol):
    def write(self, line: str, severity: Severity) -> None: ...


class FileLogSink:
    """Append-only text file, one record per line.

    The handle is opened lazily and dropped after any failure so the next
    write starts from a fresh ``open()``. Parent directories are created on
    open.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None

    def __enter__(self) -> FileLogSink:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8", newline="")
        except OSError as exc:
            self._fh = None
            raise LogSinkError(f"cannot open {self.path}: {exc}") from exc

    def write(self, line: str) -> None:
        if self._fh is None:
            self.open()
        try:
            self._fh.write(line + "\n")  # type: ignore[union-attr]
            self._fh.flush()  # type: ignore[union-attr]
        except (OSError, ValueError) as exc:
            self._discard()
            raise LogSinkError(f"cannot append to {self.path}: {exc}") from exc

    def _discard(self) -> None:
        if self._fh is not None:
            with suppress(Exception):
                self._fh.close()
            self._fh = None

    def close(self) -> None:
        if self._fh is not None:
            with suppress(Exception):
                self._fh.flush()
            # Best-effort durability; harmless if underlying file doesn't support fileno()
            with suppress(Exception):
                os.fsync(self._fh.fileno())
            self._fh.close()
            self._fh = None


class SystemLogSink:
    """Fallback sink backed by the host's system log.

    Uses a dedicated, non-propagating ``logging.Logger`` with a
    ``SysLogHandler`` when the syslog socket exists, else a stderr
    ``StreamHandler``. An explicit ``handler`` overrides both.
    """

    def __init__(
        self,
        ident: str = "motion-watch",
        handler: Optional[logging.Handler] = None,
    ) -> None:
        self.ident = ident
        self._logger = logging.getLogger(f"eventlog.fallback.{ident}")
        self._logger.propagate = False
        self._logger.setLevel(logging.DEBUG)
        if handler is not None:
            self._logger.handlers = [handler]
        elif not self._logger.handlers:
            self._logger.addHandler(self._default_handler())

    def _default_handler(self) -> logging.Handler:
        handler: logging.Handler
        if os.path.exists(SYSLOG_SOCKET):
            handler = logging.handlers.SysLogHandler(address=SYSLOG_SOCKET)
            handler.setFormatter(logging.Formatter(f"{self.ident}: %(message)s"))
        else:
            _LOG.debug("No syslog socket at %s; fallback log goes to stderr", SYSLOG_SOCKET)
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(f"[{self.ident}] %(levelname)s %(message)s"))
        return handler

    def write(self, line: str, severity: Severity) -> None:
        self._logger.log(severity.level, line)

    def close(self) -> None:
        for h in list(self._logger.handlers):
            with suppress(Exception):
                h.close()
