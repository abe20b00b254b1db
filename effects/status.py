from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from common.time import now_ms

from .background import BackgroundCall

_LOG = logging.getLogger(__name__)

# Status lines.
LOADING = "Loading camera..."
STARTED = "Camera started. Detecting motion..."
MOTION_DETECTED = "MOTION DETECTED!"
MOTION_ACTIVE = "MOTION ACTIVE..."
IDLE = "No motion. Camera active."
STOPPED = "Camera stopped. Ready."
START_FAILED = "Error starting camera."
FRAME_ERROR = "Error processing frame."


class StatusReporter(Protocol):
    def report(self, text: str) -> None: ...


class LoggingStatusReporter:
    """Write status changes to the diagnostic log; repeats are skipped."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or _LOG
        self.last: Optional[str] = None

    def report(self, text: str) -> None:
        if text == self.last:
            return
        self.last = text
        self._log.info("Status: %s", text)


class WebhookStatusReporter:
    """POST status changes as JSON to an HTTP endpoint.

    Payload: ``{"status": <text>, "ts_ms": <epoch ms>, "source": <name>}``.
    Transport failures and non-2xx answers are logged, never raised. With
    ``background=True`` the POST runs on a worker thread so a slow endpoint
    cannot stall the caller; call ``close()`` when done.
    """

    def __init__(
        self,
        url: str,
        source: str = "motion-watch",
        timeout_s: float = 2.0,
        session: Optional[requests.Session] = None,
        background: bool = False,
    ) -> None:
        self.url = url
        self.source = source
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._bg = BackgroundCall(self._post, name="status-webhook") if background else None
        self.last: Optional[str] = None

    def report(self, text: str) -> None:
        if text == self.last:
            return
        self.last = text
        payload = {"status": text, "ts_ms": now_ms(), "source": self.source}
        if self._bg is not None:
            self._bg(payload)
        else:
            self._post(payload)

    def _post(self, payload: Dict[str, Any]) -> None:
        try:
            resp = self._session.post(self.url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as exc:
            _LOG.warning("Status webhook POST %s failed: %s", self.url, exc)
            return
        if not 200 <= resp.status_code < 300:
            _LOG.warning("Status webhook returned HTTP %s: %r", resp.status_code, resp.text)

    def close(self) -> None:
        if self._bg is not None:
            self._bg.close()


class FanoutStatusReporter:
    """Forward each status line to several reporters; one failing doesn't stop the rest."""

    def __init__(self, reporters: Sequence[StatusReporter]) -> None:
        self._reporters: List[StatusReporter] = list(reporters)

    def report(self, text: str) -> None:
        for r in self._reporters:
            try:
                r.report(text)
            except Exception as exc:
                _LOG.warning("Status reporter %s failed: %s", type(r).__name__, exc)
