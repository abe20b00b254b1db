from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Literal, Optional, Tuple

DropPolicy = Literal["drop_new", "drop_old"]

_LOG = logging.getLogger(__name__)

_Call = Tuple[Tuple[Any, ...], Dict[str, Any]]


class BackgroundCall:
    """
    Wrap a blocking callable so that:
      - calling it only enqueues the arguments (never blocks the caller)
      - a single worker thread runs the calls in order
      - the queue is bounded; when full, ``drop_policy`` decides which call is lost
      - close() stops the worker with a short timeout (won't hang)

    Exceptions raised by the wrapped callable are logged by the worker; they
    cannot reach the caller, which has already returned.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        name: str = "effect",
        queue_max: int = 4,
        drop_policy: DropPolicy = "drop_old",
        close_timeout_s: float = 1.0,
    ):
        self._fn = fn
        self.name = name
        self._q: Deque[_Call] = deque(maxlen=queue_max)
        self._drop = drop_policy
        self._cv = threading.Condition()
        self._running = False
        self._thr: Optional[threading.Thread] = None
        self._close_timeout_s = close_timeout_s
        self.drops = 0

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._cv:
            if not self._running:
                self._start_locked()
            if len(self._q) == self._q.maxlen:
                self.drops += 1
                if self._drop == "drop_new":
                    return
                self._q.popleft()
            self._q.append((args, kwargs))
            self._cv.notify()

    def _start_locked(self) -> None:
        self._running = True
        self._thr = threading.Thread(target=self._worker, name=f"bg-{self.name}", daemon=True)
        self._thr.start()

    def _worker(self) -> None:
        while True:
            with self._cv:
                while self._running and not self._q:
                    self._cv.wait()
                if not self._q:
                    return
                args, kwargs = self._q.popleft()
            try:
                self._fn(*args, **kwargs)
            except Exception as exc:
                _LOG.warning("Background %s call failed: %s", self.name, exc)

    def pending(self) -> int:
        with self._cv:
            return len(self._q)

    def close(self) -> None:
        """Stop accepting work; queued calls still run until the timeout."""
        with self._cv:
            self._running = False
            self._cv.notify_all()
            thr, self._thr = self._thr, None
        if thr is not None and thr is not threading.current_thread():
            thr.join(timeout=self._close_timeout_s)

