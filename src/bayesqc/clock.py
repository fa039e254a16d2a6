# bayesqc/clock.py
"""
Periodic ticker driving the simulation.

One background thread per armed ticker. Ticks are strictly sequential:
the next tick is scheduled only after the callback returns, and ticks that
fell due while the callback was running are skipped rather than replayed.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    def __init__(self, interval_s: float, callback: Callable[[], None], name: str = "bayesqc-ticker"):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0 (got {interval_s})")
        self.interval_s = interval_s
        self.callback = callback
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Ticker already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """
        Disarm. Does not wait for a callback already in flight; callers
        that care must discard late ticks themselves.
        """
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        next_due = time.monotonic() + self.interval_s
        while not self._stop.wait(max(0.0, next_due - time.monotonic())):
            try:
                self.callback()
            except Exception:
                logger.exception("%s: tick callback failed", self.name)
            next_due += self.interval_s
            now = time.monotonic()
            if next_due < now:
                skipped = int((now - next_due) // self.interval_s) + 1
                next_due += skipped * self.interval_s
                logger.debug("%s: skipped %d overdue tick(s)", self.name, skipped)
