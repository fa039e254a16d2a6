# bayesqc/window.py
"""
Trailing time window of measurement records.

Every append is followed by a prune: records at or before
``now - time_window`` are dropped. The filter is on timestamps, not on
indices, because ``time_window`` may change between appends. Between
appends the window is not re-pruned.
"""

from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from .generator import MeasurementRecord


class SlidingWindow:
    def __init__(self, time_window: float):
        self.time_window = time_window   # seconds; may be changed between appends
        self._records: List[MeasurementRecord] = []
        self._lock = threading.Lock()

    def append(self, record: MeasurementRecord, now: float) -> None:
        """Add ``record`` at the end, then drop everything older than the window."""
        cutoff = now - self.time_window
        with self._lock:
            self._records.append(record)
            self._records = [r for r in self._records if r.timestamp > cutoff]

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def snapshot(self) -> Tuple[MeasurementRecord, ...]:
        """Immutable copy of the current records, oldest first."""
        with self._lock:
            return tuple(self._records)

    def latest(self) -> Optional[MeasurementRecord]:
        with self._lock:
            return self._records[-1] if self._records else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
