"""Bounded, most-recent-first history of accepted signals."""

from __future__ import annotations

from collections import deque
from itertools import islice
from threading import Lock

from signalrelay.models.signal import ClassifiedSignal


class SignalHistory:
    """In-memory ring of the newest ``capacity`` signals.

    Index 0 is always the most recently added signal. Readers get list copies,
    never the underlying deque.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._lock = Lock()
        self._signals: deque[ClassifiedSignal] = deque(maxlen=capacity)

    def add(self, signal: ClassifiedSignal) -> None:
        # appendleft on a bounded deque drops from the right, i.e. the oldest entry.
        with self._lock:
            self._signals.appendleft(signal)

    def recent(self, limit: int = 50) -> list[ClassifiedSignal]:
        if limit <= 0:
            return []
        with self._lock:
            return list(islice(self._signals, limit))

    def snapshot(self) -> list[ClassifiedSignal]:
        with self._lock:
            return list(self._signals)

    def size(self) -> int:
        with self._lock:
            return len(self._signals)

    def clear(self) -> None:
        with self._lock:
            self._signals.clear()

    def __len__(self) -> int:
        return self.size()
