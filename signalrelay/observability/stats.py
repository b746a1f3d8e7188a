"""In-process pipeline counters for SignalRelay.

Scheduler-side counters are recorded here as messages flow through; symbol and
action breakdowns are derived from a history snapshot when a view is requested.
"""

from __future__ import annotations

import re
from collections import Counter, defaultdict
from datetime import datetime
from threading import Lock
from typing import Iterable, Optional

from signalrelay.models.signal import ClassifiedSignal, RawMessage

# Chat relays tag the original poster as "#️⃣🎯eli" / "#️⃣💨woods".
_AUTHOR_TAG = re.compile(r"#️⃣[^a-zA-Z]*([a-zA-Z]+)")


def resolve_author(message: RawMessage) -> str:
    """Prefer the relayed author tag in the content over the source's author field."""
    match = _AUTHOR_TAG.search(message.content or "")
    if match:
        return match.group(1)
    return message.author or "unknown"


class StatsAggregator:
    def __init__(self) -> None:
        self._lock = Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._total_observed = 0
            self._filtered_in = 0
            self._filtered_out = 0
            self._duplicates = 0
            self._signals_accepted = 0
            self._classification_errors = 0
            self._ticks = 0
            self._last_tick_at: Optional[datetime] = None
            self._fetch_errors: dict[str, int] = defaultdict(int)
            self._by_author: dict[str, int] = defaultdict(int)
            self._by_source: dict[str, int] = defaultdict(int)

    # ── Recording (scheduler side) ───────────────────────────────
    def record_observed(self, count: int = 1) -> None:
        with self._lock:
            self._total_observed += count

    def record_filtered_in(self, message: RawMessage) -> None:
        author = resolve_author(message)
        with self._lock:
            self._filtered_in += 1
            self._by_author[author] += 1
            self._by_source[message.source_id] += 1

    def record_filtered_out(self, count: int = 1) -> None:
        with self._lock:
            self._filtered_out += count

    def record_duplicate(self) -> None:
        with self._lock:
            self._duplicates += 1

    def record_signal(self) -> None:
        with self._lock:
            self._signals_accepted += 1

    def record_classification_error(self) -> None:
        with self._lock:
            self._classification_errors += 1

    def record_fetch_error(self, source_id: str) -> None:
        with self._lock:
            self._fetch_errors[source_id] += 1

    def record_tick(self, at: datetime) -> None:
        with self._lock:
            self._ticks += 1
            self._last_tick_at = at

    # ── Reading ──────────────────────────────────────────────────
    @property
    def total_observed(self) -> int:
        return self._total_observed

    @property
    def filtered_in(self) -> int:
        return self._filtered_in

    @property
    def filtered_out(self) -> int:
        return self._filtered_out

    @property
    def duplicates(self) -> int:
        return self._duplicates

    def snapshot(self, signals: Iterable[ClassifiedSignal] = ()) -> dict:
        """Counters plus per-symbol/per-action tallies over ``signals``.

        Pass ``history.snapshot()``; the caller's list is only read.
        """
        by_symbol: Counter[str] = Counter()
        by_action: Counter[str] = Counter()
        history_size = 0
        for signal in signals:
            history_size += 1
            by_symbol[signal.symbol or "UNKNOWN"] += 1
            by_action[signal.action.value] += 1

        with self._lock:
            observed = self._total_observed
            filtered_in = self._filtered_in
            accepted = self._signals_accepted
            return {
                "total_observed": observed,
                "filtered_in": filtered_in,
                "filtered_out": self._filtered_out,
                "duplicates": self._duplicates,
                "signals_accepted": accepted,
                "classification_errors": self._classification_errors,
                "fetch_errors": dict(self._fetch_errors),
                "ticks": self._ticks,
                "last_tick_at": self._last_tick_at.isoformat() if self._last_tick_at else None,
                "filter_rate": round(filtered_in / observed, 4) if observed else 0.0,
                "signal_rate": round(accepted / filtered_in, 4) if filtered_in else 0.0,
                "by_author": dict(self._by_author),
                "by_source": dict(self._by_source),
                "history_size": history_size,
                "by_symbol": dict(by_symbol.most_common()),
                "by_action": dict(by_action),
            }
