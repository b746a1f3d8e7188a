"""Monitor scheduler: polls message sources and feeds new messages to the pipeline."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from signalrelay.errors import ClassificationError, SourceFetchError
from signalrelay.ingestion.base import MessageSource
from signalrelay.ingestion.filters import AllowListFilter, RecentFingerprints
from signalrelay.models.signal import RawMessage
from signalrelay.observability.stats import StatsAggregator
from signalrelay.parser.classifier import SignalClassifier
from signalrelay.services.dispatcher import SignalDispatcher
from signalrelay.utils.time import utc_now


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class SourceCursor:
    """How many messages of a source's list have already been processed."""

    source_id: str
    last_seen_count: int = 0

    def new_messages(self, messages: list[RawMessage]) -> list[RawMessage]:
        # A shorter list means the source was cleared or reset: nothing new.
        if len(messages) <= self.last_seen_count:
            return []
        return messages[self.last_seen_count:]

    def advance(self, count: int) -> None:
        self.last_seen_count = max(self.last_seen_count, count)


@dataclass
class SourceTickResult:
    source_id: str
    fetched: int = 0
    new: int = 0
    filtered_out: int = 0
    duplicates: int = 0
    forwarded: int = 0
    signals: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TickReport:
    started_at: datetime
    sources: list[SourceTickResult] = field(default_factory=list)

    @property
    def signals(self) -> int:
        return sum(result.signals for result in self.sources)

    @property
    def failed_sources(self) -> list[str]:
        return [result.source_id for result in self.sources if not result.ok]


class MonitorScheduler:
    """Asyncio-based polling loop over registered message sources.

    On each tick:
      1. Fetch every source concurrently (one failure does not block the rest)
      2. Diff each result against that source's cursor
      3. Drop messages outside the allow-list and cross-source repeats
      4. Classify, then record and dispatch accepted signals
      5. Advance the cursor of every source that was fetched successfully

    Runs as a background task inside the FastAPI event loop. ``stop()`` is
    cooperative: the flag is checked between ticks and an in-flight tick
    always finishes.
    """

    def __init__(
        self,
        classifier: SignalClassifier,
        dispatcher: SignalDispatcher,
        stats: Optional[StatsAggregator] = None,
        interval: float = 5.0,
        allow_list: Optional[AllowListFilter] = None,
        dedupe_window: int = 500,
        fetch_timeout: Optional[float] = 15.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.stats = stats or StatsAggregator()
        self.interval = interval
        self.allow_list = allow_list or AllowListFilter()
        self.fingerprints = RecentFingerprints(dedupe_window)
        self.fetch_timeout = fetch_timeout
        self.logger = logger or logging.getLogger("signalrelay.scheduler")
        self.state = SchedulerState.IDLE
        self._sources: dict[str, MessageSource] = {}
        self._cursors: dict[str, SourceCursor] = {}
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    # ── Registration / inspection ────────────────────────────────
    def register_source(self, source: MessageSource, source_id: Optional[str] = None) -> str:
        sid = source_id or source.source_name
        if sid in self._sources:
            raise ValueError(f"Source {sid!r} is already registered")
        self._sources[sid] = source
        self._cursors.setdefault(sid, SourceCursor(sid))
        self.logger.info(f"Registered message source {sid} ({source.source_name})")
        return sid

    @property
    def source_ids(self) -> list[str]:
        return list(self._sources)

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def cursor(self, source_id: str) -> SourceCursor:
        return self._cursors[source_id]

    def cursors(self) -> dict[str, int]:
        return {sid: cursor.last_seen_count for sid, cursor in self._cursors.items()}

    def reset_cursors(self) -> None:
        for cursor in self._cursors.values():
            cursor.last_seen_count = 0
        self.fingerprints.clear()

    # ── Lifecycle ────────────────────────────────────────────────
    async def start(self) -> None:
        """Start the background loop (no-op when already running)."""
        if self.state is SchedulerState.RUNNING:
            return
        self._stop_event = asyncio.Event()
        self.state = SchedulerState.RUNNING
        self._task = asyncio.create_task(self._run_loop())
        self.logger.info(
            f"Scheduler started (interval={self.interval}s, sources={len(self._sources)})"
        )

    async def stop(self) -> None:
        """Request a stop and wait for the in-flight tick to finish."""
        if self.state is not SchedulerState.RUNNING:
            return
        self.state = SchedulerState.STOPPED
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        self.logger.info("Scheduler stopped")

    async def _run_loop(self) -> None:
        """Main scheduler loop."""
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                self.logger.exception(f"Error in tick: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue

    # ── Tick ─────────────────────────────────────────────────────
    async def tick(self) -> TickReport:
        """Single pass over all sources: fetch → diff → filter → classify → dispatch."""
        report = TickReport(started_at=utc_now())
        source_ids = list(self._sources)

        fetched = await asyncio.gather(
            *(self._fetch(sid) for sid in source_ids),
            return_exceptions=True,
        )

        for sid, outcome in zip(source_ids, fetched):
            result = SourceTickResult(source_id=sid)
            report.sources.append(result)

            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                result.error = str(outcome) or type(outcome).__name__
                self.stats.record_fetch_error(sid)
                self.logger.warning(
                    f"Fetch failed for source {sid}: {result.error}",
                    extra={"source_id": sid},
                )
                continue

            await self._process_source(sid, outcome, result)

        self.stats.record_tick(report.started_at)
        if report.signals:
            self.logger.info(f"Tick complete: {report.signals} signals dispatched")
        else:
            self.logger.debug("Tick: no new signals")
        return report

    async def _fetch(self, source_id: str) -> list[RawMessage]:
        call = self._sources[source_id].fetch_messages(source_id)
        if self.fetch_timeout:
            messages = await asyncio.wait_for(call, timeout=self.fetch_timeout)
        else:
            messages = await call

        if not isinstance(messages, list):
            raise SourceFetchError(
                source_id, f"expected a message list, got {type(messages).__name__}"
            )
        return messages

    async def _process_source(
        self, source_id: str, messages: list[RawMessage], result: SourceTickResult
    ) -> None:
        cursor = self._cursors[source_id]
        new_messages = cursor.new_messages(messages)
        result.fetched = len(messages)
        result.new = len(new_messages)
        self.stats.record_observed(len(new_messages))

        for message in new_messages:
            if not self.allow_list.allows(message):
                result.filtered_out += 1
                self.stats.record_filtered_out()
                continue

            if self.fingerprints.seen_before(message):
                result.duplicates += 1
                self.stats.record_duplicate()
                continue

            result.forwarded += 1
            self.stats.record_filtered_in(message)

            try:
                signal = self._classify(message)
            except ClassificationError as exc:
                self.stats.record_classification_error()
                self.logger.error(str(exc), extra={"source_id": source_id})
                continue

            if signal is None:
                continue

            await self.dispatcher.dispatch(signal)
            result.signals += 1

        cursor.advance(len(messages))

    def _classify(self, message: RawMessage):
        try:
            return self.classifier.parse_message(message)
        except Exception as exc:
            raise ClassificationError(
                f"Failed to classify message from {message.source_id}: {exc}"
            ) from exc
