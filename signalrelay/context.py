"""Application context: wires settings, logger and pipeline components together.

Components receive their collaborators from here instead of reaching for
module-level globals, so tests can build an isolated pipeline per case.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from signalrelay.config import Settings, settings as default_settings
from signalrelay.ingestion.demo import DemoMessageSource
from signalrelay.ingestion.filters import AllowListFilter
from signalrelay.ingestion.http_poll import HttpMessageSource
from signalrelay.observability.stats import StatsAggregator
from signalrelay.parser.classifier import SignalClassifier
from signalrelay.services.dispatcher import SignalDispatcher
from signalrelay.services.handlers import DownstreamForwarder, log_signal_handler
from signalrelay.services.history import SignalHistory
from signalrelay.workers.scheduler import MonitorScheduler


@dataclass
class AppContext:
    settings: Settings
    logger: logging.Logger
    classifier: SignalClassifier
    history: SignalHistory
    stats: StatsAggregator
    dispatcher: SignalDispatcher
    scheduler: MonitorScheduler
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return round(time.monotonic() - self.started_at, 3)


def build_context(
    app_settings: Optional[Settings] = None,
    logger: Optional[logging.Logger] = None,
) -> AppContext:
    """Build the pipeline components without registering any sources or handlers."""
    cfg = app_settings or default_settings
    root = logger or logging.getLogger("signalrelay")

    classifier = SignalClassifier(acceptance_threshold=cfg.min_confidence)
    history = SignalHistory(capacity=cfg.max_history_size)
    stats = StatsAggregator()
    dispatcher = SignalDispatcher(history, stats=stats, logger=root.getChild("dispatcher"))
    scheduler = MonitorScheduler(
        classifier,
        dispatcher,
        stats=stats,
        interval=cfg.monitor_interval_seconds,
        allow_list=AllowListFilter(cfg.allow_list_entries),
        dedupe_window=cfg.dedupe_window,
        fetch_timeout=cfg.fetch_timeout_seconds,
        logger=root.getChild("scheduler"),
    )

    return AppContext(
        settings=cfg,
        logger=root,
        classifier=classifier,
        history=history,
        stats=stats,
        dispatcher=dispatcher,
        scheduler=scheduler,
    )


def register_defaults(context: AppContext) -> None:
    """Register sources and handlers based on configuration."""
    cfg = context.settings
    scheduler = context.scheduler
    dispatcher = context.dispatcher

    dispatcher.register_handler(log_signal_handler, handler_id="default")

    if cfg.downstream_url:
        dispatcher.register_handler(
            DownstreamForwarder(cfg.downstream_url, timeout=cfg.downstream_timeout_seconds),
            handler_id="downstream_forwarder",
        )
        context.logger.info(f"✓ Forwarding signals to {cfg.downstream_url}")

    if cfg.source_url:
        http_source = HttpMessageSource(
            cfg.source_url, token=cfg.source_token, timeout=cfg.fetch_timeout_seconds
        )
        channels = cfg.source_channel_list or ["default"]
        for channel in channels:
            scheduler.register_source(http_source, source_id=channel)
        context.logger.info(f"✓ HTTP source enabled for channels: {', '.join(channels)}")
    else:
        context.logger.info("○ HTTP source skipped (no SOURCE_URL)")

    if cfg.enable_demo_source:
        scheduler.register_source(DemoMessageSource(), source_id="demo")
        context.logger.info("✓ Demo message source enabled")
    else:
        context.logger.info("○ Demo message source disabled (ENABLE_DEMO_SOURCE=false)")
