"""SignalRelay FastAPI application entry point."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from signalrelay.api.signals import router as signals_router
from signalrelay.context import AppContext, build_context, register_defaults
from signalrelay.logging_config import setup_logging
from signalrelay.utils.time import utc_now

VERSION = "1.0.0"

logger = logging.getLogger("signalrelay")


def _startup_checks(context: AppContext) -> None:
    """Log what the pipeline will run with."""
    cfg = context.settings

    if not cfg.allow_list_entries:
        logger.info("○ ALLOW_LIST is empty; every new message is classified")
    else:
        logger.info(f"✓ Allow-list: {', '.join(cfg.allow_list_entries)}")

    if cfg.is_production and cfg.enable_demo_source:
        logger.warning("⚠  APP_ENV=production with the demo message source enabled")

    if not context.scheduler.source_ids:
        logger.warning("⚠  No message sources registered; only POST /signal will produce signals")

    logger.info(
        f"  Acceptance threshold: {cfg.min_confidence}, history capacity: {cfg.max_history_size}"
    )


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the HTTP app around ``context`` (a fresh one from settings by default).

    Sources and default handlers are registered and the scheduler started in
    the lifespan, so an app driven through ``ASGITransport`` stays passive.
    """
    ctx = context or build_context()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle."""
        setup_logging(ctx.settings.log_level, ctx.settings.log_format)
        register_defaults(ctx)
        _startup_checks(ctx)

        logger.info("✦ SignalRelay API started")
        logger.info(f"  Monitor interval: {ctx.settings.monitor_interval_seconds}s")
        await ctx.scheduler.start()

        yield

        await ctx.scheduler.stop()
        logger.info("✦ SignalRelay API shutting down")

    app = FastAPI(
        title="SignalRelay",
        description="Chat trading-signal monitor and relay",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.context = ctx

    # Rate limiting
    limiter = Limiter(key_func=get_remote_address, default_limits=[ctx.settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ctx.settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracing + access log middleware
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response

    app.include_router(signals_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "uptime": ctx.uptime,
            "timestamp": utc_now().isoformat(),
            "version": VERSION,
        }

    @app.get("/status")
    async def service_status():
        cfg = ctx.settings
        return {
            "status": "running",
            "handlers": ctx.dispatcher.handler_count,
            "scheduler": ctx.scheduler.state.value,
            "sources": ctx.scheduler.source_ids,
            "config": {
                "host": cfg.host,
                "port": cfg.port,
                "monitor_interval_seconds": cfg.monitor_interval_seconds,
                "min_confidence": cfg.min_confidence,
                "max_history_size": cfg.max_history_size,
            },
            "timestamp": utc_now().isoformat(),
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the default app with uvicorn."""
    import uvicorn

    cfg = app.state.context.settings
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())
