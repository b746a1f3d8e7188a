"""Signal API endpoints: inbound ingestion, history and pipeline stats."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from signalrelay.context import AppContext
from signalrelay.errors import ValidationError
from signalrelay.utils.time import utc_now

logger = logging.getLogger("signalrelay.api")

router = APIRouter(tags=["signals"])


def get_context(request: Request) -> AppContext:
    """Dependency returning the pipeline context attached to the app."""
    return request.app.state.context


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


@router.post("/signal")
async def receive_signal(request: Request, context: AppContext = Depends(get_context)):
    """Accept an externally produced signal into history and the handler chain."""
    payload = await _json_body(request)

    try:
        signal, outcomes = await context.dispatcher.dispatch_payload(payload)
    except ValidationError as exc:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid signal format", "details": exc.details},
        )
    except Exception as exc:
        logger.exception("Error while processing inbound signal")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)},
        )

    return JSONResponse(
        jsonable_encoder(
            {
                "success": True,
                "message": "Signal processed successfully",
                "signal": signal.to_dict(),
                "results": [outcome.to_dict() for outcome in outcomes],
                "timestamp": utc_now().isoformat(),
            }
        )
    )


@router.get("/signals/history")
async def signal_history(
    limit: int = Query(50, ge=1),
    context: AppContext = Depends(get_context),
):
    """Most recent signals first."""
    signals = context.history.recent(limit)
    return {
        "signals": [signal.to_dict() for signal in signals],
        "count": len(signals),
        "timestamp": utc_now().isoformat(),
    }


@router.get("/stats")
async def pipeline_stats(context: AppContext = Depends(get_context)):
    return {
        "stats": context.stats.snapshot(context.history.snapshot()),
        "cursors": context.scheduler.cursors(),
        "timestamp": utc_now().isoformat(),
    }


@router.post("/test")
async def test_endpoint(request: Request):
    """Diagnostic echo."""
    logger.info("Test request received")
    return {
        "message": "Test endpoint working",
        "received": await _json_body(request),
        "timestamp": utc_now().isoformat(),
    }
