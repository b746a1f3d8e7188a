"""Built-in signal handlers: acknowledgement log and downstream HTTP forwarding."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from signalrelay.errors import DownstreamDeliveryError
from signalrelay.models.signal import ClassifiedSignal
from signalrelay.utils.time import utc_now

logger = logging.getLogger("signalrelay.handlers")


async def log_signal_handler(signal: ClassifiedSignal) -> dict:
    """Default handler: log the signal and acknowledge it."""
    logger.info(f"Default handler processed signal: {signal.summary}")
    return {
        "processed": True,
        "timestamp": utc_now().isoformat(),
        "action": "logged",
        "signal_summary": signal.summary,
    }


# ── Downstream forwarding ────────────────────────────────────

class DownstreamForwarder:
    """POSTs each signal as JSON to another process.

    Delivery is attempted once; failures are logged and raised as
    ``DownstreamDeliveryError`` so the dispatcher records them in the outcome.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def __call__(self, signal: ClassifiedSignal) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json=signal.to_dict())
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(f"Forwarding {signal.summary} to {self.url} failed: {exc}")
            raise DownstreamDeliveryError(f"{self.url}: {exc}") from exc

        logger.info(f"Signal forwarded downstream: {signal.summary}")
        return {"status": "sent", "status_code": resp.status_code}
