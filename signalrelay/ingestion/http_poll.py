"""HTTP message source: polls a JSON chat-history API per channel."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from signalrelay.errors import SourceFetchError
from signalrelay.ingestion.base import MessageSource
from signalrelay.models.signal import RawMessage
from signalrelay.utils.time import coerce_timestamp


class HttpMessageSource(MessageSource):
    """Fetches ``GET {base_url}/channels/{source_id}/messages``.

    The endpoint may answer with a bare JSON list or ``{"messages": [...]}``;
    each item needs ``content`` and may carry ``author`` and ``timestamp``.
    Items are expected oldest first. Sends a bearer token when one is configured.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    @property
    def source_name(self) -> str:
        return "http"

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "SignalRelay/1.0", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    # ── Fetch ────────────────────────────────────────────────────
    async def fetch_messages(self, source_id: str) -> list[RawMessage]:
        url = f"{self.base_url}/channels/{source_id}/messages"
        try:
            async with self._client(self.timeout) as client:
                resp = await client.get(url, headers=self._headers())
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise SourceFetchError(source_id, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise SourceFetchError(source_id, "response is not JSON") from exc

        items = payload.get("messages") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise SourceFetchError(source_id, "response has no message list")

        return [self._to_message(source_id, item) for item in items if isinstance(item, dict)]

    @staticmethod
    def _to_message(source_id: str, item: dict[str, Any]) -> RawMessage:
        return RawMessage(
            content=str(item.get("content") or item.get("text") or ""),
            author=str(item.get("author") or "unknown"),
            source_id=source_id,
            observed_at=coerce_timestamp(item.get("timestamp")),
        )

    async def health_check(self) -> bool:
        try:
            async with self._client(5) as client:
                resp = await client.get(self.base_url, headers=self._headers())
                return resp.status_code < 500
        except httpx.HTTPError:
            return False
