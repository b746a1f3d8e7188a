#!/usr/bin/env python3
"""End-to-end smoke for a running SignalRelay service.

Posts signals through the HTTP ingestion endpoint, then checks history,
stats and the error paths. Exits non-zero on the first regression.
"""

from __future__ import annotations

import json
import os
import sys
import time

import httpx

BASE_URL = os.environ.get("SIGNALRELAY_URL", "http://127.0.0.1:3000")
TIMEOUT = 10.0


def expect(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def get(client: httpx.Client, path: str, expected: int = 200, **kwargs):
    resp = client.get(f"{BASE_URL}{path}", **kwargs)
    expect(resp.status_code == expected, f"GET {path} -> {resp.status_code} != {expected}; body={resp.text[:500]}")
    return resp


def post(client: httpx.Client, path: str, expected: int = 200, **kwargs):
    resp = client.post(f"{BASE_URL}{path}", **kwargs)
    expect(resp.status_code == expected, f"POST {path} -> {resp.status_code} != {expected}; body={resp.text[:500]}")
    return resp


def main() -> int:
    with httpx.Client(timeout=TIMEOUT) as client:
        # 1) Liveness + wiring
        health = get(client, "/health").json()
        expect(health.get("status") == "ok", "health status is not ok")

        status = get(client, "/status").json()
        handlers = int(status.get("handlers", 0))
        expect(handlers >= 1, "no signal handlers registered")
        expect(status.get("scheduler") == "running", "scheduler is not running")

        # 2) Inbound signal reaches every handler
        marker = f"SMOKE{int(time.time()) % 10000}"
        accepted = post(
            client,
            "/signal",
            json={"action": "SELL", "symbol": marker, "confidence": 0.9, "rawText": f"{marker} 做空"},
        ).json()
        expect(accepted.get("success") is True, "signal was not accepted")
        expect(len(accepted.get("results", [])) == handlers, "not every handler produced an outcome")

        # 3) History shows it first
        history = get(client, "/signals/history?limit=5").json()
        expect(history["signals"][0]["symbol"] == marker, "posted signal is not the most recent")

        # 4) Stats
        stats = get(client, "/stats").json()
        expect(stats["stats"]["history_size"] >= 1, "stats history_size is zero")

        # 5) Negative paths
        bad = post(client, "/signal", expected=400, json={"action": "HOLD", "symbol": "BTC"}).json()
        expect(any("HOLD" in d for d in bad.get("details", [])), "400 details do not name the action")
        _ = post(client, "/signal", expected=400, content=b"{oops", headers={"content-type": "application/json"})

        echo = post(client, "/test", json={"ping": marker}).json()
        expect(echo.get("received") == {"ping": marker}, "test endpoint did not echo")

    print(json.dumps({"ok": True, "message": "SignalRelay smoke passed"}))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as exc:  # noqa: BLE001
        print(json.dumps({"ok": False, "error": str(exc)}))
        sys.exit(1)
