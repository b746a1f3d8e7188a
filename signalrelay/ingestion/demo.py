"""Demo message source: a simulated trading chat that grows over time."""

from __future__ import annotations

import random
from typing import Optional

from signalrelay.ingestion.base import MessageSource
from signalrelay.models.signal import RawMessage
from signalrelay.utils.time import utc_now

# ─── Chat templates ─────────────────────────────────────────────

_DEMO_MESSAGES = [
    "BTC 买入信号，价格：45000，止损：44000",
    "ETH做空，目标价格2800，SL：2900",
    "建议DOGE多单，入场价0.08附近",
    "SOL看涨，建议45美元附近建仓",
    "MATIC突破，建议1.2做多",
    "今天天气不错",
    "ADA有望上涨到0.5",
    "BNB止盈300",
    "#️⃣🎯eli ETH/USDT long 3150 附近，止损 3080",
    "#️⃣💨woods BTC 短线做空，目标：43800",
    "大家晚上好",
    "LINK 看跌，建议减仓",
]

_DEMO_AUTHORS = ["demo_trader", "eli", "woods", "market_bot"]


class DemoMessageSource(MessageSource):
    """Appends random chat lines on each fetch.

    Every call appends a new line with probability ``arrival_rate`` and then
    returns the whole transcript for the channel, mimicking a chat window.
    """

    def __init__(
        self,
        arrival_rate: float = 0.3,
        seed: Optional[int] = None,
        max_messages: int = 5000,
    ) -> None:
        self.arrival_rate = arrival_rate
        self.max_messages = max_messages
        self._rng = random.Random(seed)
        self._transcripts: dict[str, list[RawMessage]] = {}

    @property
    def source_name(self) -> str:
        return "demo"

    async def fetch_messages(self, source_id: str) -> list[RawMessage]:
        transcript = self._transcripts.setdefault(source_id, [])
        if len(transcript) < self.max_messages and self._rng.random() < self.arrival_rate:
            transcript.append(
                RawMessage(
                    content=self._rng.choice(_DEMO_MESSAGES),
                    author=self._rng.choice(_DEMO_AUTHORS),
                    source_id=source_id,
                    observed_at=utc_now(),
                )
            )
        return list(transcript)
