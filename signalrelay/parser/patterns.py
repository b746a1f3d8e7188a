"""Pattern tables used by the signal classifier.

Every table is an ordered tuple of named patterns; the classifier walks them in
order and the first match wins. Buy patterns are consulted before sell patterns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class NamedPattern:
    name: str
    regex: re.Pattern[str]

    def search(self, text: str) -> re.Match[str] | None:
        return self.regex.search(text)


def _p(name: str, pattern: str, flags: int = re.IGNORECASE) -> NamedPattern:
    return NamedPattern(name=name, regex=re.compile(pattern, flags))


# Assets recognised by name even without a quote currency or "$" prefix.
KNOWN_ASSETS = (
    "BTC", "ETH", "BNB", "ADA", "SOL", "DOGE", "XRP", "DOT", "LINK", "UNI",
    "AVAX", "MATIC", "ATOM", "FTM", "NEAR", "ALGO", "VET", "THETA", "FIL", "EOS",
    "TRX", "XLM", "IOTA", "NEO", "DASH", "ZEC", "XMR", "LTC",
)

# Cheap gate: a message containing none of these is not worth pattern matching.
GATE_KEYWORDS = (
    "买", "卖", "做多", "做空", "long", "short", "开仓", "平仓",
    "止损", "止盈", "入场", "出场", "价格", "目标", "BTC", "ETH",
    "USDT", "涨", "跌", "看多", "看空", "建议", "推荐",
)

# Occurrences of these (not deduplicated) feed the confidence bonus.
SCORING_KEYWORDS = (
    "买入", "卖出", "做多", "做空", "开仓", "平仓", "止损", "止盈",
    "目标", "价格", "建议", "推荐", "long", "short", "buy", "sell",
)

BUY_PATTERNS = (
    _p("buy_explicit", r"买入|买进|做多|long|开多|建仓"),
    _p("buy_entry", r"入场|进场|买|多单"),
    _p("buy_bullish", r"看涨|上涨|涨|bullish"),
)

SELL_PATTERNS = (
    _p("sell_explicit", r"卖出|卖掉|做空|short|开空|平仓"),
    _p("sell_exit", r"出场|离场|卖|空单"),
    _p("sell_bearish", r"看跌|下跌|跌|bearish"),
)

SYMBOL_PATTERNS = (
    _p("quote_pair", r"([A-Z]{2,10})\s*(?:/USDT|/USD|USDT|USD)"),
    _p("dollar_ticker", r"\$([A-Z]{2,10})"),
    _p("known_asset", r"(?<![A-Za-z])(" + "|".join(KNOWN_ASSETS) + r")(?![A-Za-z])"),
    _p("stock_code", r"(?<![A-Za-z])([A-Z]{2,6}\d{4})", flags=0),
    _p("uppercase_token", r"(?<![A-Za-z])([A-Z]{2,10})(?![A-Za-z])", flags=0),
)

PRICE_PATTERNS = (
    _p("amount_with_unit", r"(\d+\.?\d*)\s*(?:元|USDT|USD|美元|刀)"),
    _p("price_label", r"价格[：:]\s*(\d+\.?\d*)"),
    _p("target_label", r"目标[：:]\s*(\d+\.?\d*)"),
    _p("near_amount", r"(\d+\.?\d*)\s*附近"),
)

SCORING_REGEXES = tuple(re.compile(re.escape(keyword), re.IGNORECASE) for keyword in SCORING_KEYWORDS)


def first_match(patterns: tuple[NamedPattern, ...], text: str) -> tuple[NamedPattern, re.Match[str]] | None:
    """Return the first pattern in ``patterns`` that matches ``text``, with its match."""
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return pattern, match
    return None
