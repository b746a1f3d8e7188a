"""Signal classifier: turns free chat text into a scored trade signal."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from signalrelay.models.signal import ClassifiedSignal, RawMessage, SignalAction
from signalrelay.parser import patterns as P

logger = logging.getLogger("signalrelay.classifier")

MIN_TEXT_LENGTH = 5

# Confidence weights
ACTION_WEIGHT = 0.3
SYMBOL_WEIGHT = 0.2
PRICE_WEIGHT = 0.2
KEYWORD_WEIGHT = 0.05
KEYWORD_CAP = 0.2
LENGTH_PENALTY = 0.8
PREFERRED_LENGTH = (20, 500)


@dataclass(frozen=True)
class ClassificationResult:
    """Un-thresholded analysis of one text."""

    action: SignalAction
    symbol: Optional[str]
    price: Optional[float]
    keyword_hits: int
    confidence: float
    components: dict[str, float] = field(default_factory=dict)


class SignalClassifier:
    """Heuristic classifier for bilingual (Chinese/English) trading chatter.

    confidence = 0.3·[action known] + 0.2·[symbol] + 0.2·[price]
               + min(0.05 × keyword hits, 0.2)
    then × 0.8 when the text is shorter than 20 or longer than 500 characters,
    clamped to [0, 1] last.
    """

    def __init__(self, acceptance_threshold: float = 0.3) -> None:
        self.acceptance_threshold = acceptance_threshold

    # ── Gate ─────────────────────────────────────────────────────
    @staticmethod
    def is_trade_related(text: str) -> bool:
        lowered = text.lower()
        return any(keyword.lower() in lowered for keyword in P.GATE_KEYWORDS)

    # ── Field extraction ─────────────────────────────────────────
    @staticmethod
    def parse_action(text: str) -> SignalAction:
        if P.first_match(P.BUY_PATTERNS, text):
            return SignalAction.BUY
        if P.first_match(P.SELL_PATTERNS, text):
            return SignalAction.SELL
        return SignalAction.UNKNOWN

    @staticmethod
    def parse_symbol(text: str) -> Optional[str]:
        found = P.first_match(P.SYMBOL_PATTERNS, text)
        if not found:
            return None
        return found[1].group(1).upper()

    @staticmethod
    def parse_price(text: str) -> Optional[float]:
        found = P.first_match(P.PRICE_PATTERNS, text)
        if not found:
            return None
        return float(found[1].group(1))

    @staticmethod
    def count_keywords(text: str) -> int:
        return sum(len(regex.findall(text)) for regex in P.SCORING_REGEXES)

    # ── Scoring ──────────────────────────────────────────────────
    def score(
        self,
        text: str,
        action: SignalAction,
        symbol: Optional[str],
        price: Optional[float],
        keyword_hits: int,
    ) -> tuple[float, dict[str, float]]:
        components = {
            "action": ACTION_WEIGHT if action is not SignalAction.UNKNOWN else 0.0,
            "symbol": SYMBOL_WEIGHT if symbol else 0.0,
            "price": PRICE_WEIGHT if price is not None else 0.0,
            "keywords": min(keyword_hits * KEYWORD_WEIGHT, KEYWORD_CAP),
        }
        confidence = sum(components.values())

        low, high = PREFERRED_LENGTH
        if len(text) < low or len(text) > high:
            components["length_multiplier"] = LENGTH_PENALTY
            confidence *= LENGTH_PENALTY
        else:
            components["length_multiplier"] = 1.0

        confidence = max(0.0, min(1.0, confidence))
        return round(confidence, 4), components

    def analyze(self, text: str | None) -> Optional[ClassificationResult]:
        """Extract fields and score ``text`` without applying the threshold.

        Returns None only when the text fails the length/keyword gate.
        """
        if not text or len(text) < MIN_TEXT_LENGTH:
            return None
        if not self.is_trade_related(text):
            return None

        action = self.parse_action(text)
        symbol = self.parse_symbol(text)
        price = self.parse_price(text)
        keyword_hits = self.count_keywords(text)
        confidence, components = self.score(text, action, symbol, price, keyword_hits)

        return ClassificationResult(
            action=action,
            symbol=symbol,
            price=price,
            keyword_hits=keyword_hits,
            confidence=confidence,
            components=components,
        )

    def classify(
        self,
        text: str | None,
        author: str = "unknown",
        source_id: str = "default",
        timestamp: datetime | None = None,
    ) -> Optional[ClassifiedSignal]:
        """Analyze ``text`` and keep it only if confidence reaches the threshold."""
        result = self.analyze(text)
        if result is None or result.confidence < self.acceptance_threshold:
            return None

        kwargs = {"timestamp": timestamp} if timestamp is not None else {}
        signal = ClassifiedSignal(
            action=result.action,
            symbol=result.symbol,
            price=result.price,
            confidence=result.confidence,
            author=author or "unknown",
            source_id=source_id,
            raw_text=text,
            **kwargs,
        )
        logger.debug(f"Classified signal: {signal.summary} (confidence={signal.confidence:.2f})")
        return signal

    def parse_message(self, message: RawMessage) -> Optional[ClassifiedSignal]:
        return self.classify(
            message.content,
            author=message.author,
            source_id=message.source_id,
            timestamp=message.observed_at,
        )
