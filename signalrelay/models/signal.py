"""Signal data model: messages in, classified trade signals out."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

from signalrelay.utils.time import utc_now


class SignalAction(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    UNKNOWN = "UNKNOWN"


# ─── Domain objects ──────────────────────────────────────────────


@dataclass(frozen=True)
class RawMessage:
    """A chat message as observed on a source, before classification."""

    content: str
    author: str = "unknown"
    source_id: str = "default"
    observed_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ClassifiedSignal:
    """A structured trade intent extracted from free text."""

    action: SignalAction
    symbol: Optional[str] = None
    price: Optional[float] = None
    confidence: float = 0.0
    author: str = "unknown"
    source_id: str = "default"
    raw_text: str = ""
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def summary(self) -> str:
        price = self.price if self.price is not None else "N/A"
        return f"{self.action.value} {self.symbol or 'UNKNOWN'} @ {price}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "symbol": self.symbol,
            "price": self.price,
            "confidence": self.confidence,
            "author": self.author,
            "source_id": self.source_id,
            "raw_text": self.raw_text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class HandlerOutcome:
    """What one registered handler did with one signal."""

    handler_id: str
    success: bool
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"handler_id": self.handler_id, "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


# ─── Pydantic Schemas ────────────────────────────────────────────


class SignalPayload(BaseModel):
    """Shape of a ClassifiedSignal posted to the HTTP ingestion endpoint.

    Both snake_case and camelCase keys are accepted. Numbers must be finite so
    every stored signal stays JSON-serialisable.
    """

    action: Literal["BUY", "SELL", "UNKNOWN"]
    symbol: Optional[str] = None
    price: Optional[float] = Field(default=None, allow_inf_nan=False)
    confidence: Optional[float] = Field(default=None, ge=0, le=1, allow_inf_nan=False)
    author: Optional[str] = None
    source_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("source_id", "sourceId")
    )
    raw_text: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("raw_text", "rawText")
    )
    timestamp: Any = None

    model_config = {"extra": "ignore"}
