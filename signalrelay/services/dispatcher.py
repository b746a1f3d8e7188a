"""Signal dispatcher: records signals and fans them out to registered handlers."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from signalrelay.errors import HandlerError, ValidationError
from signalrelay.models.signal import (
    ClassifiedSignal,
    HandlerOutcome,
    SignalAction,
    SignalPayload,
)
from signalrelay.observability.stats import StatsAggregator
from signalrelay.services.history import SignalHistory
from signalrelay.utils.time import coerce_timestamp

SignalHandler = Callable[[ClassifiedSignal], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class HandlerRegistration:
    handler_id: str
    handler: SignalHandler


class SignalDispatcher:
    """Ordered registry of signal consumers.

    Every valid signal is written to history first and then handed to each
    handler in registration order. A failing handler is recorded in its own
    outcome and never stops the handlers after it.
    """

    def __init__(
        self,
        history: SignalHistory,
        stats: Optional[StatsAggregator] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.history = history
        self.stats = stats
        self.logger = logger or logging.getLogger("signalrelay.dispatcher")
        self._handlers: list[HandlerRegistration] = []

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    @property
    def handlers(self) -> list[HandlerRegistration]:
        return list(self._handlers)

    def register_handler(
        self, handler: SignalHandler, handler_id: Optional[str] = None
    ) -> HandlerRegistration:
        if not callable(handler):
            raise TypeError("Handler must be callable")

        name = handler_id or getattr(handler, "__name__", None) or type(handler).__name__
        registration = HandlerRegistration(handler_id=name or "anonymous", handler=handler)
        self._handlers.append(registration)
        self.logger.info(f"Registered signal handler: {registration.handler_id}")
        return registration

    # ── Validation ───────────────────────────────────────────────
    @staticmethod
    def _error_details(exc: PydanticValidationError) -> list[str]:
        details = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "signal"
            detail = f"{field}: {err['msg']}"
            if err["type"] != "missing":
                detail += f" (got {err.get('input')!r})"
            details.append(detail)
        return details

    @classmethod
    def parse_payload(cls, payload: Any) -> SignalPayload:
        """Validate an inbound signal body, raising ``ValidationError`` with details."""
        if not payload:
            raise ValidationError(["Signal is required"])
        if not isinstance(payload, dict):
            raise ValidationError(["Signal must be a JSON object"])

        try:
            return SignalPayload.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(cls._error_details(exc)) from exc

    @classmethod
    def validate(cls, payload: Any) -> list[str]:
        """Return human-readable problems with an inbound signal body (empty if valid)."""
        try:
            cls.parse_payload(payload)
        except ValidationError as exc:
            return exc.details
        return []

    def signal_from_payload(self, payload: Any) -> ClassifiedSignal:
        body = self.parse_payload(payload)

        return ClassifiedSignal(
            action=SignalAction(body.action),
            symbol=body.symbol.upper() if body.symbol else None,
            price=body.price,
            confidence=body.confidence if body.confidence is not None else 0.0,
            author=body.author or "unknown",
            source_id=body.source_id or "http",
            raw_text=body.raw_text or "",
            timestamp=coerce_timestamp(body.timestamp),
        )

    # ── Dispatch ─────────────────────────────────────────────────
    async def dispatch(self, signal: ClassifiedSignal) -> list[HandlerOutcome]:
        """Record ``signal`` and run every handler; one outcome per handler."""
        self.history.add(signal)
        if self.stats is not None:
            self.stats.record_signal()

        outcomes: list[HandlerOutcome] = []
        for registration in list(self._handlers):
            try:
                result = registration.handler(signal)
                if inspect.isawaitable(result):
                    result = await result
                outcomes.append(HandlerOutcome(registration.handler_id, True, result=result))
            except Exception as exc:
                error = HandlerError(registration.handler_id, exc)
                self.logger.error(
                    f"Signal handler error: {error}",
                    extra={"handler_id": registration.handler_id},
                )
                outcomes.append(HandlerOutcome(registration.handler_id, False, error=str(exc)))

        return outcomes

    async def dispatch_payload(self, payload: Any) -> tuple[ClassifiedSignal, list[HandlerOutcome]]:
        signal = self.signal_from_payload(payload)
        self.logger.info(f"Received signal: {signal.action.value} {signal.symbol}")
        return signal, await self.dispatch(signal)
