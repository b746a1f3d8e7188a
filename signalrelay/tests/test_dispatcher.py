"""Tests for the signal dispatcher."""

from datetime import datetime, timezone

import pytest

from signalrelay.errors import ValidationError
from signalrelay.models.signal import ClassifiedSignal, SignalAction
from signalrelay.observability.stats import StatsAggregator
from signalrelay.services.dispatcher import SignalDispatcher
from signalrelay.services.history import SignalHistory


@pytest.fixture
def dispatcher():
    return SignalDispatcher(SignalHistory(capacity=10), stats=StatsAggregator())


def _sell_eth() -> ClassifiedSignal:
    return ClassifiedSignal(action=SignalAction.SELL, symbol="ETH", confidence=0.65)


def ok_handler(signal):
    return {"seen": signal.symbol}


async def async_ok_handler(signal):
    return {"seen_async": signal.action.value}


def failing_handler(signal):
    raise RuntimeError("exchange rejected order")


class TestDispatch:
    @pytest.mark.asyncio
    async def test_partial_failure_is_isolated(self, dispatcher):
        dispatcher.register_handler(ok_handler)
        dispatcher.register_handler(failing_handler)
        dispatcher.register_handler(async_ok_handler)

        signal = _sell_eth()
        outcomes = await dispatcher.dispatch(signal)

        assert len(outcomes) == 3
        assert [o.success for o in outcomes] == [True, False, True]
        assert outcomes[0].result == {"seen": "ETH"}
        assert outcomes[1].error == "exchange rejected order"
        assert outcomes[2].result == {"seen_async": "SELL"}
        assert signal in dispatcher.history.recent(10)

    @pytest.mark.asyncio
    async def test_history_written_even_when_every_handler_fails(self, dispatcher):
        dispatcher.register_handler(failing_handler, handler_id="first")
        dispatcher.register_handler(failing_handler, handler_id="second")

        outcomes = await dispatcher.dispatch(_sell_eth())

        assert [o.handler_id for o in outcomes] == ["first", "second"]
        assert not any(o.success for o in outcomes)
        assert dispatcher.history.size() == 1

    @pytest.mark.asyncio
    async def test_handlers_run_in_registration_order(self, dispatcher):
        calls = []
        dispatcher.register_handler(lambda s: calls.append("a"), handler_id="a")
        dispatcher.register_handler(lambda s: calls.append("b"), handler_id="b")

        await dispatcher.dispatch(_sell_eth())

        assert calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_no_handlers_still_records(self, dispatcher):
        assert await dispatcher.dispatch(_sell_eth()) == []
        assert dispatcher.history.size() == 1
        assert dispatcher.stats.snapshot()["signals_accepted"] == 1

    def test_register_rejects_non_callable(self, dispatcher):
        with pytest.raises(TypeError):
            dispatcher.register_handler("not a function")

    def test_handler_id_defaults_to_function_name(self, dispatcher):
        registration = dispatcher.register_handler(ok_handler)
        assert registration.handler_id == "ok_handler"
        assert dispatcher.handler_count == 1


class TestValidation:
    def test_invalid_action_is_named(self):
        errors = SignalDispatcher.validate({"action": "HOLD"})
        assert len(errors) == 1
        assert "HOLD" in errors[0]

    @pytest.mark.parametrize("payload", [None, {}])
    def test_missing_body(self, payload):
        assert SignalDispatcher.validate(payload) == ["Signal is required"]

    def test_body_must_be_object(self):
        assert SignalDispatcher.validate(["BUY"]) == ["Signal must be a JSON object"]

    def test_numeric_fields(self):
        errors = SignalDispatcher.validate({"action": "BUY", "price": "cheap", "confidence": 1.5})

        assert len(errors) == 2
        assert errors[0].startswith("price:") and "'cheap'" in errors[0]
        assert errors[1].startswith("confidence:") and "1.5" in errors[1]

    def test_missing_action(self):
        errors = SignalDispatcher.validate({"symbol": "BTC"})
        assert errors == ["action: Field required"]

    @pytest.mark.parametrize("field", ["price", "confidence"])
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_numbers_are_rejected(self, field, value):
        errors = SignalDispatcher.validate({"action": "BUY", field: value})

        assert len(errors) == 1
        assert errors[0].startswith(f"{field}:")

    def test_numeric_strings_are_coerced(self, dispatcher):
        signal = dispatcher.signal_from_payload({"action": "BUY", "price": "45000", "confidence": "0.5"})

        assert signal.price == 45000.0
        assert signal.confidence == 0.5

    def test_valid_payload(self):
        assert SignalDispatcher.validate({"action": "UNKNOWN"}) == []

    def test_signal_from_payload(self, dispatcher):
        signal = dispatcher.signal_from_payload(
            {
                "action": "BUY",
                "symbol": "sol",
                "price": 45,
                "confidence": 0.7,
                "sourceId": "futures-group",
                "rawText": "SOL看涨，建议45美元附近建仓",
                "timestamp": 1767614400000,
            }
        )

        assert signal.action is SignalAction.BUY
        assert signal.symbol == "SOL"
        assert signal.price == 45.0
        assert signal.source_id == "futures-group"
        assert signal.raw_text.startswith("SOL")
        assert signal.timestamp == datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

    def test_signal_from_payload_defaults(self, dispatcher):
        signal = dispatcher.signal_from_payload({"action": "SELL"})

        assert signal.symbol is None
        assert signal.confidence == 0.0
        assert signal.author == "unknown"
        assert signal.source_id == "http"

    @pytest.mark.asyncio
    async def test_invalid_payload_never_reaches_history(self, dispatcher):
        called = []
        dispatcher.register_handler(lambda s: called.append(s))

        with pytest.raises(ValidationError) as exc_info:
            await dispatcher.dispatch_payload({"action": "HOLD"})

        assert exc_info.value.details
        assert called == []
        assert dispatcher.history.size() == 0
