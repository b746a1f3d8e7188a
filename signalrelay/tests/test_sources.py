"""Tests for message sources and the downstream forwarder."""

import json

import httpx
import pytest

from signalrelay.errors import DownstreamDeliveryError, SourceFetchError
from signalrelay.ingestion.demo import DemoMessageSource
from signalrelay.ingestion.http_poll import HttpMessageSource
from signalrelay.models.signal import ClassifiedSignal, SignalAction
from signalrelay.services.handlers import DownstreamForwarder, log_signal_handler


class TestDemoSource:
    @pytest.mark.asyncio
    async def test_transcript_only_grows(self):
        source = DemoMessageSource(arrival_rate=1.0, seed=1)

        first = await source.fetch_messages("spot")
        second = await source.fetch_messages("spot")

        assert len(first) == 1
        assert len(second) == 2
        assert second[0] == first[0]
        assert all(m.source_id == "spot" for m in second)

    @pytest.mark.asyncio
    async def test_channels_are_independent(self):
        source = DemoMessageSource(arrival_rate=1.0, seed=2)
        await source.fetch_messages("a")
        await source.fetch_messages("a")

        assert len(await source.fetch_messages("b")) == 1

    @pytest.mark.asyncio
    async def test_zero_rate_and_cap(self):
        quiet = DemoMessageSource(arrival_rate=0.0)
        assert await quiet.fetch_messages("spot") == []

        capped = DemoMessageSource(arrival_rate=1.0, max_messages=2)
        for _ in range(5):
            messages = await capped.fetch_messages("spot")
        assert len(messages) == 2


def _http_source(handler, token: str = "") -> HttpMessageSource:
    return HttpMessageSource(
        "https://chat.example.com/api/", token=token, transport=httpx.MockTransport(handler)
    )


class TestHttpSource:
    @pytest.mark.asyncio
    async def test_bare_list_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200,
                json=[
                    {"content": "BTC 买入信号，价格：45000", "author": "eli", "timestamp": 1767614400},
                    {"text": "今天天气不错"},
                    "not a message",
                ],
            )

        messages = await _http_source(handler).fetch_messages("spot")

        assert seen["url"] == "https://chat.example.com/api/channels/spot/messages"
        assert seen["auth"] is None
        assert [m.content for m in messages] == ["BTC 买入信号，价格：45000", "今天天气不错"]
        assert messages[0].author == "eli"
        assert messages[0].observed_at.year == 2026
        assert messages[1].author == "unknown"
        assert messages[1].source_id == "spot"

    @pytest.mark.asyncio
    async def test_wrapped_response_and_bearer_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["authorization"] == "Bearer s3cret"
            return httpx.Response(200, json={"messages": [{"content": "ETH 做空"}]})

        messages = await _http_source(handler, token="s3cret").fetch_messages("futures")

        assert len(messages) == 1

    @pytest.mark.asyncio
    async def test_server_error_raises_fetch_error(self):
        source = _http_source(lambda request: httpx.Response(503, text="down"))

        with pytest.raises(SourceFetchError) as exc_info:
            await source.fetch_messages("spot")

        assert exc_info.value.source_id == "spot"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>login</html>"),
            httpx.Response(200, json={"items": []}),
        ],
    )
    async def test_unusable_body_raises_fetch_error(self, response):
        source = _http_source(lambda request: response)

        with pytest.raises(SourceFetchError):
            await source.fetch_messages("spot")

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await _http_source(lambda r: httpx.Response(404)).health_check() is True
        assert await _http_source(lambda r: httpx.Response(502)).health_check() is False


def _signal() -> ClassifiedSignal:
    return ClassifiedSignal(action=SignalAction.BUY, symbol="BTC", price=45000.0, confidence=0.64)


class TestHandlers:
    @pytest.mark.asyncio
    async def test_log_handler_acknowledges(self):
        result = await log_signal_handler(_signal())

        assert result["processed"] is True
        assert result["action"] == "logged"
        assert result["signal_summary"] == "BUY BTC @ 45000.0"

    @pytest.mark.asyncio
    async def test_forwarder_posts_signal_json(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(202)

        forwarder = DownstreamForwarder(
            "https://downstream.example.com/signals", transport=httpx.MockTransport(handler)
        )

        result = await forwarder(_signal())

        assert result == {"status": "sent", "status_code": 202}
        assert received[0]["action"] == "BUY"
        assert received[0]["price"] == 45000.0

    @pytest.mark.asyncio
    async def test_forwarder_failure_raises(self):
        forwarder = DownstreamForwarder(
            "https://downstream.example.com/signals",
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )

        with pytest.raises(DownstreamDeliveryError):
            await forwarder(_signal())

    @pytest.mark.asyncio
    async def test_forwarder_failure_becomes_failed_outcome(self, context):
        forwarder = DownstreamForwarder(
            "https://downstream.example.com/signals",
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        context.dispatcher.register_handler(log_signal_handler, handler_id="default")
        context.dispatcher.register_handler(forwarder, handler_id="downstream_forwarder")

        outcomes = await context.dispatcher.dispatch(_signal())

        assert [o.success for o in outcomes] == [True, False]
        assert "downstream.example.com" in outcomes[1].error
        assert context.history.size() == 1
