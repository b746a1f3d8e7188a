"""Shared test fixtures for SignalRelay tests."""

from __future__ import annotations

import logging

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from signalrelay.config import Settings
from signalrelay.context import build_context
from signalrelay.errors import SourceFetchError
from signalrelay.ingestion.base import MessageSource
from signalrelay.main import create_app
from signalrelay.models.signal import RawMessage


class ListSource(MessageSource):
    """In-memory source whose channels are plain lists tests append to."""

    def __init__(self, name: str = "list") -> None:
        self._name = name
        self.channels: dict[str, list[RawMessage]] = {}
        self.fail_next = 0
        self.calls = 0

    @property
    def source_name(self) -> str:
        return self._name

    def post(self, source_id: str, content: str, author: str = "trader") -> None:
        self.channels.setdefault(source_id, []).append(
            RawMessage(content=content, author=author, source_id=source_id)
        )

    async def fetch_messages(self, source_id: str) -> list[RawMessage]:
        self.calls += 1
        if self.fail_next:
            self.fail_next -= 1
            raise SourceFetchError(source_id, "chat page not reachable")
        return list(self.channels.get(source_id, []))


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        enable_demo_source=False,
        source_url="",
        downstream_url="",
        allow_list="",
        monitor_interval_seconds=0.01,
        fetch_timeout_seconds=1.0,
        max_history_size=1000,
        min_confidence=0.3,
    )


@pytest.fixture
def context(test_settings):
    return build_context(test_settings, logger=logging.getLogger("signalrelay.test"))


@pytest.fixture
def list_source():
    return ListSource()


@pytest.fixture
def other_source():
    return ListSource("other")


@pytest.fixture
def app(context):
    return create_app(context)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
