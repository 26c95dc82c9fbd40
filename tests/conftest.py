from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from wealthfeed.config import Settings
from wealthfeed.marketdata.cache import MarketCaches


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _json_response(payload: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(payload), headers={"content-type": "application/json"})


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    return _json_response


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def caches(clock: FakeClock) -> MarketCaches:
    return MarketCaches(clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        finnhub_api_key="test-key",
        chart_proxy_base_url="http://proxy.local",
        primary_stagger_seconds=0.0,
        secondary_stagger_seconds=0.0,
        quote_stagger_seconds=0.0,
        price_load_stagger_seconds=0.0,
        ws_reconnect_seconds=0.01,
    )
