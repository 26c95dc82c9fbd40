from __future__ import annotations

import httpx
import pytest

from wealthfeed.config import Settings
from wealthfeed.marketdata.finnhub import FinnhubClient
from wealthfeed.marketdata.gateway import MarketDataGateway
from wealthfeed.marketdata.models import Holding
from wealthfeed.marketdata.yahoo import YahooChartClient

JAN2 = 1704153600
JAN3 = 1704240000


def _gateway(settings, caches, mock_client, finnhub_handler, yahoo_handler) -> MarketDataGateway:
    finnhub = FinnhubClient(settings.finnhub_api_key, caches=caches, client=mock_client(finnhub_handler))
    yahoo = YahooChartClient(settings.chart_proxy_base_url, caches=caches, client=mock_client(yahoo_handler))
    return MarketDataGateway(settings, finnhub=finnhub, yahoo=yahoo, caches=caches)


@pytest.mark.asyncio
async def test_candle_batch_fails_over_after_403(settings, caches, mock_client, json_response) -> None:
    finnhub_paths: list[str] = []
    yahoo_tickers: list[str] = []

    def finnhub_handler(request: httpx.Request) -> httpx.Response:
        finnhub_paths.append(request.url.path)
        return json_response({"error": "You don't have access to this resource."}, status=403)

    def yahoo_handler(request: httpx.Request) -> httpx.Response:
        yahoo_tickers.append(request.url.params["ticker"])
        chart = {"timestamp": [JAN2, JAN3], "indicators": {"quote": [{"close": [10.0, 11.0]}]}}
        return json_response({"chart": {"result": [chart], "error": None}})

    gw = _gateway(settings, caches, mock_client, finnhub_handler, yahoo_handler)
    try:
        out = await gw.get_candles_batch(["AAPL", "^GSPC", "MSFT"], "2024-01-02", "2024-01-03")
    finally:
        await gw.close()

    assert [len(s) for s in out] == [2, 2, 2]
    assert finnhub_paths == ["/api/v1/stock/candle"]
    assert yahoo_tickers == ["AAPL", "^GSPC", "MSFT"]
    assert gw.get_provider_health()["candle_source"] == "secondary"
    assert gw.failover.stagger_delay() == settings.secondary_stagger_seconds


@pytest.mark.asyncio
async def test_quotes_batch_omits_failed_tickers(settings, caches, mock_client, json_response) -> None:
    def finnhub_handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["symbol"] == "NOPE":
            return json_response({"c": 0})
        return json_response({"c": 100.0, "pc": 99.0})

    gw = _gateway(settings, caches, mock_client, finnhub_handler, lambda r: json_response({}))
    try:
        quotes = await gw.get_quotes_batch(["AAPL", "NOPE", "DJI"])
    finally:
        await gw.close()
    assert set(quotes) == {"AAPL", "DJI"}
    assert caches.quotes.get("DJI") is quotes["DJI"]


@pytest.mark.asyncio
async def test_clear_caches_and_health(settings, caches, mock_client, json_response) -> None:
    gw = _gateway(settings, caches, mock_client, lambda r: json_response({"c": 1.0}), lambda r: json_response({}))
    try:
        await gw.get_quote("AAPL")
        health = gw.get_provider_health()
        assert health["configured"] is True
        assert health["cache_entries"]["quotes"] == 1
        assert health["stream"]["state"] == "closed"
        gw.clear_caches()
        assert gw.get_provider_health()["cache_entries"]["quotes"] == 0
    finally:
        await gw.close()


@pytest.mark.asyncio
async def test_unconfigured_gateway_is_inert() -> None:
    gw = MarketDataGateway(Settings(_env_file=None, finnhub_api_key=""))
    try:
        unsubscribe = await gw.subscribe_trades(["AAPL"], lambda s, p: None)
        unsubscribe()
        assert gw.stream.listener_count == 0
        assert await gw.get_performance_returns([Holding("AAPL", 100.0)], "SPY") is None
        assert await gw.search_symbols("apple") == []
    finally:
        await gw.close()
