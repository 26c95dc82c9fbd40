from __future__ import annotations

import httpx
import pytest

from wealthfeed.marketdata.errors import CapabilityError, TransientHttpError, UpstreamError
from wealthfeed.marketdata.yahoo import YahooChartClient, parse_chart

JAN2 = 1704153600
JAN3 = 1704240000
JAN4 = 1704326400


def _chart(timestamps, closes):
    return {"chart": {"result": [{"timestamp": timestamps, "indicators": {"quote": [{"close": closes}]}}], "error": None}}


def test_parse_chart_drops_null_closes() -> None:
    series = parse_chart("AAPL", _chart([JAN2, JAN3, JAN4], [185.6, None, 184.2]))
    assert [(p.date, p.price) for p in series] == [("2024-01-02", 185.6), ("2024-01-04", 184.2)]


def test_parse_chart_unknown_symbol_is_empty() -> None:
    assert parse_chart("NOPE", {"chart": {"result": None, "error": None}}) == []
    assert parse_chart("NOPE", {}) == []


def test_parse_chart_raises_upstream_description() -> None:
    payload = {"chart": {"result": None, "error": {"code": "Not Found", "description": "No data found"}}}
    with pytest.raises(UpstreamError, match="No data found"):
        parse_chart("NOPE", payload)


@pytest.mark.asyncio
async def test_get_candles_calls_proxy_with_raw_ticker(caches, mock_client, json_response) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return json_response(_chart([JAN2, JAN3], [4700.0, 4710.0]))

    yahoo = YahooChartClient("http://proxy.local/", caches=caches, client=mock_client(handler))
    series = await yahoo.get_candles("^GSPC", "2024-01-02", "2024-01-03")

    assert [p.price for p in series] == [4700.0, 4710.0]
    assert seen[0].url.path == "/api/yahoo-chart"
    assert seen[0].url.params["ticker"] == "^GSPC"
    assert seen[0].url.params["from"] == str(JAN2)
    assert caches.yahoo.get("yf:^GSPC:2024-01-02:2024-01-03") == series

    await yahoo.get_candles("^GSPC", "2024-01-02", "2024-01-03")
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_empty_result_is_not_cached(caches, mock_client, json_response) -> None:
    yahoo = YahooChartClient("http://proxy.local", caches=caches, client=mock_client(lambda r: json_response({})))
    assert await yahoo.get_candles("NOPE", "2024-01-02", "2024-01-03") == []
    assert len(caches.yahoo) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status,exc_type", [(403, CapabilityError), (502, TransientHttpError)])
async def test_non_2xx_raises_http_error(caches, mock_client, json_response, status, exc_type) -> None:
    yahoo = YahooChartClient("http://proxy.local", caches=caches, client=mock_client(lambda r: json_response({}, status=status)))
    with pytest.raises(exc_type):
        await yahoo.get_candles("AAPL", "2024-01-02", "2024-01-03")
