"""Secondary historical-data client (Yahoo Finance chart, via proxy).

Only used for daily closes once the primary candle endpoint is denied.
Accepts conventional tickers directly, index carets included, so no
normalization is applied.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from wealthfeed.marketdata.cache import MarketCaches, cache_key
from wealthfeed.marketdata.errors import UpstreamError, http_error
from wealthfeed.marketdata.models import CandlePoint, CandleSeries
from wealthfeed.utils import day_to_epoch, epoch_to_day

logger = logging.getLogger(__name__)

_PROXY_PATH = "/api/yahoo-chart"


class YahooChartClient:
    def __init__(
        self,
        proxy_base_url: str,
        *,
        caches: MarketCaches | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._url = f"{proxy_base_url.rstrip('/')}{_PROXY_PATH}"
        self.caches = caches or MarketCaches()
        self._client = client
        self._timeout = timeout

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def get_candles(self, ticker: str, from_date: str, to_date: str) -> CandleSeries:
        key = cache_key("yf", ticker, from_date, to_date)
        cached = self.caches.yahoo.get(key)
        if cached is not None:
            return cached

        params = {
            "ticker": ticker,
            "from": day_to_epoch(from_date),
            "to": day_to_epoch(to_date),
        }
        if self._client is not None:
            resp = await self._client.get(self._url, params=params)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._url, params=params)

        if resp.status_code < 200 or resp.status_code >= 300:
            raise http_error(resp.status_code, f"Yahoo chart failed for {ticker}: {resp.status_code}")

        payload = resp.json() or {}
        series = parse_chart(ticker, payload)
        if series:
            self.caches.yahoo.set(key, series)
        return series


def parse_chart(ticker: str, payload: dict[str, Any]) -> CandleSeries:
    """Extract ``[(date, close)]`` from a Yahoo chart response.

    Unknown symbols come back as an empty result; an ``error.description``
    without data is raised as :class:`UpstreamError`.
    """
    chart = payload.get("chart") or {}
    results = chart.get("result") or []
    result = results[0] if results else {}
    timestamps = (result or {}).get("timestamp") or []

    if not timestamps:
        description = (chart.get("error") or {}).get("description")
        if description:
            raise UpstreamError(f"Yahoo: {description} ({ticker})")
        return []

    quotes = ((result.get("indicators") or {}).get("quote") or [{}])
    closes = (quotes[0] or {}).get("close") or []

    series: CandleSeries = []
    for i, ts in enumerate(timestamps):
        close = closes[i] if i < len(closes) else None
        # Holidays and partial sessions surface as null closes.
        if close is None:
            continue
        series.append(CandlePoint(date=epoch_to_day(ts), price=float(close)))
    return series
