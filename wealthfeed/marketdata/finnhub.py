"""Primary market data client (Finnhub REST).

Quotes, daily candles and symbol search. The candle path returns a
:class:`Result` instead of raising so the failover combinator can react to
a capability failure without the client knowing a secondary exists.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from wealthfeed.marketdata.cache import MarketCaches, cache_key
from wealthfeed.marketdata.errors import MarketDataError, NoDataError, http_error
from wealthfeed.marketdata.models import CandlePoint, CandleResult, CandleSeries, Quote, Result, SearchResult
from wealthfeed.marketdata.symbols import normalize_ticker
from wealthfeed.utils import day_to_epoch, epoch_to_day

logger = logging.getLogger(__name__)

_FINNHUB_BASE = "https://finnhub.io/api/v1"
_FINNHUB_WS = "wss://ws.finnhub.io"

_SEARCH_LIMIT = 10
_SEARCH_TYPES = {"Common Stock": "Stock", "ETP": "ETF"}
_SIMPLE_SYMBOL = re.compile(r"^[A-Z]{1,5}$")


class FinnhubClient:
    """Finnhub REST client with per-endpoint TTL caching."""

    def __init__(
        self,
        api_key: str,
        *,
        caches: MarketCaches | None = None,
        base_url: str = _FINNHUB_BASE,
        ws_base_url: str = _FINNHUB_WS,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._key = (api_key or "").strip()
        self.caches = caches or MarketCaches()
        self._base = base_url.rstrip("/")
        self._ws_base = ws_base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._key)

    def ws_url(self) -> str:
        return f"{self._ws_base}?token={self._key}"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    # ── Quotes ─────────────────────────────────────────────────────────

    async def get_quote(self, ticker: str) -> Quote:
        """Current quote for ``ticker``; cached under the original ticker."""
        cached = self.caches.quotes.get(ticker)
        if cached is not None:
            return cached

        symbol = normalize_ticker(ticker)
        resp = await self._get("/quote", {"symbol": symbol})
        if resp.status_code < 200 or resp.status_code >= 300:
            raise http_error(resp.status_code, f"Quote fetch failed for {ticker}: {resp.status_code}")
        raw = resp.json() or {}

        # All-zero payload means the symbol is unsupported.
        if not raw.get("c"):
            raise NoDataError(f"No data for {ticker}")

        quote = Quote(
            price=float(raw["c"]),
            change=_opt_float(raw.get("d")),
            change_percent=_opt_float(raw.get("dp")),
            prev_close=_opt_float(raw.get("pc")),
            high=_opt_float(raw.get("h")),
            low=_opt_float(raw.get("l")),
            open=_opt_float(raw.get("o")),
        )
        self.caches.quotes.set(ticker, quote)
        return quote

    # ── Candles ────────────────────────────────────────────────────────

    async def fetch_candles(self, ticker: str, from_date: str, to_date: str) -> CandleResult:
        """Daily closes between two ``YYYY-MM-DD`` dates.

        403 comes back as ``CapabilityError``, other non-2xx as
        ``TransientHttpError``; a "no data" payload is an empty series.
        """
        key = cache_key(ticker, from_date, to_date)
        cached = self.caches.candles.get(key)
        if cached is not None:
            return Result.ok(cached)

        symbol = normalize_ticker(ticker)
        resp = await self._get(
            "/stock/candle",
            {
                "symbol": symbol,
                "resolution": "D",
                "from": day_to_epoch(from_date),
                "to": day_to_epoch(to_date),
            },
        )
        if resp.status_code < 200 or resp.status_code >= 300:
            return Result.err(
                http_error(resp.status_code, f"Candle fetch failed for {ticker}: {resp.status_code}")
            )

        raw = resp.json() or {}
        closes = raw.get("c") or []
        if raw.get("s") != "ok" or not closes:
            return Result.ok([])

        timestamps = raw.get("t") or []
        series: CandleSeries = [
            CandlePoint(date=epoch_to_day(ts), price=float(close))
            for ts, close in zip(timestamps, closes)
            if close is not None
        ]
        self.caches.candles.set(key, series)
        return Result.ok(series)

    async def get_candles(self, ticker: str, from_date: str, to_date: str) -> CandleSeries:
        result = await self.fetch_candles(ticker, from_date, to_date)
        return result.unwrap()

    # ── Symbol search ──────────────────────────────────────────────────

    async def search_symbols(self, query: str) -> list[SearchResult]:
        """Advisory search: any failure degrades to an empty list."""
        q = (query or "").strip()
        if not q or not self._key:
            return []

        key = q.upper()
        cached = self.caches.search.get(key)
        if cached is not None:
            return cached

        try:
            resp = await self._get("/search", {"q": q})
            if resp.status_code < 200 or resp.status_code >= 300:
                return []
            payload = resp.json() or {}
        except (httpx.HTTPError, ValueError, MarketDataError) as exc:
            logger.debug("[finnhub] search failed for %r: %s", q, exc)
            return []

        if not isinstance(payload, dict):
            return []

        rows = payload.get("result")
        results: list[SearchResult] = []
        for r in rows if isinstance(rows, list) else []:
            if not isinstance(r, dict):
                continue
            kind = _SEARCH_TYPES.get(str(r.get("type")))
            symbol = r.get("symbol") or ""
            if kind is None or not isinstance(symbol, str) or not _SIMPLE_SYMBOL.match(symbol):
                continue
            results.append(
                SearchResult(
                    ticker=symbol,
                    name=r.get("description") or "",
                    type=kind,
                    exchange=r.get("primaryExchange") or "",
                    last_price=None,
                )
            )
            if len(results) >= _SEARCH_LIMIT:
                break

        self.caches.search.set(key, results)
        return results

    # ── HTTP ───────────────────────────────────────────────────────────

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        params = {**params, "token": self._key}
        url = f"{self._base}{path}"
        if self._client is not None:
            return await self._client.get(url, params=params)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, params=params)


def _opt_float(v: Any) -> float | None:
    try:
        return float(v) if v is not None else None
    except (TypeError, ValueError):
        return None
