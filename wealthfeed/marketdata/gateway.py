"""Canonical market data gateway: normalization, caches, failover, throttling.

All callers should consume market data through this module.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from wealthfeed.analysis.engine import AnalyticsEngine
from wealthfeed.config import Settings, get_settings
from wealthfeed.marketdata.cache import MarketCaches
from wealthfeed.marketdata.failover import FailoverController, ProviderState
from wealthfeed.marketdata.finnhub import FinnhubClient
from wealthfeed.marketdata.models import CandleSeries, Holding, PerformanceReturns, Quote, SearchResult
from wealthfeed.marketdata.pricebook import PriceBook
from wealthfeed.marketdata.streaming import TradeCallback, TradeStream
from wealthfeed.marketdata.throttle import fetch_all_staggered, gather_staggered
from wealthfeed.marketdata.yahoo import YahooChartClient
from wealthfeed.utils import utc_now

logger = logging.getLogger(__name__)


class MarketDataGateway:
    """Single entrypoint for market data in wealthfeed."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        finnhub: FinnhubClient | None = None,
        yahoo: YahooChartClient | None = None,
        stream: TradeStream | None = None,
        state: ProviderState | None = None,
        caches: MarketCaches | None = None,
    ) -> None:
        s = settings or get_settings()
        self.settings = s
        self.caches = caches or MarketCaches(
            quote_ttl=s.quote_ttl_seconds,
            candle_ttl=s.candle_ttl_seconds,
            search_ttl=s.search_ttl_seconds,
        )
        self.finnhub = finnhub or FinnhubClient(
            s.finnhub_api_key,
            caches=self.caches,
            base_url=s.finnhub_base_url,
            ws_base_url=s.finnhub_ws_url,
            timeout=s.http_timeout_seconds,
        )
        self.yahoo = yahoo or YahooChartClient(
            s.chart_proxy_base_url,
            caches=self.caches,
            timeout=s.http_timeout_seconds,
        )
        self.failover = FailoverController(
            self.finnhub.fetch_candles,
            self.yahoo.get_candles,
            state=state,
            primary_delay=s.primary_stagger_seconds,
            secondary_delay=s.secondary_stagger_seconds,
        )
        self.stream = stream or TradeStream(self.finnhub.ws_url, reconnect_delay=s.ws_reconnect_seconds)
        self.prices = PriceBook(self.get_quote, stagger=s.price_load_stagger_seconds)
        self.analytics = AnalyticsEngine(
            self.get_candles_batch,
            self.get_quotes_batch,
            risk_free_rate=s.risk_free_rate,
            configured=self.is_configured,
        )

    def is_configured(self) -> bool:
        return self.finnhub.configured

    async def close(self) -> None:
        await self.stream.close()
        await self.finnhub.close()
        await self.yahoo.close()

    def clear_caches(self) -> None:
        """Bust every in-memory market-data cache (both providers)."""
        self.caches.clear_all()

    def get_provider_health(self) -> dict[str, Any]:
        return {
            "timestamp": utc_now().isoformat(),
            "configured": self.is_configured(),
            "candle_source": self.failover.source.value,
            "stream": self.stream.snapshot(),
            "cache_entries": {
                "quotes": len(self.caches.quotes),
                "candles": len(self.caches.candles),
                "search": len(self.caches.search),
                "yahoo": len(self.caches.yahoo),
            },
        }

    # ── Quotes / search ────────────────────────────────────────────────

    async def get_quote(self, ticker: str) -> Quote:
        return await self.finnhub.get_quote(ticker)

    async def get_quotes_batch(self, tickers: list[str]) -> dict[str, Quote]:
        """Quotes fetched a fixed delay apart; failed tickers are omitted."""
        if not tickers:
            return {}
        return await gather_staggered(tickers, self.get_quote, self.settings.quote_stagger_seconds)

    async def search_symbols(self, query: str) -> list[SearchResult]:
        return await self.finnhub.search_symbols(query)

    # ── Candles ────────────────────────────────────────────────────────

    async def get_candles(self, ticker: str, from_date: str, to_date: str) -> CandleSeries:
        return await self.failover.get_candles(ticker, from_date, to_date)

    async def get_candles_batch(self, tickers: list[str], from_date: str, to_date: str) -> list[CandleSeries]:
        logger.info(
            "[marketdata] fetching candles for %d tickers via %s",
            len(tickers),
            self.failover.source.value,
        )
        return await fetch_all_staggered(
            tickers,
            lambda t: self.get_candles(t, from_date, to_date),
            self.failover.stagger_delay,
        )

    # ── Streaming ──────────────────────────────────────────────────────

    async def subscribe_trades(self, tickers: list[str], on_trade: TradeCallback) -> Callable[[], None]:
        if not self.is_configured():
            return lambda: None
        return await self.stream.subscribe(tickers, on_trade)

    async def track_prices(self, tickers: list[str]) -> Callable[[], None]:
        """Load quotes into the price book and keep them live from the stream."""
        await self.prices.load_tickers(tickers)
        return await self.subscribe_trades(tickers, self.prices.apply_trade)

    # ── Analytics ──────────────────────────────────────────────────────

    async def get_portfolio_return(
        self,
        holdings: list[Holding],
        benchmark: str | None,
        range_label: str = "1Y",
    ) -> list[dict[str, Any]] | None:
        return await self.analytics.get_portfolio_return(holdings, benchmark, range_label)

    async def get_holdings_returns(self, holdings: list[Holding], range_label: str = "6M") -> list[dict[str, Any]] | None:
        return await self.analytics.get_holdings_returns(holdings, range_label)

    async def get_performance_returns(self, holdings: list[Holding], benchmark: str | None) -> PerformanceReturns | None:
        return await self.analytics.get_performance_returns(holdings, benchmark)

    async def get_risk_metrics(
        self,
        holdings: list[Holding],
        benchmark: str | None,
        range_label: str = "1Y",
    ) -> dict[str, Any] | None:
        return await self.analytics.get_risk_metrics(holdings, benchmark, range_label)
