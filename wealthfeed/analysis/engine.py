"""Analytics orchestration: fetch aligned series, then compute returns/risk.

Every entrypoint returns ``None`` rather than raising when market data is
unavailable; the UI always has a simulated fallback to show instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from wealthfeed.analysis import returns as ret
from wealthfeed.analysis.risk import composite_index, compute_metrics
from wealthfeed.analysis.windows import PERF_DAYS, PERF_FETCH_DAYS, range_days, window, ytd_days
from wealthfeed.marketdata.errors import ExhaustionError
from wealthfeed.marketdata.models import CandleSeries, Holding, PerformanceReturns, Quote
from wealthfeed.utils import days_ago, utc_now

logger = logging.getLogger(__name__)


def _trading_dates(holding_series: list[CandleSeries]) -> list[str]:
    dates = ret.longest_dates(holding_series)
    if not dates:
        raise ExhaustionError("no historical data from either provider")
    return dates


CandleBatchFn = Callable[[list[str], str, str], Awaitable[list[CandleSeries]]]
QuoteBatchFn = Callable[[list[str]], Awaitable[dict[str, Quote]]]


class AnalyticsEngine:
    def __init__(
        self,
        candles_fn: CandleBatchFn,
        quotes_fn: QuoteBatchFn,
        *,
        risk_free_rate: float = 0.05,
        configured: Callable[[], bool] = lambda: True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._candles = candles_fn
        self._quotes = quotes_fn
        self.risk_free_rate = risk_free_rate
        self._configured = configured
        self._now = clock

    def _usable(self, holdings: list[Holding]) -> bool:
        return bool(holdings) and self._configured()

    async def _fetch(
        self,
        holdings: list[Holding],
        benchmark: str | None,
        days: int,
    ) -> tuple[list[CandleSeries], CandleSeries | None]:
        from_date, to_date = window(days, now=self._now())
        tickers = [h.ticker for h in holdings]
        all_tickers = tickers + [benchmark] if benchmark else tickers
        series = await self._candles(all_tickers, from_date, to_date)
        holding_series = series[: len(tickers)]
        bench_series = series[-1] if benchmark else None
        return holding_series, bench_series

    # ── Chart series ───────────────────────────────────────────────────

    async def get_portfolio_return(
        self,
        holdings: list[Holding],
        benchmark: str | None,
        range_label: str = "1Y",
    ) -> list[dict[str, Any]] | None:
        if not self._usable(holdings):
            return None
        holding_series, bench_series = await self._fetch(holdings, benchmark, range_days(range_label))
        return ret.portfolio_return_series(holdings, holding_series, bench_series)

    async def get_holdings_returns(
        self,
        holdings: list[Holding],
        range_label: str = "6M",
    ) -> list[dict[str, Any]] | None:
        if not self._usable(holdings):
            return None
        holding_series, _ = await self._fetch(holdings, None, range_days(range_label, 180))
        return ret.holdings_return_series(holdings, holding_series)

    # ── Performance summary ────────────────────────────────────────────

    async def get_performance_returns(
        self,
        holdings: list[Holding],
        benchmark: str | None,
    ) -> PerformanceReturns | None:
        """Weighted returns for the standard lookbacks plus YTD.

        Falls back to a quote-based 1D return when no candle series resolves.
        """
        if not self._usable(holdings):
            return None

        holding_series, bench_series = await self._fetch(holdings, benchmark, PERF_FETCH_DAYS)
        with_data = sum(1 for s in holding_series if s)
        logger.info(
            "[analytics] candle data for %d/%d holdings, benchmark: %s",
            with_data,
            len(holdings),
            "yes" if bench_series else "no",
        )

        try:
            dates = _trading_dates(holding_series)
        except ExhaustionError as exc:
            logger.warning("[analytics] %s, falling back to quote-based 1D returns", exc)
            return await self._quote_only_returns(holdings, benchmark)

        now = self._now()
        latest = dates[-1]
        maps = [ret.price_map(s) for s in holding_series]
        bench_map = ret.price_map(bench_series) if benchmark else None

        def for_lookback(days: int) -> tuple[float | None, float | None]:
            target = days_ago(days, now=now)
            start = next((d for d in dates if d >= target), None)
            if start is None:
                return None, None
            return ret.period_return(holdings, maps, bench_map, start, latest)

        out = PerformanceReturns()
        for label, days in PERF_DAYS.items():
            out.portfolio[label], out.benchmark[label] = for_lookback(days)

        ytd = ytd_days(now=now)
        if ytd > 0:
            out.portfolio["YTD"], out.benchmark["YTD"] = for_lookback(ytd)

        if out.portfolio["1D"] is None:
            p, b = await self._quote_day_return(holdings, benchmark)
            out.portfolio["1D"], out.benchmark["1D"] = p, b
        return out

    async def _quote_day_return(
        self,
        holdings: list[Holding],
        benchmark: str | None,
    ) -> tuple[float | None, float | None]:
        tickers = [h.ticker for h in holdings]
        if benchmark:
            tickers.append(benchmark)
        quotes = await self._quotes(tickers)
        return ret.quote_returns(holdings, quotes, benchmark)

    async def _quote_only_returns(
        self,
        holdings: list[Holding],
        benchmark: str | None,
    ) -> PerformanceReturns | None:
        portfolio, bench = await self._quote_day_return(holdings, benchmark)
        if portfolio is None:
            return None
        out = PerformanceReturns()
        for label in [*PERF_DAYS, "YTD"]:
            out.portfolio[label] = None
            out.benchmark[label] = None
        out.portfolio["1D"] = portfolio
        out.benchmark["1D"] = bench
        return out

    # ── Risk ───────────────────────────────────────────────────────────

    async def get_risk_metrics(
        self,
        holdings: list[Holding],
        benchmark: str | None,
        range_label: str = "1Y",
    ) -> dict[str, Any] | None:
        if not self._usable(holdings):
            return None
        holding_series, bench_series = await self._fetch(holdings, benchmark, range_days(range_label))

        dates = ret.longest_dates(holding_series)
        if not dates:
            return None

        index = composite_index(holdings, holding_series, dates)
        result: dict[str, Any] = {
            "portfolio": compute_metrics(index, len(dates), self.risk_free_rate),
        }
        if bench_series and len(bench_series) > 1:
            prices = [p.price for p in bench_series]
            result["benchmark"] = compute_metrics(prices, len(prices), self.risk_free_rate)
        return result
