"""Weighted return calculations over aligned daily close series.

All values are percent returns rounded to two decimals. Holdings whose
prices are missing are dropped and the surviving weights rescaled to 100%
rather than being counted as a flat return.
"""

from __future__ import annotations

from typing import Any

from wealthfeed.marketdata.models import CandleSeries, Holding, Quote


def price_map(series: CandleSeries) -> dict[str, float]:
    return {p.date: p.price for p in series}


def longest_dates(series_list: list[CandleSeries]) -> list[str]:
    """Trading dates of the longest series (first one wins ties)."""
    best: CandleSeries = []
    for s in series_list:
        if len(s) > len(best):
            best = s
    return [p.date for p in best]


def _pct(end: float, start: float) -> float:
    return (end / start - 1.0) * 100.0


def rescale(weighted_sum: float, valid_weight: float) -> float | None:
    """Scale a weighted return up to 100% of the weights that resolved."""
    if valid_weight <= 0:
        return None
    if valid_weight < 100:
        weighted_sum *= 100.0 / valid_weight
    return round(weighted_sum, 2)


def portfolio_return_series(
    holdings: list[Holding],
    holding_series: list[CandleSeries],
    bench_series: CandleSeries | None,
) -> list[dict[str, Any]]:
    """Cumulative weighted % return since the first date, per trading date.

    Holdings with no series are left out and the remaining weights rescaled.
    """
    dates = longest_dates(holding_series)
    if not dates:
        return []

    resolved = [
        (h, price_map(s), s[0].price)
        for h, s in zip(holdings, holding_series)
        if s and s[0].price > 0
    ]
    valid_weight = sum(h.weight_percent for h, _, _ in resolved)
    bench_map = price_map(bench_series or [])
    bench_start = bench_series[0].price if bench_series else 1.0

    points: list[dict[str, Any]] = []
    for day in dates:
        total = 0.0
        for h, m, start in resolved:
            total += _pct(m.get(day, start), start) * (h.weight_percent / 100.0)

        portfolio = rescale(total, valid_weight)
        point: dict[str, Any] = {"date": day, "portfolio": portfolio if portfolio is not None else 0.0}
        if bench_series is not None and bench_start > 0:
            point["benchmark"] = round(_pct(bench_map.get(day, bench_start), bench_start), 2)
        points.append(point)
    return points


def holdings_return_series(
    holdings: list[Holding],
    holding_series: list[CandleSeries],
) -> list[dict[str, Any]] | None:
    """Per-holding cumulative % return keyed by ticker, per trading date."""
    dates = longest_dates(holding_series)
    if not dates:
        return None

    maps = [price_map(s) for s in holding_series]
    starts = [s[0].price if s else None for s in holding_series]

    rows: list[dict[str, Any]] = []
    for day in dates:
        row: dict[str, Any] = {"date": day}
        for h, m, start in zip(holdings, maps, starts):
            if start and start > 0:
                row[h.ticker] = round(_pct(m.get(day, start), start), 2)
            else:
                row[h.ticker] = 0.0
        rows.append(row)
    return rows


def period_return(
    holdings: list[Holding],
    holding_maps: list[dict[str, float]],
    bench_map: dict[str, float] | None,
    start_date: str,
    end_date: str,
) -> tuple[float | None, float | None]:
    """``(portfolio, benchmark)`` return between two trading dates."""
    weighted = 0.0
    valid_weight = 0.0
    for h, m in zip(holdings, holding_maps):
        start = m.get(start_date)
        end = m.get(end_date)
        if start and end and start > 0:
            weighted += _pct(end, start) * (h.weight_percent / 100.0)
            valid_weight += h.weight_percent

    bench: float | None = None
    if bench_map is not None:
        b_start = bench_map.get(start_date)
        b_end = bench_map.get(end_date)
        if b_start and b_end and b_start > 0:
            bench = round(_pct(b_end, b_start), 2)

    return rescale(weighted, valid_weight), bench


def quote_returns(
    holdings: list[Holding],
    quotes: dict[str, Quote],
    benchmark: str | None,
) -> tuple[float | None, float | None]:
    """Single-day ``(portfolio, benchmark)`` return from price vs previous close."""
    weighted = 0.0
    valid_weight = 0.0
    for h in holdings:
        q = quotes.get(h.ticker)
        if q is not None and q.prev_close and q.prev_close > 0 and q.price:
            weighted += _pct(q.price, q.prev_close) * (h.weight_percent / 100.0)
            valid_weight += h.weight_percent

    bench: float | None = None
    bq = quotes.get(benchmark) if benchmark else None
    if bq is not None and bq.prev_close and bq.prev_close > 0 and bq.price:
        bench = round(_pct(bq.price, bq.prev_close), 2)

    return rescale(weighted, valid_weight), bench
