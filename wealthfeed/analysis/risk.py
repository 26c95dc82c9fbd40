"""Risk metrics over a daily price index.

Volatility and drawdown are reported in percent; Sharpe and Sortino use a
geometric annualization of the whole-window return.
"""

from __future__ import annotations

import math

import numpy as np

from wealthfeed.analysis.returns import price_map
from wealthfeed.marketdata.models import CandleSeries, Holding, RiskMetrics

TRADING_DAYS = 252
# Reported when there is no downside deviation but excess return is positive.
SORTINO_CAP = 99.0


def composite_index(
    holdings: list[Holding],
    holding_series: list[CandleSeries],
    dates: list[str],
) -> list[float]:
    """Weight-blended index; each holding normalized to its own start price."""
    maps = [price_map(s) for s in holding_series]
    starts = [s[0].price if s else None for s in holding_series]

    index: list[float] = []
    for day in dates:
        value = 0.0
        for h, m, start in zip(holdings, maps, starts):
            if start and start > 0:
                value += (h.weight_percent / 100.0) * (m.get(day, start) / start)
        index.append(value or 1.0)
    return index


def max_drawdown(prices: list[float]) -> float:
    """Largest peak-to-trough decline as a negative fraction (0 if none)."""
    if len(prices) < 2:
        return 0.0
    arr = np.asarray(prices, dtype=float)
    peaks = np.maximum.accumulate(arr)
    drawdowns = (arr - peaks) / peaks
    return float(min(drawdowns.min(), 0.0))


def daily_returns(prices: list[float]) -> np.ndarray:
    arr = np.asarray(prices, dtype=float)
    prev = arr[:-1]
    mask = prev > 0
    return arr[1:][mask] / prev[mask] - 1.0


def compute_metrics(prices: list[float], trading_days: int, risk_free_rate: float = 0.05) -> RiskMetrics:
    if len(prices) < 2:
        return RiskMetrics()

    returns = daily_returns(prices)
    if returns.size == 0:
        return RiskMetrics()

    vol = math.sqrt(float(np.var(returns)) * TRADING_DAYS) * 100.0
    worst = max_drawdown(prices)

    total_return = prices[-1] / prices[0] - 1.0
    ann_return = (1.0 + total_return) ** (TRADING_DAYS / max(trading_days, 1)) - 1.0
    excess = ann_return - risk_free_rate
    sharpe = excess / (vol / 100.0) if vol > 0 else 0.0

    daily_rf = (1.0 + risk_free_rate) ** (1.0 / TRADING_DAYS) - 1.0
    downside = returns[returns < daily_rf] - daily_rf
    down_var = float(np.mean(downside ** 2)) if downside.size else 0.0
    down_vol = math.sqrt(down_var * TRADING_DAYS)
    if down_vol > 0:
        sortino = excess / down_vol
    else:
        sortino = SORTINO_CAP if excess > 0 else 0.0

    return RiskMetrics(
        volatility=round(vol, 2),
        max_drawdown=round(worst * 100.0, 2),
        sharpe=round(sharpe, 2),
        sortino=round(sortino, 2),
    )
