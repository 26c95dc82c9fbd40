"""Typed shapes flowing through the market-data layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from wealthfeed.marketdata.errors import MarketDataError

T = TypeVar("T")


@dataclass
class Quote:
    price: float
    change: float | None
    change_percent: float | None
    prev_close: float | None
    high: float | None
    low: float | None
    open: float | None


@dataclass(frozen=True)
class CandlePoint:
    date: str
    price: float


CandleSeries = list[CandlePoint]


@dataclass(frozen=True)
class SearchResult:
    ticker: str
    name: str
    type: str
    exchange: str
    last_price: float | None = None


@dataclass(frozen=True)
class Holding:
    """Read-only portfolio constituent supplied by the caller."""

    ticker: str
    weight_percent: float
    last_price: float | None = None
    entry_price: float | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Holding:
        return cls(
            ticker=str(raw["ticker"]),
            weight_percent=float(raw.get("weight_percent") or 0.0),
            last_price=raw.get("last_price"),
            entry_price=raw.get("entry_price"),
        )


@dataclass
class Result(Generic[T]):
    """Either a value or the provider error that prevented it."""

    value: T | None = None
    error: MarketDataError | None = None

    @classmethod
    def ok(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def err(cls, error: MarketDataError) -> Result[T]:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


CandleResult = Result[CandleSeries]


@dataclass
class RiskMetrics:
    volatility: float = 0.0
    max_drawdown: float = 0.0
    sharpe: float = 0.0
    sortino: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {
            "volatility": self.volatility,
            "max_drawdown": self.max_drawdown,
            "sharpe": self.sharpe,
            "sortino": self.sortino,
        }


@dataclass
class PerformanceReturns:
    portfolio: dict[str, float | None] = field(default_factory=dict)
    benchmark: dict[str, float | None] = field(default_factory=dict)
