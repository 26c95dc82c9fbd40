"""One-way provider failover for the historical candle path.

The first capability denial (HTTP 403) from the primary candle endpoint
switches every later candle request to the secondary provider for the rest
of the process. Quotes and streaming always stay on the primary.
"""

from __future__ import annotations

import enum
import logging
from typing import Awaitable, Callable

from wealthfeed.marketdata.errors import CapabilityError
from wealthfeed.marketdata.models import CandleResult, CandleSeries

logger = logging.getLogger(__name__)

PrimaryFetch = Callable[[str, str, str], Awaitable[CandleResult]]
SecondaryFetch = Callable[[str, str, str], Awaitable[CandleSeries]]
CandleFetch = Callable[[str, str, str], Awaitable[CandleSeries]]


class CandleSource(str, enum.Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class ProviderState:
    """Injectable, monotonic candle-source flag."""

    def __init__(self) -> None:
        self._source = CandleSource.PRIMARY

    @property
    def source(self) -> CandleSource:
        return self._source

    @property
    def is_secondary(self) -> bool:
        return self._source is CandleSource.SECONDARY

    def switch_to_secondary(self) -> bool:
        """Flip to the secondary provider; True only for the first flip."""
        if self._source is CandleSource.SECONDARY:
            return False
        self._source = CandleSource.SECONDARY
        return True


def with_failover(
    primary_fn: PrimaryFetch,
    secondary_fn: SecondaryFetch,
    state: ProviderState,
) -> CandleFetch:
    """Combine the two candle fetchers behind a single logical call."""

    async def fetch(ticker: str, from_date: str, to_date: str) -> CandleSeries:
        if state.is_secondary:
            return await secondary_fn(ticker, from_date, to_date)

        result = await primary_fn(ticker, from_date, to_date)
        if result.is_ok:
            return result.value or []

        if isinstance(result.error, CapabilityError):
            if state.switch_to_secondary():
                logger.info("[failover] primary candles returned 403, switching to secondary provider")
            return await secondary_fn(ticker, from_date, to_date)

        raise result.error  # type: ignore[misc]

    return fetch


class FailoverController:
    """The only route to "candles for this ticker" used by the rest of the code."""

    def __init__(
        self,
        primary_fn: PrimaryFetch,
        secondary_fn: SecondaryFetch,
        *,
        state: ProviderState | None = None,
        primary_delay: float = 0.2,
        secondary_delay: float = 0.05,
    ) -> None:
        self.state = state or ProviderState()
        self._primary_delay = primary_delay
        self._secondary_delay = secondary_delay
        self._fetch = with_failover(primary_fn, secondary_fn, self.state)

    @property
    def source(self) -> CandleSource:
        return self.state.source

    def stagger_delay(self) -> float:
        """Inter-request spacing appropriate for the active provider."""
        return self._secondary_delay if self.state.is_secondary else self._primary_delay

    async def get_candles(self, ticker: str, from_date: str, to_date: str) -> CandleSeries:
        return await self._fetch(ticker, from_date, to_date)
