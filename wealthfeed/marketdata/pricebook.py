"""Live price book: REST quotes for new tickers, then streamed trade deltas."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable

from wealthfeed.marketdata.models import Quote

logger = logging.getLogger(__name__)


class PriceBook:
    """Per-ticker quotes as the UI sees them.

    ``version`` increases on every applied trade so readers can detect a
    change without comparing the whole book.
    """

    def __init__(
        self,
        quote_fn: Callable[[str], Awaitable[Quote]],
        *,
        stagger: float = 0.12,
    ) -> None:
        self._quote_fn = quote_fn
        self._stagger = stagger
        self.prices: dict[str, Quote] = {}
        self.version = 0
        self._loaded: set[str] = set()

    def get(self, ticker: str) -> Quote | None:
        return self.prices.get(ticker)

    async def load_tickers(self, tickers: list[str], *, cancelled: asyncio.Event | None = None) -> None:
        """Fetch quotes for tickers not loaded yet, ``stagger`` seconds apart.

        Failures are skipped so the caller can fall back to placeholder data.
        Results are not written once ``cancelled`` is set.
        """
        new = [t for t in dict.fromkeys(tickers) if t not in self._loaded]
        if not new:
            return

        async def _one(i: int, ticker: str) -> None:
            await asyncio.sleep(i * self._stagger)
            try:
                quote = await self._quote_fn(ticker)
            except Exception as exc:
                logger.debug("[pricebook] quote unavailable for %s: %s", ticker, exc)
                return
            if cancelled is not None and cancelled.is_set():
                return
            self.prices[ticker] = quote
            self._loaded.add(ticker)

        await asyncio.gather(*[_one(i, t) for i, t in enumerate(new)])

    def apply_trade(self, ticker: str, price: float) -> None:
        """Overwrite the last price and recompute change % against prev close."""
        existing = self.prices.get(ticker)
        if existing is None:
            return
        prev_close = existing.prev_close if existing.prev_close is not None else existing.price
        if prev_close and prev_close > 0:
            change_percent = (price - prev_close) / prev_close * 100.0
        else:
            change_percent = existing.change_percent
        self.prices[ticker] = replace(existing, price=price, change_percent=change_percent)
        self.version += 1
