"""Staggered batch fetching to stay under provider rate limits."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def fetch_all_staggered(
    tickers: list[str],
    fetch_fn: Callable[[str], Awaitable[list[T]]],
    delay_fn: Callable[[], float],
    *,
    clock: Callable[[], float] = time.monotonic,
) -> list[list[T]]:
    """Fetch every ticker in order, spacing request *starts* by ``delay_fn()``.

    The delay is re-read before each request so a provider switch mid-batch
    shortens the remaining gaps. A failed ticker yields an empty list and the
    batch carries on.
    """
    results: list[list[T]] = []
    last_start: float | None = None

    for i, ticker in enumerate(tickers):
        if last_start is not None:
            wait = delay_fn() - (clock() - last_start)
            if wait > 0:
                await asyncio.sleep(wait)
        last_start = clock()
        try:
            results.append(await fetch_fn(ticker))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("[throttle] candle fetch failed for %s: %s", ticker, exc)
            results.append([])

    return results


async def gather_staggered(
    tickers: list[str],
    fetch_fn: Callable[[str], Awaitable[T]],
    delay: float,
) -> dict[str, T]:
    """Launch fetches ``delay`` apart without waiting on each other.

    Used for quotes, where calls are independent and may overlap. Failed
    tickers are simply absent from the result.
    """
    out: dict[str, T] = {}

    async def _one(i: int, ticker: str) -> None:
        if i > 0:
            await asyncio.sleep(i * delay)
        try:
            out[ticker] = await fetch_fn(ticker)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("[throttle] quote fetch failed for %s: %s", ticker, exc)

    await asyncio.gather(*[_one(i, t) for i, t in enumerate(tickers)])
    return out
