"""Trade stream: one shared WebSocket, a growing subscription set, observers.

Connection lifecycle::

    CLOSED -> CONNECTING -> OPEN -> CLOSED (reconnect after delay) -> ...

Symbols are never unsubscribed on the wire once added; unsubscribing only
removes the caller's callback.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any, Awaitable, Callable

import websockets

from wealthfeed.marketdata.errors import MalformedMessageError
from wealthfeed.marketdata.symbols import reverse_map

logger = logging.getLogger(__name__)

TradeCallback = Callable[[str, float], None]
Connector = Callable[[str], Awaitable[Any]]


class ConnectionState(str, enum.Enum):
    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


def parse_trades(raw: str | bytes) -> list[tuple[str, float]]:
    """Return ``(symbol, price)`` pairs from a trade frame; other types yield nothing."""
    try:
        msg = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedMessageError(str(exc)) from exc
    if not isinstance(msg, dict):
        raise MalformedMessageError(f"unexpected frame: {type(msg).__name__}")
    if msg.get("type") != "trade" or not msg.get("data"):
        return []

    trades: list[tuple[str, float]] = []
    for trade in msg["data"]:
        try:
            trades.append((str(trade["s"]), float(trade["p"])))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedMessageError(f"bad trade entry: {trade!r}") from exc
    return trades


class TradeStream:
    """Subscription manager for the primary provider's trade feed."""

    def __init__(
        self,
        url: str | Callable[[], str],
        *,
        connect: Connector | None = None,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._url = url
        self._connect = connect or websockets.connect
        self.reconnect_delay = reconnect_delay

        self.state = ConnectionState.CLOSED
        self.subscribed: set[str] = set()
        self._listeners: list[TradeCallback] = []
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._reconnect: asyncio.Task | None = None
        self._stopped = False

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "subscribed": sorted(self.subscribed),
            "listeners": len(self._listeners),
        }

    # ── Connection state machine ───────────────────────────────────────

    def ensure_connection(self) -> None:
        """Open the socket unless it is already open or connecting."""
        if self.state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            return
        self._stopped = False
        self.state = ConnectionState.CONNECTING
        self._reader = asyncio.get_running_loop().create_task(self._run(), name="trade-stream")

    async def _run(self) -> None:
        url = self._url() if callable(self._url) else self._url
        try:
            ws = await self._connect(url)
        except asyncio.CancelledError:
            self.state = ConnectionState.CLOSED
            raise
        except Exception as exc:
            logger.warning("[stream] connect failed: %s", exc)
            self._on_close()
            return

        self._ws = ws
        self.state = ConnectionState.OPEN
        try:
            await self._on_open()
            async for raw in ws:
                self._on_message(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.info("[stream] connection dropped: %s", exc)
        finally:
            self._ws = None
            self._on_close()

    async def _on_open(self) -> None:
        logger.info("[stream] connected, replaying %d subscriptions", len(self.subscribed))
        for symbol in sorted(self.subscribed):
            await self._send_subscribe(symbol)

    def _on_close(self) -> None:
        self.state = ConnectionState.CLOSED
        if self._stopped or not self.subscribed:
            return
        if self._reconnect is not None and not self._reconnect.done():
            return
        self._reconnect = asyncio.get_running_loop().create_task(
            self._reconnect_later(), name="trade-stream-reconnect"
        )

    async def _reconnect_later(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        if not self._stopped:
            self.ensure_connection()

    def _on_message(self, raw: str | bytes) -> None:
        try:
            trades = parse_trades(raw)
        except MalformedMessageError as exc:
            logger.debug("[stream] ignoring malformed frame: %s", exc)
            return
        for symbol, price in trades:
            for cb in list(self._listeners):
                try:
                    cb(symbol, price)
                except Exception:
                    logger.exception("[stream] trade listener failed for %s", symbol)

    async def _send_subscribe(self, symbol: str) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(json.dumps({"type": "subscribe", "symbol": symbol}))
        except Exception as exc:
            # The close handler replays the full set on reconnect.
            logger.info("[stream] subscribe %s not sent: %s", symbol, exc)

    # ── Public API ─────────────────────────────────────────────────────

    async def subscribe(self, tickers: list[str], on_trade: TradeCallback) -> Callable[[], None]:
        """Stream trades for ``tickers``; returns a callable that drops ``on_trade``.

        Trades arrive under provider symbols and are fanned back out to every
        original ticker that normalized to them.
        """
        originals_by_symbol = reverse_map(tickers)

        def wrapped(symbol: str, price: float) -> None:
            originals = originals_by_symbol.get(symbol)
            if originals:
                for orig in originals:
                    on_trade(orig, price)
            else:
                on_trade(symbol, price)

        self._listeners.append(wrapped)
        self.ensure_connection()

        for symbol in originals_by_symbol:
            if symbol in self.subscribed:
                continue
            self.subscribed.add(symbol)
            if self.state is ConnectionState.OPEN:
                await self._send_subscribe(symbol)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(wrapped)
            except ValueError:
                pass

        return unsubscribe

    async def close(self) -> None:
        self._stopped = True
        for task in (self._reconnect, self._reader):
            if task is not None and not task.done():
                task.cancel()
        ws = self._ws
        self._ws = None
        if ws is not None:
            try:
                await ws.close()
            except Exception as exc:
                logger.debug("[stream] close failed: %s", exc)
        for task in (self._reconnect, self._reader):
            if task is not None:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reconnect = None
        self._reader = None
        self.state = ConnectionState.CLOSED
