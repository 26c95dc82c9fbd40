from __future__ import annotations

import asyncio
import json

import pytest

from wealthfeed.marketdata.errors import MalformedMessageError
from wealthfeed.marketdata.streaming import ConnectionState, TradeStream, parse_trades


class FakeSocket:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self._queue: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def feed(self, raw: str) -> None:
        self._queue.put_nowait(raw)

    def drop(self) -> None:
        self._queue.put_nowait(None)

    async def close(self) -> None:
        self.drop()

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeConnector:
    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.urls: list[str] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        ws = FakeSocket()
        self.sockets.append(ws)
        return ws


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def _trade(*pairs: tuple[str, float]) -> str:
    return json.dumps({"type": "trade", "data": [{"s": s, "p": p, "t": 0, "v": 1} for s, p in pairs]})


def test_parse_trades() -> None:
    assert parse_trades(_trade(("SPY", 501.2))) == [("SPY", 501.2)]
    assert parse_trades(json.dumps({"type": "ping"})) == []
    with pytest.raises(MalformedMessageError):
        parse_trades("not json")
    with pytest.raises(MalformedMessageError):
        parse_trades(json.dumps({"type": "trade", "data": [{"s": "SPY"}]}))


@pytest.mark.asyncio
async def test_subscribe_opens_one_socket_and_replays_on_open() -> None:
    connect = FakeConnector()
    stream = TradeStream(lambda: "wss://ws.test?token=k", connect=connect)
    try:
        await stream.subscribe(["AAPL", "SPX"], lambda s, p: None)
        await stream.subscribe(["MSFT"], lambda s, p: None)
        await _wait_for(lambda: stream.state is ConnectionState.OPEN and len(connect.sockets[0].sent) == 3)

        assert connect.urls == ["wss://ws.test?token=k"]
        assert connect.sockets[0].sent == [
            {"type": "subscribe", "symbol": "AAPL"},
            {"type": "subscribe", "symbol": "MSFT"},
            {"type": "subscribe", "symbol": "SPY"},
        ]
    finally:
        await stream.close()
    assert stream.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_subscribe_is_idempotent_on_the_wire() -> None:
    connect = FakeConnector()
    stream = TradeStream("wss://ws.test", connect=connect)
    try:
        await stream.subscribe(["AAPL"], lambda s, p: None)
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)
        await stream.subscribe(["AAPL", "NVDA"], lambda s, p: None)
        symbols = [m["symbol"] for m in connect.sockets[0].sent]
        assert symbols == ["AAPL", "NVDA"]
        assert stream.listener_count == 2
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_trades_fan_out_to_every_original_ticker() -> None:
    connect = FakeConnector()
    stream = TradeStream("wss://ws.test", connect=connect)
    got: list[tuple[str, float]] = []
    try:
        await stream.subscribe(["SPX", "^GSPC", "QQQ"], lambda s, p: got.append((s, p)))
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)

        ws = connect.sockets[0]
        ws.feed("{oops")
        ws.feed(_trade(("SPY", 500.0), ("QQQ", 430.5)))
        ws.feed(_trade(("TSLA", 250.0)))
        await _wait_for(lambda: len(got) == 4)

        assert got == [("SPX", 500.0), ("^GSPC", 500.0), ("QQQ", 430.5), ("TSLA", 250.0)]
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_unsubscribe_removes_callback_but_keeps_symbol() -> None:
    connect = FakeConnector()
    stream = TradeStream("wss://ws.test", connect=connect)
    first: list[float] = []
    second: list[float] = []
    try:
        unsub = await stream.subscribe(["AAPL"], lambda s, p: first.append(p))
        await stream.subscribe(["AAPL"], lambda s, p: second.append(p))
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)

        unsub()
        unsub()
        connect.sockets[0].feed(_trade(("AAPL", 190.0)))
        await _wait_for(lambda: len(second) == 1)

        assert first == []
        assert stream.subscribed == {"AAPL"}
        assert not any(m["type"] == "unsubscribe" for m in connect.sockets[0].sent)
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others() -> None:
    connect = FakeConnector()
    stream = TradeStream("wss://ws.test", connect=connect)
    got: list[float] = []

    def broken(symbol: str, price: float) -> None:
        raise RuntimeError("listener bug")

    try:
        await stream.subscribe(["AAPL"], broken)
        await stream.subscribe(["AAPL"], lambda s, p: got.append(p))
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)
        connect.sockets[0].feed(_trade(("AAPL", 191.0)))
        await _wait_for(lambda: got == [191.0])
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_reconnects_and_replays_after_drop() -> None:
    connect = FakeConnector()
    stream = TradeStream("wss://ws.test", connect=connect, reconnect_delay=0.01)
    try:
        await stream.subscribe(["AAPL", "DJI"], lambda s, p: None)
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)

        connect.sockets[0].drop()
        await _wait_for(lambda: len(connect.sockets) == 2 and stream.state is ConnectionState.OPEN)
        await _wait_for(lambda: len(connect.sockets[1].sent) == 2)

        assert [m["symbol"] for m in connect.sockets[1].sent] == ["AAPL", "DIA"]
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_no_reconnect_without_subscriptions() -> None:
    connect = FakeConnector()
    stream = TradeStream("wss://ws.test", connect=connect, reconnect_delay=0.01)
    try:
        stream.ensure_connection()
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)
        connect.sockets[0].drop()
        await _wait_for(lambda: stream.state is ConnectionState.CLOSED)
        await asyncio.sleep(0.05)
        assert len(connect.sockets) == 1
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_connect_failure_schedules_retry() -> None:
    attempts: list[str] = []
    connect = FakeConnector()

    async def flaky(url: str) -> FakeSocket:
        attempts.append(url)
        if len(attempts) == 1:
            raise OSError("refused")
        return await connect(url)

    stream = TradeStream("wss://ws.test", connect=flaky, reconnect_delay=0.01)
    try:
        await stream.subscribe(["AAPL"], lambda s, p: None)
        await _wait_for(lambda: stream.state is ConnectionState.OPEN)
        assert len(attempts) == 2
        await _wait_for(lambda: connect.sockets[0].sent == [{"type": "subscribe", "symbol": "AAPL"}])
    finally:
        await stream.close()
