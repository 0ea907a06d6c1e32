"""
Tests for execution layer: PaperExchangeAdapter and order types.
"""

import asyncio
from datetime import datetime, timedelta

import pandas as pd
import pytest

from tradecore.candles import Candle
from tradecore.errors import DataUnavailable, OrderRejected, PriceUnavailable
from tradecore.execution import ExchangeAdapter, PaperExchangeAdapter
from tradecore.execution.types import Order, OrderSide, OrderType

T0 = datetime(2024, 1, 1)


def _candles(closes):
    return [Candle(T0 + timedelta(hours=i), c, c + 1, c - 1, c, 100.0) for i, c in enumerate(closes)]


def test_paper_adapter_is_exchange_adapter():
    assert isinstance(PaperExchangeAdapter(), ExchangeAdapter)


def test_fetch_candles_returns_most_recent_limit():
    broker = PaperExchangeAdapter(candles={"BTC": _candles([1.0, 2.0, 3.0, 4.0])})
    candles = asyncio.run(broker.fetch_candles("BTC", "1h", 2))
    assert [c.close for c in candles] == [3.0, 4.0]


def test_fetch_candles_prefers_timeframe_key():
    broker = PaperExchangeAdapter(candles={"BTC": _candles([1.0]), ("BTC", "4h"): _candles([9.0, 10.0])})
    assert [c.close for c in asyncio.run(broker.fetch_candles("BTC", "4h", 10))] == [9.0, 10.0]
    assert [c.close for c in asyncio.run(broker.fetch_candles("BTC", "1h", 10))] == [1.0]


def test_fetch_candles_missing_or_empty():
    broker = PaperExchangeAdapter(candles={"ETH": []})
    with pytest.raises(DataUnavailable):
        asyncio.run(broker.fetch_candles("BTC", "1h", 10))
    with pytest.raises(DataUnavailable):
        asyncio.run(broker.fetch_candles("ETH", "1h", 10))


def test_fetch_candles_from_dataframe():
    idx = pd.date_range("2024-01-01", periods=3, freq="h")
    df = pd.DataFrame(
        {"open": [1.0, 2.0, 3.0], "high": [2.0, 3.0, 4.0], "low": [0.5, 1.5, 2.5], "close": [1.5, 2.5, 3.5]},
        index=idx,
    )
    broker = PaperExchangeAdapter()
    broker.set_candles("SOL", df)
    candles = asyncio.run(broker.fetch_candles("SOL", "1h", 10))
    assert [c.close for c in candles] == [1.5, 2.5, 3.5]
    assert candles[0].time == datetime(2024, 1, 1)
    assert candles[0].volume is None


def test_candle_source_callable():
    calls = []

    def source(symbol, timeframe, limit):
        calls.append((symbol, timeframe, limit))
        return _candles([5.0, 6.0])

    broker = PaperExchangeAdapter(candle_source=source)
    candles = asyncio.run(broker.fetch_candles("BTC", "15m", 200))
    assert calls == [("BTC", "15m", 200)]
    assert candles[-1].close == 6.0


def test_current_price_sources():
    broker = PaperExchangeAdapter(candles={"BTC": _candles([100.0, 101.0])}, latest_prices={"ETH": 2000.0})
    assert asyncio.run(broker.get_current_price("ETH")) == 2000.0
    assert asyncio.run(broker.get_current_price("BTC")) == 101.0
    broker.set_price("BTC", 105.0)
    assert asyncio.run(broker.get_current_price("BTC")) == 105.0
    with pytest.raises(PriceUnavailable):
        asyncio.run(broker.get_current_price("DOGE"))


def test_place_order_fills_at_current_price():
    clock = lambda: T0  # noqa: E731
    broker = PaperExchangeAdapter(latest_prices={"BTC": 100.0}, clock=clock)
    first = asyncio.run(broker.place_order("BTC", OrderSide.BUY, OrderType.MARKET, 0.5))
    broker.set_price("BTC", 110.0)
    second = asyncio.run(broker.place_order("BTC", OrderSide.SELL, OrderType.MARKET, 0.5))
    assert first.order_id == "paper-000001"
    assert second.order_id == "paper-000002"
    assert first.price == 100.0
    assert second.price == 110.0
    assert first.timestamp == T0
    log = broker.get_order_log()
    assert [o for o, _ in log] == [
        Order("BTC", OrderSide.BUY, 0.5, OrderType.MARKET),
        Order("BTC", OrderSide.SELL, 0.5, OrderType.MARKET),
    ]


def test_place_order_rejections():
    broker = PaperExchangeAdapter(latest_prices={"BTC": 100.0})
    with pytest.raises(OrderRejected):
        asyncio.run(broker.place_order("BTC", OrderSide.BUY, OrderType.MARKET, 0.0))
    with pytest.raises(OrderRejected):
        asyncio.run(broker.place_order("ETH", OrderSide.BUY, OrderType.MARKET, 1.0))
    assert broker.get_order_log() == []


def test_balance_is_fixed_unless_set():
    broker = PaperExchangeAdapter(initial_balance=2_500.0, latest_prices={"BTC": 100.0})
    asyncio.run(broker.place_order("BTC", OrderSide.BUY, OrderType.MARKET, 1.0))
    assert asyncio.run(broker.get_balance()) == 2_500.0
    broker.set_balance(3_000.0)
    assert asyncio.run(broker.get_balance()) == 3_000.0
