"""
Paper exchange adapter: deterministic in-memory exchange for simulation and tests.

No network. Candles come from an injected mapping (candle lists or OHLCV
DataFrames) or a candle_source callable; prices from latest_prices or the last
candle close. Orders fill at the current price and get sequential ids.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Union

import pandas as pd

from tradecore.candles import Candle, candles_from_dataframe
from tradecore.errors import DataUnavailable, OrderRejected, PriceUnavailable
from tradecore.execution.exchange import ExchangeAdapter
from tradecore.execution.types import Order, OrderAck, OrderSide, OrderType

logger = logging.getLogger(__name__)

CandleData = Union[Sequence[Candle], pd.DataFrame]
CandleSource = Callable[[str, str, int], CandleData]


def _to_candles(data: CandleData) -> list[Candle]:
    if isinstance(data, pd.DataFrame):
        return candles_from_dataframe(data)
    return list(data)


class PaperExchangeAdapter(ExchangeAdapter):
    """
    Paper exchange. Balance is fixed at construction (the session books P/L
    itself); every accepted order is kept in the order log.

    candles: symbol -> candles, or (symbol, timeframe) -> candles for
    per-timeframe data; the timeframe-specific key wins.
    """

    def __init__(
        self,
        initial_balance: float = 10_000.0,
        *,
        candles: Mapping[object, CandleData] | None = None,
        candle_source: CandleSource | None = None,
        latest_prices: Mapping[str, float] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._balance = initial_balance
        self._candles: dict[object, list[Candle]] = {k: _to_candles(v) for k, v in (candles or {}).items()}
        self._candle_source = candle_source
        self._prices: dict[str, float] = dict(latest_prices or {})
        self._clock = clock or datetime.now
        self._order_log: list[tuple[Order, OrderAck]] = []
        self._next_id = 1

    # --- Simulation controls ---

    def set_candles(self, symbol: str, data: CandleData, timeframe: str | None = None) -> None:
        key = symbol if timeframe is None else (symbol, timeframe)
        self._candles[key] = _to_candles(data)

    def set_price(self, symbol: str, price: float) -> None:
        self._prices[symbol] = price

    def set_balance(self, balance: float) -> None:
        self._balance = balance

    def get_order_log(self) -> list[tuple[Order, OrderAck]]:
        """All accepted orders with their acknowledgements."""
        return list(self._order_log)

    # --- ExchangeAdapter ---

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> list[Candle]:
        if self._candle_source is not None:
            data = _to_candles(self._candle_source(symbol, timeframe, limit))
        elif (symbol, timeframe) in self._candles:
            data = self._candles[(symbol, timeframe)]
        elif symbol in self._candles:
            data = self._candles[symbol]
        else:
            raise DataUnavailable(f"no candles for {symbol} {timeframe}")
        if not data:
            raise DataUnavailable(f"empty candle series for {symbol} {timeframe}")
        return data[-limit:] if limit > 0 else list(data)

    async def get_current_price(self, symbol: str) -> float:
        price = self._prices.get(symbol)
        if price is None:
            data = self._candles.get(symbol)
            if data:
                price = data[-1].close
        if price is None or price <= 0:
            raise PriceUnavailable(f"no price for {symbol}")
        return float(price)

    async def place_order(
        self, symbol: str, side: OrderSide, order_type: OrderType, quantity: float
    ) -> OrderAck:
        order = Order(symbol=symbol, side=side, quantity=quantity, order_type=order_type)
        if quantity <= 0:
            raise OrderRejected(f"invalid quantity {quantity} for {symbol}")
        try:
            price = await self.get_current_price(symbol)
        except PriceUnavailable as exc:
            raise OrderRejected(f"cannot fill {symbol}: {exc}") from exc
        ack = OrderAck(
            order_id=f"paper-{self._next_id:06d}",
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=price,
            timestamp=self._clock(),
        )
        self._next_id += 1
        self._order_log.append((order, ack))
        logger.debug("Paper fill %s %s %.4f @ %.4f", side.value, symbol, quantity, price)
        return ack

    async def get_balance(self) -> float:
        return self._balance
