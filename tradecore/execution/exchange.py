"""
Exchange abstraction layer.

ExchangeAdapter ABC: fetch_candles, get_current_price, place_order, get_balance.
All methods are coroutines; they are the only suspension points of a trading
cycle. Real exchange transports implement this interface; PaperExchangeAdapter
implements it in memory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from tradecore.candles import Candle
from tradecore.execution.types import OrderAck, OrderSide, OrderType


class ExchangeAdapter(ABC):
    """
    Abstract exchange adapter. Same interface for paper and real trading.
    Failures are reported with the tradecore.errors kinds named below.
    """

    @abstractmethod
    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> Sequence[Candle]:
        """
        Return up to limit most recent candles, ascending by time.
        Raises DataUnavailable when the call fails.
        """
        ...

    @abstractmethod
    async def get_current_price(self, symbol: str) -> float:
        """Latest traded price. Raises PriceUnavailable."""
        ...

    @abstractmethod
    async def place_order(
        self, symbol: str, side: OrderSide, order_type: OrderType, quantity: float
    ) -> OrderAck:
        """Submit an order. Raises OrderRejected if the exchange refuses it."""
        ...

    @abstractmethod
    async def get_balance(self) -> float:
        """Account balance in quote currency."""
        ...
