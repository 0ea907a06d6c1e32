"""
Execution layer: exchange abstraction and the paper exchange.

ExchangeAdapter interface; in-memory paper adapter; order request and acknowledgement types.
"""

from tradecore.execution.exchange import ExchangeAdapter
from tradecore.execution.paper import PaperExchangeAdapter
from tradecore.execution.types import Order, OrderAck, OrderSide, OrderType

__all__ = [
    "ExchangeAdapter",
    "PaperExchangeAdapter",
    "Order",
    "OrderAck",
    "OrderSide",
    "OrderType",
]
