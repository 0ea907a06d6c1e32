"""
Execution-layer types: order side and type, order request, exchange acknowledgement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class OrderSide(Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    MARKET = "market"
    LIMIT = "limit"


@dataclass(frozen=True)
class Order:
    """An order request as sent to an exchange adapter."""

    symbol: str
    side: OrderSide
    quantity: float
    order_type: OrderType = OrderType.MARKET


@dataclass(frozen=True)
class OrderAck:
    """Exchange acknowledgement of an accepted order. Immutable."""

    order_id: str
    symbol: str
    side: OrderSide
    quantity: float
    price: float | None = None
    timestamp: datetime | None = None
