"""
Notification events and the Notifier interface.

Delivery (chat, email) is an external concern. The session sends events
fire-and-forget; a failing notifier is logged and never blocks trading.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Protocol, Union, runtime_checkable

from tradecore.position import Position, TradeRecord
from tradecore.state import DailyStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeOpened:
    position: Position


@dataclass(frozen=True)
class TradeClosed:
    trade: TradeRecord


@dataclass(frozen=True)
class DailyReport:
    """Summary of a finished trading day."""

    date: date
    trades: int
    wins: int
    losses: int
    win_rate: float
    profit: float
    profit_percent: float
    best_trade: float | None
    worst_trade: float | None

    @classmethod
    def from_stats(cls, stats: DailyStats) -> "DailyReport":
        """profit_percent is relative to the balance the day opened with."""
        opening = stats.opening_balance
        return cls(
            date=stats.date,
            trades=stats.trades,
            wins=stats.wins,
            losses=stats.losses,
            win_rate=stats.win_rate,
            profit=stats.profit,
            profit_percent=stats.profit / opening * 100 if opening else 0.0,
            best_trade=stats.best_trade,
            worst_trade=stats.worst_trade,
        )


@dataclass(frozen=True)
class TradingPaused:
    reason: str


@dataclass(frozen=True)
class CycleError:
    symbol: str
    message: str


Event = Union[TradeOpened, TradeClosed, DailyReport, TradingPaused, CycleError]


@runtime_checkable
class Notifier(Protocol):
    async def notify(self, event: Event) -> None:
        ...


class LoggingNotifier:
    """Writes every event to the log. Default when no notifier is injected."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def notify(self, event: Event) -> None:
        if isinstance(event, TradeOpened):
            p = event.position
            self._log.info(
                "Opened %s %s size=%.4f @ %.4f (%s, %s, strength %.1f)",
                p.side.value, p.symbol, p.size, p.entry_price, p.strategy_label, p.timeframe, p.signal_strength,
            )
        elif isinstance(event, TradeClosed):
            t = event.trade
            self._log.info(
                "Closed %s %s @ %.4f: P/L %.4f (%.2f%%) [%s]",
                t.side.value, t.symbol, t.exit_price, t.profit_loss, t.profit_loss_percent, t.exit_reason.value,
            )
        elif isinstance(event, DailyReport):
            self._log.info(
                "Daily report %s: %d trades, win rate %.1f%%, profit %.4f (%.2f%%)",
                event.date, event.trades, event.win_rate, event.profit, event.profit_percent,
            )
        elif isinstance(event, TradingPaused):
            self._log.info("Trading paused: %s", event.reason)
        elif isinstance(event, CycleError):
            self._log.warning("Cycle error for %s: %s", event.symbol, event.message)
