"""
TraderState: open positions, trade history, balances and daily statistics.

The only mutable shared resource of a session. Every mutation happens inside
one RLock so a position transition (remove position, append history, update
balance and daily stats) is never partially visible.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import asdict, dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Mapping

from tradecore.errors import InvariantViolation
from tradecore.position import Position, TradeRecord


@dataclass
class DailyStats:
    """Counters for one calendar date. opening_balance is the balance when the day began."""

    date: date | None = None
    trades: int = 0
    wins: int = 0
    losses: int = 0
    profit: float = 0.0
    best_trade: float | None = None
    worst_trade: float | None = None
    opening_balance: float = 0.0

    def record(self, trade: TradeRecord) -> None:
        self.trades += 1
        if trade.is_win:
            self.wins += 1
        else:
            self.losses += 1
        self.profit += trade.profit_loss
        pl = trade.profit_loss
        self.best_trade = pl if self.best_trade is None else max(self.best_trade, pl)
        self.worst_trade = pl if self.worst_trade is None else min(self.worst_trade, pl)

    @property
    def win_rate(self) -> float:
        return self.wins / self.trades * 100 if self.trades else 0.0

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["date"] = self.date.isoformat() if self.date is not None else None
        return d


@dataclass(frozen=True)
class TraderStateSnapshot:
    """Read-only copy of TraderState at one instant."""

    open_positions: Mapping[str, Position]
    trade_history: tuple[TradeRecord, ...]
    current_balance: float
    start_balance: float
    daily_stats: DailyStats = field(default_factory=DailyStats)

    def to_dict(self) -> dict[str, Any]:
        """Plain structured data for persistence; new fields may be added, none removed."""
        return {
            "open_positions": {s: p.to_dict() for s, p in self.open_positions.items()},
            "trade_history": [t.to_dict() for t in self.trade_history],
            "current_balance": self.current_balance,
            "start_balance": self.start_balance,
            "daily_stats": self.daily_stats.to_dict(),
        }


class TraderState:
    """
    Session-owned trading state.

    At most one open position per symbol; opening a second raises
    InvariantViolation. History is append-only.
    """

    def __init__(self, start_balance: float = 0.0, today: date | None = None) -> None:
        self._lock = threading.RLock()
        self._positions: dict[str, Position] = {}
        self._history: list[TradeRecord] = []
        self._start_balance = start_balance
        self._balance = start_balance
        self._daily = DailyStats(date=today, opening_balance=start_balance)

    def reset(self, start_balance: float | None = None, today: date | None = None) -> None:
        with self._lock:
            if start_balance is not None:
                self._start_balance = start_balance
            self._balance = self._start_balance
            self._positions.clear()
            self._history.clear()
            self._daily = DailyStats(date=today, opening_balance=self._balance)

    # --- Reads ---

    @property
    def current_balance(self) -> float:
        with self._lock:
            return self._balance

    @property
    def start_balance(self) -> float:
        with self._lock:
            return self._start_balance

    def position(self, symbol: str) -> Position | None:
        with self._lock:
            return self._positions.get(symbol)

    def history(self) -> tuple[TradeRecord, ...]:
        with self._lock:
            return tuple(self._history)

    def snapshot(self) -> TraderStateSnapshot:
        with self._lock:
            return TraderStateSnapshot(
                open_positions=MappingProxyType(dict(self._positions)),
                trade_history=tuple(self._history),
                current_balance=self._balance,
                start_balance=self._start_balance,
                daily_stats=copy.copy(self._daily),
            )

    # --- Transitions ---

    def open_position(self, position: Position) -> None:
        with self._lock:
            if position.symbol in self._positions:
                raise InvariantViolation(f"{position.symbol} already has an open position")
            self._positions[position.symbol] = position

    def close_position(self, record: TradeRecord) -> None:
        """Remove the symbol's position, archive the record and book its P/L in one step."""
        with self._lock:
            if record.symbol not in self._positions:
                raise InvariantViolation(f"{record.symbol} has no open position to close")
            del self._positions[record.symbol]
            self._history.append(record)
            self._balance += record.profit_loss
            self._daily.record(record)

    def roll_daily(self, today: date) -> DailyStats | None:
        """
        Start a new day's stats if the date changed.

        Returns the finished day's stats exactly once per transition, or None
        (no change, or the very first date observed).
        """
        with self._lock:
            previous = self._daily
            if previous.date == today:
                return None
            self._daily = DailyStats(date=today, opening_balance=self._balance)
            if previous.date is None:
                return None
            return previous
