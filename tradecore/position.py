"""
Position state machine: NoPosition -> Open -> Closed, per symbol.

Decides entries (risk-level strength floor, profit-probability gate, sizing)
and exits (stop-loss, then take-profit, then an opposing signal). It does not
hold state itself; the open position and history live in TraderState.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from tradecore.aggregator import MacroModifiers
from tradecore.config import SIZE_DECIMALS, RiskConfig, RiskLevel
from tradecore.signal import Direction, Signal

logger = logging.getLogger(__name__)

COMBINED_LABEL = "Combined"


class Side(Enum):
    LONG = "long"
    SHORT = "short"

    @classmethod
    def from_direction(cls, direction: Direction) -> "Side":
        if direction is Direction.BUY:
            return cls.LONG
        if direction is Direction.SELL:
            return cls.SHORT
        raise ValueError("neutral signal has no side")

    @property
    def entry_direction(self) -> Direction:
        return Direction.BUY if self is Side.LONG else Direction.SELL


class TradeStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


class ExitReason(Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    SIGNAL = "signal"


@dataclass(frozen=True)
class Position:
    """An open trade. At most one per symbol."""

    symbol: str
    side: Side
    entry_price: float
    entry_time: datetime
    size: float
    strategy_label: str
    timeframe: str
    stop_loss_price: float | None = None
    take_profit_price: float | None = None
    signal_strength: float = 0.0
    order_id: str | None = None

    def stop_loss_breached(self, price: float) -> bool:
        if self.stop_loss_price is None:
            return False
        if self.side is Side.LONG:
            return price < self.stop_loss_price
        return price > self.stop_loss_price

    def take_profit_breached(self, price: float) -> bool:
        if self.take_profit_price is None:
            return False
        if self.side is Side.LONG:
            return price > self.take_profit_price
        return price < self.take_profit_price

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["side"] = self.side.value
        d["entry_time"] = self.entry_time.isoformat()
        return d


@dataclass(frozen=True)
class TradeRecord:
    """A closed trade. Immutable; appended to history exactly once."""

    symbol: str
    side: Side
    entry_price: float
    exit_price: float
    size: float
    entry_time: datetime
    exit_time: datetime
    profit_loss: float
    profit_loss_percent: float
    strategy: str
    timeframe: str
    exit_reason: ExitReason
    signal_strength: float = 0.0
    status: TradeStatus = TradeStatus.CLOSED

    @property
    def is_win(self) -> bool:
        return self.profit_loss > 0

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["side"] = self.side.value
        d["status"] = self.status.value
        d["exit_reason"] = self.exit_reason.value
        d["entry_time"] = self.entry_time.isoformat()
        d["exit_time"] = self.exit_time.isoformat()
        return d


@dataclass(frozen=True)
class EntryDecision:
    side: Side
    strength: float
    strategy: str
    risk_level: RiskLevel
    profit_probability: float


@dataclass(frozen=True)
class ExitDecision:
    reason: ExitReason
    price: float


def profit_loss(side: Side, entry: float, exit_: float, size: float) -> tuple[float, float]:
    """Directional P/L and P/L percent of entry. Long 100 -> 110 is exactly +10.0%."""
    if side is Side.LONG:
        move = exit_ - entry
    else:
        move = entry - exit_
    percent = move * 100 / entry if entry else 0.0
    return move * size, percent


def best_strategy(signals: Mapping[str, Signal], direction: Direction) -> str | None:
    """Name of the strongest contributing signal in direction; the first one wins ties."""
    best_name, best_strength = None, 0.0
    for name, signal in signals.items():
        if signal.direction is direction and signal.strength > best_strength:
            best_name, best_strength = name, signal.strength
    return best_name


def win_rate(history: Iterable[TradeRecord], strategy: str) -> float | None:
    """Percentage of winning closed trades for strategy, or None without history."""
    trades = [t for t in history if t.strategy == strategy]
    if not trades:
        return None
    return sum(1 for t in trades if t.is_win) / len(trades) * 100


class PositionStateMachine:
    """
    Entry and exit rules for a single symbol's position.

    Stateless apart from its RiskConfig; callers pass in the history and
    balances so decisions stay pure and testable.
    """

    def __init__(self, risk: RiskConfig | None = None) -> None:
        self.risk = risk or RiskConfig()

    # --- Entry ---

    def risk_level(self, modifiers: MacroModifiers | None) -> RiskLevel:
        if modifiers is None:
            return RiskLevel.MEDIUM
        return modifiers.effective_risk_level()

    def entry_decision(
        self,
        combined: Signal,
        signals: Mapping[str, Signal],
        history: Iterable[TradeRecord] = (),
        modifiers: MacroModifiers | None = None,
    ) -> EntryDecision | None:
        """
        Entry gates, in order: a directional signal; strength at least the
        minimum for the effective risk level; profit probability at least the
        minimum unless strength reaches the override.
        """
        if combined.is_neutral:
            return None
        level = self.risk_level(modifiers)
        minimum = self.risk.min_entry_strength[level]
        if combined.strength < minimum:
            logger.debug("Entry rejected: strength %.1f < %.1f (%s risk)", combined.strength, minimum, level.value)
            return None

        strategy = best_strategy(signals, combined.direction)
        # Only missing history falls back to strength; a 0% win rate is still a rate.
        rate = win_rate(history, strategy) if strategy is not None else None
        probability = combined.strength if rate is None else rate
        if probability < self.risk.min_profit_probability and combined.strength < self.risk.strength_override:
            logger.debug("Entry rejected: profit probability %.1f for %s", probability, strategy)
            return None
        return EntryDecision(
            side=Side.from_direction(combined.direction),
            strength=combined.strength,
            strategy=strategy or COMBINED_LABEL,
            risk_level=level,
            profit_probability=probability,
        )

    def size_position(self, price: float, current_balance: float, start_balance: float) -> float:
        """
        Quantity to trade at price.

        With accumulated profit, risk a share of the surplus scaled by
        risk_per_trade; otherwise risk a fixed small fraction of the start
        balance. Rounded to SIZE_DECIMALS; zero means do not enter.
        """
        if price <= 0:
            return 0.0
        surplus = current_balance - start_balance
        if surplus > 0:
            at_risk = surplus * self.risk.profit_share_at_risk * self.risk.risk_per_trade / 100
        else:
            at_risk = start_balance * self.risk.minimal_risk_fraction
        size = round(at_risk / price, SIZE_DECIMALS)
        return max(0.0, size)

    def build_position(
        self,
        symbol: str,
        decision: EntryDecision,
        price: float,
        size: float,
        entry_time: datetime,
        timeframe: str,
        order_id: str | None = None,
    ) -> Position:
        """Open position with stop and take-profit prices fixed at entry."""
        stop = take = None
        sl_pct = self.risk.stop_loss_percent / 100
        tp_pct = self.risk.take_profit_percent / 100
        if decision.side is Side.LONG:
            if self.risk.use_stop_loss:
                stop = price * (1 - sl_pct)
            if self.risk.use_take_profit:
                take = price * (1 + tp_pct)
        else:
            if self.risk.use_stop_loss:
                stop = price * (1 + sl_pct)
            if self.risk.use_take_profit:
                take = price * (1 - tp_pct)
        return Position(
            symbol=symbol,
            side=decision.side,
            entry_price=price,
            entry_time=entry_time,
            size=size,
            strategy_label=decision.strategy,
            timeframe=timeframe,
            stop_loss_price=stop,
            take_profit_price=take,
            signal_strength=decision.strength,
            order_id=order_id,
        )

    # --- Exit ---

    def price_exit(self, position: Position, price: float) -> ExitDecision | None:
        """Stop-loss first, then take-profit; exits at the trigger price."""
        if self.risk.use_stop_loss and position.stop_loss_breached(price):
            return ExitDecision(ExitReason.STOP_LOSS, position.stop_loss_price)
        if self.risk.use_take_profit and position.take_profit_breached(price):
            return ExitDecision(ExitReason.TAKE_PROFIT, position.take_profit_price)
        return None

    def signal_exit(self, position: Position, combined: Signal, close: float) -> ExitDecision | None:
        """An opposing combined signal of sufficient strength exits at the current close."""
        if combined.direction is position.side.entry_direction.opposite() and (
            combined.strength >= self.risk.exit_signal_min_strength
        ):
            return ExitDecision(ExitReason.SIGNAL, close)
        return None

    def exit_decision(
        self,
        position: Position,
        price: float,
        combined: Signal | None = None,
        close: float | None = None,
    ) -> ExitDecision | None:
        """At most one exit, by priority: stop-loss, take-profit, opposing signal."""
        decision = self.price_exit(position, price)
        if decision is None and combined is not None:
            decision = self.signal_exit(position, combined, price if close is None else close)
        return decision

    def close(self, position: Position, decision: ExitDecision, exit_time: datetime) -> TradeRecord:
        pl, pl_pct = profit_loss(position.side, position.entry_price, decision.price, position.size)
        return TradeRecord(
            symbol=position.symbol,
            side=position.side,
            entry_price=position.entry_price,
            exit_price=decision.price,
            size=position.size,
            entry_time=position.entry_time,
            exit_time=exit_time,
            profit_loss=pl,
            profit_loss_percent=pl_pct,
            strategy=position.strategy_label,
            timeframe=position.timeframe,
            exit_reason=decision.reason,
            signal_strength=position.signal_strength,
        )
