"""
Backtesting engine: replays OHLCV bars through the indicator battery and the
position state machine.

Each bar sees only the candles up to and including itself (capped at the live
candle limit), so results match what a session ticking once per closed bar
would have done. Orders fill at the bar close; stop-loss and take-profit
exits fill at their trigger prices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Protocol

import pandas as pd

from tradecore.aggregator import MacroModifiers, SignalAggregator
from tradecore.candles import CandleSeries
from tradecore.config import DEFAULT_CANDLE_LIMIT, MIN_CANDLES, AggregatorConfig, RiskConfig
from tradecore.indicators import run_battery
from tradecore.position import Position, PositionStateMachine, Side, TradeRecord
from tradecore.state import TraderState, TraderStateSnapshot

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class Observer(Protocol):
    """Post-trade hook, called after each closed trade with the balance it produced."""

    def __call__(self, trade: TradeRecord, balance: float) -> None:
        ...


@dataclass
class BacktestResult:
    """Closed trades, mark-to-market equity per bar, and the final state."""

    trades: list[TradeRecord] = field(default_factory=list)
    equity_curve: list[tuple[datetime, float]] = field(default_factory=list)
    state: TraderStateSnapshot | None = None


def _unrealized(position: Position | None, price: float) -> float:
    if position is None:
        return 0.0
    if position.side is Side.LONG:
        return (price - position.entry_price) * position.size
    return (position.entry_price - price) * position.size


class BacktestEngine:
    """
    Bar-by-bar replay of one symbol.

    warmup bars are consumed before the first decision. There is no timeout
    exit: a position only closes on stop-loss, take-profit or an opposing
    signal. A position still open after the last bar is left open in the
    result state and marked to market in the equity curve.
    """

    def __init__(
        self,
        risk: RiskConfig | None = None,
        aggregator: AggregatorConfig | None = None,
        warmup: int = MIN_CANDLES,
        *,
        candle_limit: int = DEFAULT_CANDLE_LIMIT,
        strategies: Iterable[str] | None = None,
        modifiers: MacroModifiers | None = None,
        observers: Sequence[Observer] = (),
    ) -> None:
        self.machine = PositionStateMachine(risk or RiskConfig())
        self.aggregator = SignalAggregator(aggregator)
        self.warmup = warmup
        self.candle_limit = candle_limit
        self.strategies = None if strategies is None else tuple(strategies)
        self.modifiers = modifiers
        self.observers: list[Observer] = list(observers)

    def run(
        self,
        data: pd.DataFrame,
        symbol: str | None = None,
        initial_balance: float = 10_000.0,
        timeframe: str = "backtest",
    ) -> BacktestResult:
        """
        Run the replay over an OHLCV DataFrame with DatetimeIndex.

        symbol defaults to data.attrs['symbol'] (set by the loaders) or 'UNKNOWN'.
        """
        sym = symbol or data.attrs.get("symbol", "UNKNOWN")
        series = CandleSeries.from_dataframe(data)
        state = TraderState(start_balance=initial_balance)
        trades: list[TradeRecord] = []
        equity: list[tuple[datetime, float]] = []

        for i in range(self.warmup, len(series)):
            when = series.time[i]
            price = float(series.close[i])
            state.roll_daily(when.date())
            window = series.window(i + 1, self.candle_limit)
            signals = run_battery(window, self.strategies)
            combined = self.aggregator.combine(signals, self.modifiers)

            position = state.position(sym)
            if position is not None:
                decision = self.machine.exit_decision(position, price, combined, price)
                if decision is not None:
                    record = self.machine.close(position, decision, when)
                    state.close_position(record)
                    trades.append(record)
                    for observer in self.observers:
                        observer(record, state.current_balance)
            else:
                entry = self.machine.entry_decision(combined, signals, state.history(), self.modifiers)
                if entry is not None:
                    size = self.machine.size_position(price, state.current_balance, state.start_balance)
                    if size > 0:
                        state.open_position(
                            self.machine.build_position(sym, entry, price, size, when, timeframe)
                        )

            equity.append((when, state.current_balance + _unrealized(state.position(sym), price)))

        logger.info("Backtest %s: %d bars, %d closed trades", sym, max(0, len(series) - self.warmup), len(trades))
        return BacktestResult(trades=trades, equity_curve=equity, state=state.snapshot())
