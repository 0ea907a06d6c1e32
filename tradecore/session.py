"""
Trader session: orchestrates evaluation and position management across symbols.

Flow per tick: daily rollover -> pause checks -> macro modifiers -> one cycle
per symbol, run concurrently. A cycle either manages the open position
(price exits, then opposing-signal exit) or looks for an entry across the
configured timeframes. Exchange calls are the only suspension points and are
each bounded by the call timeout; state transitions are synchronous, so a
cancelled or failed cycle leaves TraderState untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from tradecore.aggregator import MacroModifiers, SignalAggregator
from tradecore.candles import CandleSeries
from tradecore.config import TraderConfig
from tradecore.errors import (
    DataUnavailable,
    ExternalServiceError,
    OrderRejected,
    PriceUnavailable,
    TradeCoreError,
)
from tradecore.execution.exchange import ExchangeAdapter
from tradecore.execution.types import OrderSide, OrderType
from tradecore.indicators import run_battery
from tradecore.notify import (
    CycleError,
    DailyReport,
    Event,
    LoggingNotifier,
    Notifier,
    TradeClosed,
    TradeOpened,
    TradingPaused,
)
from tradecore.position import Position, PositionStateMachine, Side, TradeRecord
from tradecore.providers import MacroProvider, SignalProvider
from tradecore.signal import CombinedSignal, NamedSignalSet
from tradecore.state import TraderState, TraderStateSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TickResult:
    """Outcome of one tick. skipped names the reason when no symbol was evaluated."""

    new_trades: list[Position] = field(default_factory=list)
    closed_trades: list[TradeRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: str | None = None


@dataclass(frozen=True)
class Analysis:
    series: CandleSeries
    signals: NamedSignalSet
    combined: CombinedSignal


class TraderSession:
    """
    Owns the TraderState and drives it through injected collaborators.

    Lifecycle: initialize() once, tick(config) repeatedly, reset_state() to
    start over. Cycles of the same symbol never overlap (one asyncio.Lock per
    symbol); different symbols run concurrently and share the state only
    through its locked methods.
    """

    def __init__(
        self,
        exchange: ExchangeAdapter,
        notifier: Notifier | None = None,
        macro_provider: MacroProvider | None = None,
        signal_providers: Sequence[SignalProvider] = (),
        clock: Callable[[], datetime] | None = None,
        *,
        config: TraderConfig | None = None,
        strategies: Iterable[str] | None = None,
    ) -> None:
        self.exchange = exchange
        self.notifier = notifier or LoggingNotifier()
        self.macro_provider = macro_provider
        self.signal_providers = list(signal_providers)
        self.clock = clock or datetime.now
        self.config = config or TraderConfig()
        self.strategies = None if strategies is None else tuple(strategies)
        self.state = TraderState(today=self.clock().date())
        self._symbol_locks: dict[str, asyncio.Lock] = {}
        self._paused = False

    # --- Lifecycle ---

    async def initialize(self, start_balance: float | None = None) -> None:
        """Reset state with start_balance, read from the exchange when not given."""
        if start_balance is None:
            start_balance = await self._call(
                self.exchange.get_balance(), DataUnavailable, "balance query", self.config.call_timeout
            )
        self.state.reset(start_balance, today=self.clock().date())
        self._paused = False
        logger.info("Session initialized with balance %.2f", start_balance)

    def get_state(self) -> TraderStateSnapshot:
        return self.state.snapshot()

    def reset_state(self, start_balance: float | None = None) -> None:
        self.state.reset(start_balance, today=self.clock().date())
        self._paused = False

    # --- Evaluation ---

    async def evaluate(self, symbol: str, timeframe: str) -> CombinedSignal:
        """Combined signal for symbol on timeframe. Raises ExternalServiceError kinds on I/O failure."""
        modifiers = await self._macro(self.config)
        analysis = await self._analyse(symbol, timeframe, self.config, modifiers)
        return analysis.combined

    async def _analyse(
        self, symbol: str, timeframe: str, config: TraderConfig, modifiers: MacroModifiers | None
    ) -> Analysis:
        candles = await self._call(
            self.exchange.fetch_candles(symbol, timeframe, config.candle_limit),
            DataUnavailable,
            f"candle fetch {symbol} {timeframe}",
            config.call_timeout,
        )
        if len(candles) < config.min_candles:
            raise DataUnavailable(f"only {len(candles)} candles for {timeframe}, need {config.min_candles}")
        series = CandleSeries.from_candles(list(candles))
        signals = run_battery(series, self.strategies)
        for provider in self.signal_providers:
            extra = await self._call(
                provider.signals(symbol, series), DataUnavailable, f"signal provider {symbol}", config.call_timeout
            )
            signals.update(extra)
        combined = SignalAggregator(config.aggregator).combine(signals, modifiers)
        logger.debug("%s %s -> %s %.1f", symbol, timeframe, combined.direction.value, combined.strength)
        return Analysis(series, signals, combined)

    async def _macro(self, config: TraderConfig) -> MacroModifiers | None:
        if not config.use_macro_data or self.macro_provider is None:
            return None
        try:
            return await self._call(
                self.macro_provider.get_modifiers(), DataUnavailable, "macro data", config.call_timeout
            )
        except ExternalServiceError as exc:
            logger.warning("Macro data unavailable, combining without modifiers: %s", exc)
            return None

    # --- Tick ---

    async def tick(self, config: TraderConfig | None = None) -> TickResult:
        """
        One trading cycle over all configured symbols.

        Any collaborator failure aborts only the affected symbol and is returned
        as a "<symbol>: <message>" entry. InvariantViolation and errors raised
        outside collaborator calls propagate after the other symbols have finished.
        """
        config = config or self.config
        self.config = config
        result = TickResult()
        if not config.trading_enabled:
            result.skipped = "trading disabled"
            return result

        now = self.clock()
        finished = self.state.roll_daily(now.date())
        if finished is not None:
            await self._notify(DailyReport.from_stats(finished))

        if config.in_quiet_hours(now.hour):
            if not self._paused:
                self._paused = True
                await self._notify(TradingPaused(f"quiet hours {config.quiet_hours[0]}-{config.quiet_hours[1]}"))
            result.skipped = "quiet hours"
            return result
        self._paused = False

        modifiers = await self._macro(config)
        outcomes = await asyncio.gather(
            *(self._run_symbol(symbol, config, modifiers) for symbol in config.symbols),
            return_exceptions=True,
        )

        fatal: BaseException | None = None
        for symbol, outcome in zip(config.symbols, outcomes):
            if isinstance(outcome, ExternalServiceError):
                logger.warning("Cycle for %s aborted: %s", symbol, outcome)
                result.errors.append(f"{symbol}: {outcome}")
                await self._notify(CycleError(symbol, str(outcome)))
            elif isinstance(outcome, BaseException):
                if fatal is None:
                    fatal = outcome
            else:
                opened, closed = outcome
                if opened is not None:
                    result.new_trades.append(opened)
                if closed is not None:
                    result.closed_trades.append(closed)
        if fatal is not None:
            raise fatal
        return result

    async def _run_symbol(
        self, symbol: str, config: TraderConfig, modifiers: MacroModifiers | None
    ) -> tuple[Position | None, TradeRecord | None]:
        lock = self._symbol_locks.setdefault(symbol, asyncio.Lock())
        async with lock:
            position = self.state.position(symbol)
            if position is not None:
                return None, await self._manage_position(position, config, modifiers)
            return await self._try_entry(symbol, config, modifiers), None

    async def _try_entry(
        self, symbol: str, config: TraderConfig, modifiers: MacroModifiers | None
    ) -> Position | None:
        machine = PositionStateMachine(config.risk)
        for timeframe in config.timeframes:
            analysis = await self._analyse(symbol, timeframe, config, modifiers)
            decision = machine.entry_decision(analysis.combined, analysis.signals, self.state.history(), modifiers)
            if decision is None:
                continue

            price = await self._call(
                self.exchange.get_current_price(symbol), PriceUnavailable, f"price {symbol}", config.call_timeout
            )
            size = machine.size_position(price, self.state.current_balance, self.state.start_balance)
            if size <= 0:
                logger.info("No entry for %s: position size rounds to zero at %.4f", symbol, price)
                return None
            order_side = OrderSide.BUY if decision.side is Side.LONG else OrderSide.SELL
            ack = await self._call(
                self.exchange.place_order(symbol, order_side, OrderType.MARKET, size),
                OrderRejected,
                f"entry order {symbol}",
                config.call_timeout,
            )
            fill = ack.price if ack.price is not None else price
            position = machine.build_position(symbol, decision, fill, size, self.clock(), timeframe, ack.order_id)
            self.state.open_position(position)
            logger.info(
                "Entered %s %s on %s: strength %.1f, probability %.1f, %s",
                decision.side.value, symbol, timeframe, decision.strength,
                decision.profit_probability, decision.strategy,
            )
            await self._notify(TradeOpened(position))
            return position
        return None

    async def _manage_position(
        self, position: Position, config: TraderConfig, modifiers: MacroModifiers | None
    ) -> TradeRecord | None:
        symbol = position.symbol
        machine = PositionStateMachine(config.risk)
        price = await self._call(
            self.exchange.get_current_price(symbol), PriceUnavailable, f"price {symbol}", config.call_timeout
        )
        decision = machine.price_exit(position, price)
        if decision is None:
            analysis = await self._analyse(symbol, position.timeframe, config, modifiers)
            decision = machine.signal_exit(position, analysis.combined, float(analysis.series.close[-1]))
        if decision is None:
            return None

        order_side = OrderSide.SELL if position.side is Side.LONG else OrderSide.BUY
        await self._call(
            self.exchange.place_order(symbol, order_side, OrderType.MARKET, position.size),
            OrderRejected,
            f"exit order {symbol}",
            config.call_timeout,
        )
        record = machine.close(position, decision, self.clock())
        self.state.close_position(record)
        logger.info(
            "Exited %s %s (%s) at %.4f: P/L %.4f (%.2f%%)",
            position.side.value, symbol, decision.reason.value, decision.price,
            record.profit_loss, record.profit_loss_percent,
        )
        await self._notify(TradeClosed(record))
        return record

    # --- Collaborator calls ---

    @staticmethod
    async def _call(
        awaitable: Awaitable[T], error: type[ExternalServiceError], what: str, timeout: float
    ) -> T:
        """
        Await an external call, mapping its failures to the collaborator's error kind.

        Timeouts and any exception outside the TradeCoreError hierarchy become
        `error`; TradeCoreError subclasses raised by the collaborator pass through.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise error(f"{what} timed out after {timeout:g}s") from exc
        except TradeCoreError:
            raise
        except Exception as exc:
            logger.debug("%s raised %s", what, type(exc).__name__, exc_info=True)
            raise error(f"{what} failed: {exc}") from exc

    async def _notify(self, event: Event) -> None:
        try:
            await asyncio.wait_for(self.notifier.notify(event), self.config.call_timeout)
        except Exception:
            logger.warning("Notifier failed for %s", type(event).__name__, exc_info=True)
