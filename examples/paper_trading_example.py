"""
Paper trading demo: drive a TraderSession against the in-memory paper exchange.

Shows: PaperExchangeAdapter with a moving candle feed, an extra signal provider,
static macro modifiers, the logging notifier, and state snapshots between ticks.
Same session code runs against a real ExchangeAdapter implementation.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

import numpy as np

from tradecore import TraderConfig, TraderSession
from tradecore.aggregator import MacroModifiers
from tradecore.candles import Candle, CandleSeries
from tradecore.config import RiskLevel
from tradecore.execution import PaperExchangeAdapter
from tradecore.providers import StaticMacroProvider
from tradecore.signal import Direction, NamedSignalSet, Signal

SYMBOLS = ("BTC", "ETH")
BARS = 260
TICKS = 60


class ReplayFeed:
    """Serves a growing prefix of pre-generated candles; advance() reveals one more bar."""

    def __init__(self, symbols: tuple[str, ...], seed: int = 7) -> None:
        rng = np.random.default_rng(seed)
        start = datetime(2024, 1, 1)
        self.candles: dict[str, list[Candle]] = {}
        for k, symbol in enumerate(symbols):
            base = 100.0 * (k + 1)
            close = base + np.cumsum(rng.normal(0, base * 0.004, BARS))
            bars = []
            prev = close[0]
            for i, c in enumerate(close):
                wick = abs(rng.normal(0, base * 0.002))
                bars.append(
                    Candle(
                        time=start + timedelta(minutes=15 * i),
                        open=float(prev),
                        high=float(max(prev, c) + wick),
                        low=float(min(prev, c) - wick),
                        close=float(c),
                        volume=float(rng.uniform(500, 3000)),
                    )
                )
                prev = c
            self.candles[symbol] = bars
        self.cursor = BARS - TICKS

    def __call__(self, symbol: str, timeframe: str, limit: int) -> list[Candle]:
        return self.candles[symbol][: self.cursor][-limit:]

    def advance(self) -> None:
        self.cursor = min(BARS, self.cursor + 1)

    def now(self) -> datetime:
        return self.candles[SYMBOLS[0]][self.cursor - 1].time

    def price(self, symbol: str) -> float:
        return self.candles[symbol][self.cursor - 1].close


class MomentumProvider:
    """Extra signal provider: 5-bar momentum, outside the weight table so it gets the default weight."""

    async def signals(self, symbol: str, series: CandleSeries) -> NamedSignalSet:
        change = (series.close[-1] - series.close[-6]) / series.close[-6] * 100
        direction = Direction.BUY if change > 0 else Direction.SELL
        return {"Momentum 5": Signal.of(direction, abs(change) * 40)}


async def run() -> None:
    feed = ReplayFeed(SYMBOLS)
    exchange = PaperExchangeAdapter(10_000.0, candle_source=feed, clock=feed.now)
    session = TraderSession(
        exchange,
        macro_provider=StaticMacroProvider(MacroModifiers(fear_index=30.0, risk_level=RiskLevel.LOW)),
        signal_providers=[MomentumProvider()],
        clock=feed.now,
    )
    config = TraderConfig(symbols=SYMBOLS, timeframes=("15m",), use_macro_data=True)
    await session.initialize()

    for _ in range(TICKS):
        for symbol in SYMBOLS:
            exchange.set_price(symbol, feed.price(symbol))
        result = await session.tick(config)
        for error in result.errors:
            print(f"  [error] {error}")
        feed.advance()

    state = session.get_state()
    print("\n--- Paper session summary ---")
    print(f"Balance: {state.start_balance:,.2f} -> {state.current_balance:,.2f}")
    print(f"Closed trades: {len(state.trade_history)}")
    for trade in state.trade_history:
        print(
            f"  {trade.symbol} {trade.side.value} {trade.strategy}: {trade.exit_reason.value} "
            f"{trade.profit_loss:+.4f} ({trade.profit_loss_percent:+.2f}%)"
        )
    for symbol, position in state.open_positions.items():
        print(f"  open {symbol} {position.side.value} {position.size} @ {position.entry_price:.2f}")
    print(f"Orders sent: {len(exchange.get_order_log())}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run())


if __name__ == "__main__":
    main()
