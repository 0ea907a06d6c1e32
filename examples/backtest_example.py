"""
Backtest demo: replay synthetic OHLCV bars through the full indicator battery.

Demonstrates: build/load data -> BacktestEngine -> observers -> metrics report.
Pass a CSV path as the first argument to replay your own data instead.
"""

import logging
import sys

import numpy as np
import pandas as pd

from backtesting import BacktestEngine, load_csv, print_report
from tradecore.config import RiskConfig
from tradecore.position import TradeRecord


def synthetic_ohlcv(n_bars: int = 500, seed: int = 42) -> pd.DataFrame:
    """Trending random walk with intrabar noise, hourly bars."""
    rng = np.random.default_rng(seed)
    drift = np.sin(np.linspace(0, 6 * np.pi, n_bars)) * 0.4
    close = 100 + np.cumsum(drift + rng.normal(0, 0.8, n_bars))
    open_ = np.concatenate([[close[0]], close[:-1]])
    spread = rng.uniform(0.1, 0.9, n_bars)
    df = pd.DataFrame(
        {
            "open": open_,
            "high": np.maximum(open_, close) + spread,
            "low": np.minimum(open_, close) - spread,
            "close": close,
            "volume": rng.uniform(800, 2500, n_bars),
        },
        index=pd.date_range("2024-01-01", periods=n_bars, freq="h"),
    )
    df.index.name = "datetime"
    df.attrs["symbol"] = "SYNTH"
    return df


def print_trade(trade: TradeRecord, balance: float) -> None:
    """Observer: one line per closed trade."""
    print(
        f"  {trade.exit_time:%Y-%m-%d %H:%M} {trade.side.value:<5} {trade.strategy:<22} "
        f"{trade.exit_reason.value:<11} P/L {trade.profit_loss:+.4f} ({trade.profit_loss_percent:+.2f}%) "
        f"balance {balance:,.2f}"
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if len(sys.argv) > 1:
        data = load_csv(sys.argv[1], symbol="CSV")
    else:
        data = synthetic_ohlcv()

    initial_balance = 10_000.0
    engine = BacktestEngine(
        risk=RiskConfig(stop_loss_percent=1.5, take_profit_percent=3.0),
        observers=[print_trade],
    )
    result = engine.run(data, initial_balance=initial_balance, timeframe="1h")

    # Hourly bars: annualize over 24 * 365 periods
    print_report(result, initial_balance, periods_per_year=24 * 365)


if __name__ == "__main__":
    main()
