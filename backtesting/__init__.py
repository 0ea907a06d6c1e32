"""
Backtesting on top of tradecore.

Replays historical OHLCV bars through the indicator battery, the aggregator
and the position state machine; computes equity and trade metrics.
"""

from backtesting.engine import BacktestEngine, BacktestResult, Observer
from backtesting.data_loader import load_csv, load_dataframe, load_series
from backtesting.metrics import Metrics, compute_metrics
from backtesting.portfolio_report import print_report

__all__ = [
    "BacktestEngine",
    "BacktestResult",
    "Observer",
    "load_csv",
    "load_dataframe",
    "load_series",
    "Metrics",
    "compute_metrics",
    "print_report",
]
