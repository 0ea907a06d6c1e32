"""
Portfolio report: print a performance and trade summary for a BacktestResult.
"""

from __future__ import annotations

from backtesting.engine import BacktestResult
from backtesting.metrics import Metrics, compute_metrics


def print_report(
    result: BacktestResult,
    initial_value: float,
    *,
    periods_per_year: int = 365,
    risk_free_rate: float = 0.0,
) -> Metrics:
    """Compute metrics for result, print them, and return them."""
    m = compute_metrics(
        initial_value,
        result.equity_curve,
        result.trades,
        periods_per_year=periods_per_year,
        risk_free_rate=risk_free_rate,
    )
    print("--- Backtest Performance ---")
    print(f"Start balance:   {m.initial_value:,.2f}")
    print(f"Final equity:    {m.final_value:,.2f}")
    print(f"Total PnL:       {m.total_pnl:,.2f} ({m.total_return_pct:.2f}%)")
    print(f"CAGR:            {m.cagr:.2f}%")
    print(f"Sharpe ratio:    {m.sharpe_ratio:.2f}")
    print(f"Max drawdown:    {m.max_drawdown:,.2f} ({m.max_drawdown_pct:.2f}%)")
    print(f"Closed trades:   {m.num_trades}")
    print(f"Win rate:        {m.win_rate:.1f}%")
    print(f"Profit factor:   {m.profit_factor:.2f}")
    print(f"Avg trade:       {m.avg_trade_pct:.2f}%")
    by_reason: dict[str, int] = {}
    for trade in result.trades:
        by_reason[trade.exit_reason.value] = by_reason.get(trade.exit_reason.value, 0) + 1
    for reason, count in sorted(by_reason.items()):
        print(f"  {reason:<14} {count}")
    print("----------------------------")
    return m
