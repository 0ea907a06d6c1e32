"""
Backtest metrics: equity statistics (PnL, Sharpe, drawdown, CAGR) and trade
statistics (count, win rate, profit factor, average trade).

Annualization assumes 365 periods per year; pass periods_per_year for other bar sizes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import numpy as np

from tradecore.position import TradeRecord


@dataclass
class Metrics:
    """Performance summary of one backtest run."""

    initial_value: float
    final_value: float
    total_pnl: float
    total_return_pct: float
    cagr: float
    sharpe_ratio: float
    max_drawdown: float
    max_drawdown_pct: float
    num_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    avg_trade_pct: float = 0.0


def trade_statistics(trades: Sequence[TradeRecord]) -> tuple[int, float, float, float]:
    """
    (count, win rate %, profit factor, mean P/L %).

    Profit factor is gross profit over gross loss; inf when there are wins
    and no losses, 0 without trades.
    """
    if not trades:
        return 0, 0.0, 0.0, 0.0
    pl = np.array([t.profit_loss for t in trades], dtype=float)
    pct = np.array([t.profit_loss_percent for t in trades], dtype=float)
    gross_profit = float(pl[pl > 0].sum())
    gross_loss = float(-pl[pl < 0].sum())
    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    else:
        profit_factor = float("inf") if gross_profit > 0 else 0.0
    win_rate = float((pl > 0).mean() * 100.0)
    return len(trades), win_rate, profit_factor, float(pct.mean())


def compute_metrics(
    initial_value: float,
    equity_curve: Sequence[tuple[datetime, float]],
    trades: Sequence[TradeRecord] = (),
    *,
    periods_per_year: int = 365,
    risk_free_rate: float = 0.0,
) -> Metrics:
    """
    Compute performance metrics from the starting balance, the per-bar equity
    curve and the closed trades.

    Sharpe uses per-bar returns annualized with periods_per_year; CAGR uses the
    calendar span of the curve.
    """
    num_trades, win_rate, profit_factor, avg_trade_pct = trade_statistics(trades)
    if not equity_curve:
        return Metrics(
            initial_value=initial_value,
            final_value=initial_value,
            total_pnl=0.0,
            total_return_pct=0.0,
            cagr=0.0,
            sharpe_ratio=0.0,
            max_drawdown=0.0,
            max_drawdown_pct=0.0,
            num_trades=num_trades,
            win_rate=win_rate,
            profit_factor=profit_factor,
            avg_trade_pct=avg_trade_pct,
        )

    values = np.array([v for _, v in equity_curve], dtype=float)
    final_value = float(values[-1])
    total_pnl = final_value - initial_value
    total_return_pct = total_pnl / initial_value * 100.0 if initial_value else 0.0

    span_days = (equity_curve[-1][0] - equity_curve[0][0]).total_seconds() / 86400.0
    years = max(span_days / 365.0, 1e-10)
    if initial_value > 0 and final_value > 0 and span_days > 0:
        cagr = ((final_value / initial_value) ** (1.0 / years) - 1.0) * 100.0
    else:
        cagr = 0.0

    returns = np.diff(values) / np.maximum(values[:-1], 1e-14)
    sharpe_ratio = 0.0
    if len(returns):
        excess = returns - risk_free_rate / periods_per_year
        std = np.std(excess)
        if std > 1e-14:
            sharpe_ratio = float(np.mean(excess) / std * np.sqrt(periods_per_year))

    peak = np.maximum.accumulate(values)
    drawdowns = peak - values
    worst = int(np.argmax(drawdowns))
    max_drawdown = float(drawdowns[worst])
    max_dd_pct = max_drawdown / peak[worst] * 100.0 if peak[worst] > 0 else 0.0

    return Metrics(
        initial_value=initial_value,
        final_value=final_value,
        total_pnl=total_pnl,
        total_return_pct=total_return_pct,
        cagr=cagr,
        sharpe_ratio=sharpe_ratio,
        max_drawdown=max_drawdown,
        max_drawdown_pct=float(max_dd_pct),
        num_trades=num_trades,
        win_rate=win_rate,
        profit_factor=profit_factor,
        avg_trade_pct=avg_trade_pct,
    )
