"""
Indicator battery: seventeen independent strategies, each f(candles, **params) -> Signal.

Every indicator is pure and deterministic and returns a neutral signal on
short or degenerate input instead of raising.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from tradecore.candles import CandleInput, as_series
from tradecore.indicators.oscillators import (
    cci_signal,
    momentum_rsi_signal,
    rsi_divergence_signal,
    stochastic_signal,
    williams_r_signal,
)
from tradecore.indicators.price_action import (
    bollinger_squeeze_signal,
    breakout_signal,
    fibonacci_retracement_signal,
    fractal_breakout_signal,
    mean_reversion_signal,
)
from tradecore.indicators.trend import (
    adx_trend_signal,
    calculate_heikin_ashi,
    ema_crossover_signal,
    heikin_ashi_signal,
    parabolic_sar_signal,
    supertrend_signal,
)
from tradecore.indicators.volume import volume_spike_signal, vwap_signal
from tradecore.signal import NamedSignalSet, Signal

logger = logging.getLogger(__name__)

Indicator = Callable[[CandleInput], Signal]

STRATEGIES: Mapping[str, Indicator] = {
    "MeanReversion": mean_reversion_signal,
    "EMA Crossover": ema_crossover_signal,
    "RSI Divergence": rsi_divergence_signal,
    "Bollinger Squeeze": bollinger_squeeze_signal,
    "Volume Spike": volume_spike_signal,
    "ADX Trend": adx_trend_signal,
    "Supertrend": supertrend_signal,
    "Heikin Ashi": heikin_ashi_signal,
    "Fibonacci Retracement": fibonacci_retracement_signal,
    "Fractal Breakout": fractal_breakout_signal,
    "CCI": cci_signal,
    "Stochastic": stochastic_signal,
    "Williams %R": williams_r_signal,
    "Parabolic SAR": parabolic_sar_signal,
    "VWAP": vwap_signal,
    "Breakout": breakout_signal,
    "Momentum RSI": momentum_rsi_signal,
}


def run_battery(candles: CandleInput, strategies: Iterable[str] | None = None) -> NamedSignalSet:
    """
    Evaluate each named strategy (all of them by default) on one shared series.

    An indicator that raises is logged and counted as neutral so one faulty
    strategy cannot abort the evaluation.
    """
    series = as_series(candles)
    names = list(STRATEGIES) if strategies is None else list(strategies)
    signals: NamedSignalSet = {}
    for name in names:
        fn = STRATEGIES[name]
        try:
            signals[name] = fn(series)
        except Exception:
            logger.exception("Indicator %s failed on %d candles; using neutral", name, len(series))
            signals[name] = Signal.neutral()
        else:
            logger.debug("%s -> %s %.1f", name, signals[name].direction.value, signals[name].strength)
    return signals


__all__ = [
    "STRATEGIES",
    "Indicator",
    "run_battery",
    "calculate_heikin_ashi",
    "mean_reversion_signal",
    "ema_crossover_signal",
    "rsi_divergence_signal",
    "bollinger_squeeze_signal",
    "volume_spike_signal",
    "adx_trend_signal",
    "supertrend_signal",
    "heikin_ashi_signal",
    "fibonacci_retracement_signal",
    "fractal_breakout_signal",
    "cci_signal",
    "stochastic_signal",
    "williams_r_signal",
    "parabolic_sar_signal",
    "vwap_signal",
    "breakout_signal",
    "momentum_rsi_signal",
]
