"""
Signal aggregator: weighted vote over a NamedSignalSet with optional macro modifiers.

Pure: identical inputs always give identical outputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from tradecore import config as cfg
from tradecore.config import AggregatorConfig, RiskLevel
from tradecore.signal import CombinedSignal, Direction, Signal

logger = logging.getLogger(__name__)

DXY_RISING = "rising"
DXY_FALLING = "falling"


@dataclass(frozen=True)
class MacroModifiers:
    """
    Regime inputs from an external provider. Any field may be None.

    risk_elevation is the number of steps an external source (e.g. a crash
    warning) raises the entry risk level by; it does not affect the scores.
    """

    fear_index: float | None = None
    dxy_trend: str | None = None
    vix: float | None = None
    risk_level: RiskLevel | None = None
    risk_elevation: int = 0

    def effective_risk_level(self) -> RiskLevel:
        base = self.risk_level or RiskLevel.MEDIUM
        return base.escalate(self.risk_elevation)


def apply_modifiers(buy: float, sell: float, modifiers: MacroModifiers) -> tuple[float, float]:
    """Scale raw buy/sell scores by the fear, dollar, volatility and risk regimes."""
    fear = modifiers.fear_index
    if fear is not None:
        if fear > cfg.HIGH_FEAR_INDEX:
            sell *= cfg.FEAR_FAVOURED_FACTOR
            buy *= cfg.FEAR_DISFAVOURED_FACTOR
        elif fear < cfg.LOW_FEAR_INDEX:
            buy *= cfg.FEAR_FAVOURED_FACTOR
            sell *= cfg.FEAR_DISFAVOURED_FACTOR

    if modifiers.dxy_trend == DXY_RISING:
        sell *= cfg.DXY_FAVOURED_FACTOR
        buy *= cfg.DXY_DISFAVOURED_FACTOR
    elif modifiers.dxy_trend == DXY_FALLING:
        buy *= cfg.DXY_FAVOURED_FACTOR
        sell *= cfg.DXY_DISFAVOURED_FACTOR

    vix = modifiers.vix
    if vix is not None and vix > cfg.VIX_DAMPING_START:
        damper = 1 - (vix - cfg.VIX_DAMPING_START) / cfg.VIX_DAMPING_SPAN
        damper = min(cfg.VIX_DAMPER_MAX, max(cfg.VIX_DAMPER_MIN, damper))
        buy *= damper
        sell *= damper

    if modifiers.risk_level is RiskLevel.HIGH:
        buy *= cfg.HIGH_RISK_BUY_FACTOR
    elif modifiers.risk_level is RiskLevel.LOW:
        buy *= cfg.LOW_RISK_BUY_FACTOR
    return buy, sell


def combine(
    signals: Mapping[str, Signal],
    modifiers: MacroModifiers | None = None,
    config: AggregatorConfig = AggregatorConfig(),
) -> CombinedSignal:
    """
    Combine named strategy signals into one decision.

    Each signal adds strength * weight to its side; every named strategy adds
    its weight to the total, neutral ones included. Modifiers scale the raw
    scores, which are then divided by the total weight. The strictly larger
    side wins if it reaches the threshold.
    """
    buy = sell = total_weight = 0.0
    for name, signal in signals.items():
        weight = config.weight(name)
        if signal.direction is Direction.BUY:
            buy += signal.strength * weight
        elif signal.direction is Direction.SELL:
            sell += signal.strength * weight
        total_weight += weight

    if modifiers is not None:
        buy, sell = apply_modifiers(buy, sell, modifiers)

    if total_weight > 0:
        buy = min(100.0, buy / total_weight)
        sell = min(100.0, sell / total_weight)

    if buy > sell and buy >= config.threshold:
        direction, strength = Direction.BUY, buy
    elif sell > buy and sell >= config.threshold:
        direction, strength = Direction.SELL, sell
    else:
        direction, strength = Direction.NEUTRAL, 0.0
    return CombinedSignal(direction, strength, MappingProxyType({}), buy_score=buy, sell_score=sell)


class SignalAggregator:
    """Holds an AggregatorConfig for repeated combine calls."""

    def __init__(self, config: AggregatorConfig | None = None) -> None:
        self.config = config or AggregatorConfig()

    def combine(self, signals: Mapping[str, Signal], modifiers: MacroModifiers | None = None) -> CombinedSignal:
        result = combine(signals, modifiers, self.config)
        logger.debug(
            "Combined %d signals -> %s %.1f (buy %.1f, sell %.1f)",
            len(signals),
            result.direction.value,
            result.strength,
            result.buy_score,
            result.sell_score,
        )
        return result
