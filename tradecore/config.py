"""
Configuration: named constants and the config dataclasses built from them.

Every weight, threshold and multiplier used by the aggregator and the position
state machine lives here so it can be overridden and tested on its own.
TraderConfig.from_env reads the session settings from TRADECORE_* variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

# --- Aggregator ---

STRATEGY_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "MeanReversion": 0.5,
        "EMA Crossover": 0.8,
        "RSI Divergence": 0.9,
        "Bollinger Squeeze": 0.7,
        "Volume Spike": 0.6,
        "ADX Trend": 0.8,
        "Supertrend": 1.0,
        "Heikin Ashi": 0.7,
        "Fibonacci Retracement": 0.8,
        "Fractal Breakout": 0.7,
        "CCI": 0.6,
        "Stochastic": 0.7,
        "Williams %R": 0.6,
        "Parabolic SAR": 0.9,
        "VWAP": 0.8,
        "Breakout": 0.9,
        "Momentum RSI": 0.8,
    }
)
DEFAULT_STRATEGY_WEIGHT = 0.5
SIGNAL_THRESHOLD = 30.0

HIGH_FEAR_INDEX = 75.0
LOW_FEAR_INDEX = 25.0
FEAR_FAVOURED_FACTOR = 1.2
FEAR_DISFAVOURED_FACTOR = 0.8
DXY_FAVOURED_FACTOR = 1.15
DXY_DISFAVOURED_FACTOR = 0.85
VIX_DAMPING_START = 25.0
VIX_DAMPING_SPAN = 50.0
VIX_DAMPER_MIN = 0.6
VIX_DAMPER_MAX = 0.9
HIGH_RISK_BUY_FACTOR = 0.8
LOW_RISK_BUY_FACTOR = 1.2

# --- Position state machine ---


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def escalate(self, steps: int) -> "RiskLevel":
        """Move up by steps, saturating at HIGH. Non-positive steps leave it unchanged."""
        order = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH]
        idx = min(len(order) - 1, order.index(self) + max(0, steps))
        return order[idx]


MIN_ENTRY_STRENGTH: Mapping[RiskLevel, float] = MappingProxyType(
    {RiskLevel.LOW: 50.0, RiskLevel.MEDIUM: 65.0, RiskLevel.HIGH: 75.0}
)
MIN_PROFIT_PROBABILITY = 55.0
STRENGTH_OVERRIDE = 80.0
EXIT_SIGNAL_MIN_STRENGTH = 40.0
PROFIT_SHARE_AT_RISK = 0.5
MINIMAL_RISK_FRACTION = 0.005
DEFAULT_RISK_PER_TRADE = 1.0
DEFAULT_STOP_LOSS_PERCENT = 2.0
DEFAULT_TAKE_PROFIT_PERCENT = 4.0
SIZE_DECIMALS = 4

# --- Session ---

DEFAULT_CANDLE_LIMIT = 200
MIN_CANDLES = 50
DEFAULT_CALL_TIMEOUT = 10.0

ENV_PREFIX = "TRADECORE_"


@dataclass(frozen=True)
class AggregatorConfig:
    """Weight table and decision threshold for combining strategy signals."""

    weights: Mapping[str, float] = field(default_factory=lambda: STRATEGY_WEIGHTS)
    default_weight: float = DEFAULT_STRATEGY_WEIGHT
    threshold: float = SIGNAL_THRESHOLD

    def weight(self, name: str) -> float:
        return self.weights.get(name, self.default_weight)


@dataclass(frozen=True)
class RiskConfig:
    """Entry gates, sizing and exit rules for the position state machine."""

    risk_per_trade: float = DEFAULT_RISK_PER_TRADE
    use_stop_loss: bool = True
    stop_loss_percent: float = DEFAULT_STOP_LOSS_PERCENT
    use_take_profit: bool = True
    take_profit_percent: float = DEFAULT_TAKE_PROFIT_PERCENT
    min_entry_strength: Mapping[RiskLevel, float] = field(default_factory=lambda: MIN_ENTRY_STRENGTH)
    min_profit_probability: float = MIN_PROFIT_PROBABILITY
    strength_override: float = STRENGTH_OVERRIDE
    exit_signal_min_strength: float = EXIT_SIGNAL_MIN_STRENGTH
    profit_share_at_risk: float = PROFIT_SHARE_AT_RISK
    minimal_risk_fraction: float = MINIMAL_RISK_FRACTION


@dataclass(frozen=True)
class TraderConfig:
    """Per-tick session settings."""

    symbols: tuple[str, ...] = ()
    timeframes: tuple[str, ...] = ("15m",)
    risk: RiskConfig = field(default_factory=RiskConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    trading_enabled: bool = True
    use_macro_data: bool = False
    quiet_hours: tuple[int, int] | None = None
    candle_limit: int = DEFAULT_CANDLE_LIMIT
    min_candles: int = MIN_CANDLES
    call_timeout: float = DEFAULT_CALL_TIMEOUT

    def in_quiet_hours(self, hour: int) -> bool:
        """True if hour falls in [start, end), wrapping past midnight when start > end."""
        if self.quiet_hours is None:
            return False
        start, end = self.quiet_hours
        if start == end:
            return False
        if start < end:
            return start <= hour < end
        return hour >= start or hour < end

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None) -> "TraderConfig":
        """
        Build a config from environment variables. Unset variables keep defaults.

        Lists are comma separated; QUIET_HOURS is "start-end" in hours, e.g. "22-6".
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(prefix + name)
            return value.strip() if value is not None and value.strip() else None

        def as_bool(name: str, default: bool) -> bool:
            value = get(name)
            return default if value is None else value.lower() in ("1", "true", "yes", "on")

        def as_float(name: str, default: float) -> float:
            value = get(name)
            return default if value is None else float(value)

        def as_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
            value = get(name)
            if value is None:
                return default
            return tuple(v.strip() for v in value.split(",") if v.strip())

        quiet = get("QUIET_HOURS")
        quiet_hours = None
        if quiet is not None:
            start, _, end = quiet.partition("-")
            quiet_hours = (int(start), int(end))

        risk = RiskConfig(
            risk_per_trade=as_float("RISK_PER_TRADE", DEFAULT_RISK_PER_TRADE),
            use_stop_loss=as_bool("USE_STOP_LOSS", True),
            stop_loss_percent=as_float("STOP_LOSS_PERCENT", DEFAULT_STOP_LOSS_PERCENT),
            use_take_profit=as_bool("USE_TAKE_PROFIT", True),
            take_profit_percent=as_float("TAKE_PROFIT_PERCENT", DEFAULT_TAKE_PROFIT_PERCENT),
        )
        return cls(
            symbols=as_list("SYMBOLS", ()),
            timeframes=as_list("TIMEFRAMES", ("15m",)),
            risk=risk,
            trading_enabled=as_bool("TRADING_ENABLED", True),
            use_macro_data=as_bool("USE_MACRO_DATA", False),
            quiet_hours=quiet_hours,
            call_timeout=as_float("CALL_TIMEOUT", DEFAULT_CALL_TIMEOUT),
        )
