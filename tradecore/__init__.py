"""
tradecore: technical-analysis trading core.

Seventeen deterministic indicators, a weighted signal aggregator, a per-symbol
position state machine and an asyncio trader session. Exchange transport,
notification delivery and macro data are injected collaborators.
"""

__version__ = "0.1.0"

from tradecore.aggregator import MacroModifiers, SignalAggregator, combine
from tradecore.candles import Candle, CandleSeries
from tradecore.config import AggregatorConfig, RiskConfig, RiskLevel, TraderConfig
from tradecore.errors import (
    DataUnavailable,
    ExternalServiceError,
    InvariantViolation,
    OrderRejected,
    PriceUnavailable,
    TradeCoreError,
)
from tradecore.indicators import STRATEGIES, run_battery
from tradecore.position import Position, PositionStateMachine, Side, TradeRecord
from tradecore.session import TickResult, TraderSession
from tradecore.signal import CombinedSignal, Direction, Signal
from tradecore.state import TraderState, TraderStateSnapshot

__all__ = [
    "Candle",
    "CandleSeries",
    "Direction",
    "Signal",
    "CombinedSignal",
    "STRATEGIES",
    "run_battery",
    "MacroModifiers",
    "SignalAggregator",
    "combine",
    "AggregatorConfig",
    "RiskConfig",
    "RiskLevel",
    "TraderConfig",
    "Side",
    "Position",
    "TradeRecord",
    "PositionStateMachine",
    "TraderState",
    "TraderStateSnapshot",
    "TraderSession",
    "TickResult",
    "TradeCoreError",
    "ExternalServiceError",
    "DataUnavailable",
    "PriceUnavailable",
    "OrderRejected",
    "InvariantViolation",
]
