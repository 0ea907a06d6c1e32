"""
Signal: directional call produced by an indicator or the aggregator.

Immutable. A neutral call always carries zero strength and any positive
strength implies a direction; Signal.of enforces this for every producer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Direction(Enum):
    BUY = "buy"
    SELL = "sell"
    NEUTRAL = "neutral"

    def opposite(self) -> "Direction":
        if self is Direction.BUY:
            return Direction.SELL
        if self is Direction.SELL:
            return Direction.BUY
        return Direction.NEUTRAL


def _freeze(meta: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(meta or {}))


@dataclass(frozen=True)
class Signal:
    """Direction plus strength in [0, 100]. Metadata is diagnostic only."""

    direction: Direction
    strength: float
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def of(cls, direction: Direction, strength: float, **meta: Any) -> "Signal":
        """Clamp strength to [0, 100] and keep direction and strength consistent."""
        if direction is Direction.NEUTRAL or not math.isfinite(strength) or strength <= 0:
            return cls(Direction.NEUTRAL, 0.0, _freeze(meta))
        return cls(direction, min(100.0, float(strength)), _freeze(meta))

    @classmethod
    def neutral(cls, **meta: Any) -> "Signal":
        return cls(Direction.NEUTRAL, 0.0, _freeze(meta))

    @property
    def is_neutral(self) -> bool:
        return self.direction is Direction.NEUTRAL


NamedSignalSet = dict[str, Signal]


@dataclass(frozen=True)
class CombinedSignal(Signal):
    """Aggregator output: the decision plus the normalized per-side scores."""

    buy_score: float = 0.0
    sell_score: float = 0.0
