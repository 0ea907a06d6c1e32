"""
Providers: optional collaborators that feed the aggregator.

MacroProvider supplies regime modifiers; SignalProvider contributes extra named
signals next to the indicator battery. Each has a deterministic static
implementation for tests and paper runs; FearGreedMacroProvider reads the
public Crypto Fear & Greed index over HTTP.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Protocol, runtime_checkable

import aiohttp

from tradecore.aggregator import MacroModifiers
from tradecore.candles import CandleSeries
from tradecore.config import HIGH_FEAR_INDEX, LOW_FEAR_INDEX, RiskLevel
from tradecore.errors import DataUnavailable
from tradecore.signal import NamedSignalSet, Signal

logger = logging.getLogger(__name__)

FEAR_GREED_URL = "https://api.alternative.me/fng/"
FEAR_GREED_TIMEOUT = 5.0


@runtime_checkable
class MacroProvider(Protocol):
    """Returns the current regime, or None when nothing is known."""

    async def get_modifiers(self) -> MacroModifiers | None:
        ...


@runtime_checkable
class SignalProvider(Protocol):
    """Extra named signals for one symbol; names outside the weight table get the default weight."""

    async def signals(self, symbol: str, series: CandleSeries) -> NamedSignalSet:
        ...


class StaticMacroProvider:
    """Always returns the same modifiers (or None)."""

    def __init__(self, modifiers: MacroModifiers | None = None) -> None:
        self.modifiers = modifiers
        self.calls = 0

    async def get_modifiers(self) -> MacroModifiers | None:
        self.calls += 1
        return self.modifiers


class StaticSignalProvider:
    """Returns a fixed signal set for every symbol, or a per-symbol mapping when given one."""

    def __init__(
        self,
        signals: Mapping[str, Signal] | None = None,
        by_symbol: Mapping[str, Mapping[str, Signal]] | None = None,
    ) -> None:
        self._signals = dict(signals or {})
        self._by_symbol = {k: dict(v) for k, v in (by_symbol or {}).items()}

    async def signals(self, symbol: str, series: CandleSeries) -> NamedSignalSet:
        return dict(self._by_symbol.get(symbol, self._signals))


class FearGreedMacroProvider:
    """
    Fear index from the alternative.me Fear & Greed API.

    The API reports greed (0 = extreme fear, 100 = extreme greed); the
    aggregator expects fear, so the value is inverted. The index doubles as a
    coarse risk level: extreme fear is high risk, extreme greed low.
    Network or payload failures raise DataUnavailable.
    """

    def __init__(self, url: str = FEAR_GREED_URL, timeout: float = FEAR_GREED_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout

    async def get_modifiers(self) -> MacroModifiers | None:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self.url, params={"limit": "1"}, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    response.raise_for_status()
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise DataUnavailable(f"fear & greed request failed: {exc}") from exc
        return self.parse(payload)

    @staticmethod
    def parse(payload: Mapping) -> MacroModifiers:
        try:
            greed = float(payload["data"][0]["value"])
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise DataUnavailable(f"unexpected fear & greed payload: {payload!r}") from exc
        fear = 100.0 - greed
        if fear > HIGH_FEAR_INDEX:
            level = RiskLevel.HIGH
        elif fear < LOW_FEAR_INDEX:
            level = RiskLevel.LOW
        else:
            level = RiskLevel.MEDIUM
        logger.debug("Fear & greed %.0f -> fear %.0f, risk %s", greed, fear, level.value)
        return MacroModifiers(fear_index=fear, risk_level=level)
