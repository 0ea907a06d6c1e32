"""
Error taxonomy.

External I/O failures abort one symbol's cycle and are reported in a batch.
InvariantViolation is a programming-contract failure and is never swallowed.
"""


class TradeCoreError(Exception):
    """Base class for all tradecore errors."""


class ExternalServiceError(TradeCoreError):
    """A collaborator call failed; the current symbol cycle is aborted."""


class DataUnavailable(ExternalServiceError):
    """Candle fetch failed or returned too few rows."""


class PriceUnavailable(ExternalServiceError):
    """Current price could not be obtained."""


class OrderRejected(ExternalServiceError):
    """The exchange refused or failed to acknowledge an order."""


class InvariantViolation(TradeCoreError):
    """State machine contract broken, e.g. a second open position for a symbol."""
