"""Custom exceptions for the trading engine.

All engine exceptions live here to avoid circular imports between modules.
"""


class TraderError(Exception):
    """Base exception for all engine errors."""


class PriceUnavailableError(TraderError):
    """Raised when no venue returned a valid price for the instrument."""


class OracleError(TraderError):
    """Raised by oracle clients when the decision request cannot be completed."""


class PersistenceError(TraderError):
    """Raised when the ledger cannot be read or written."""
