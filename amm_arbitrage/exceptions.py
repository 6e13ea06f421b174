"""
Exception hierarchy for the AMM arbitrage scanner.

Connectivity and adapter failures are recovered locally by the subscriber and
the refresher; lookup misses are surfaced to the immediate caller; bad
configuration is fatal. Unprofitable paths are not errors at all and are
represented as non-executable opportunities.
"""

from typing import Any, Dict, Optional


class AmmArbitrageError(Exception):
    """Base exception for all AMM arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(AmmArbitrageError):
    """Raised when required settings are missing or invalid."""

    pass


# Name used by the config loader
ConfigError = ConfigurationError


class NetworkError(AmmArbitrageError):
    """Raised when dialing, subscribing or probing the node fails."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class SubscriptionError(NetworkError):
    """Raised when the block subscription errors or ends unexpectedly."""

    pass


class HeartbeatError(NetworkError):
    """Raised when the liveness check fails or times out."""

    pass


class AdapterError(AmmArbitrageError):
    """Raised when a DEX adapter cannot fetch reserves or resolve a pool."""

    def __init__(
        self,
        message: str,
        dex: Optional[str] = None,
        pool_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.dex = dex
        self.pool_address = pool_address


class NotFoundError(AmmArbitrageError):
    """Raised when a pool or adapter lookup misses."""

    pass


class PoolNotFoundError(NotFoundError):
    """Raised when no pool matches the requested address or token pair."""

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.address = address


class AdapterMissingError(NotFoundError):
    """Raised when no adapter is registered for a pool's DEX kind."""

    def __init__(
        self,
        message: str,
        dex: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.dex = dex


class DataError(AmmArbitrageError):
    """Raised when pool data is unusable for a search."""

    pass


class InsufficientPoolsError(DataError):
    """Raised when fewer pools are known than a cycle needs."""

    def __init__(
        self,
        message: str,
        required: int = 3,
        available: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.required = required
        self.available = available


class ExecutionError(AmmArbitrageError):
    """Raised by an execution gateway when a submission fails."""

    def __init__(
        self,
        message: str,
        opportunity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.opportunity_id = opportunity_id
