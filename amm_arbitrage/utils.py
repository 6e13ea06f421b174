"""
Common utilities for the AMM arbitrage scanner.

Unit conversions between wei, gwei and ether, basis point helpers, log-safe
formatting and the structured logger factory used across the package.
"""

import logging
from decimal import Decimal
from typing import Union

WEI_PER_ETHER = 10**18
WEI_PER_GWEI = 10**9
BPS_DENOMINATOR = 10_000


# Unit conversions
def wei_to_ether(wei: int) -> Decimal:
    """Convert wei to ether."""
    return Decimal(wei) / Decimal(WEI_PER_ETHER)


def ether_to_wei(ether: Union[str, int, float, Decimal]) -> int:
    """
    Convert an ether amount to wei, truncating below one wei.

    Floats are routed through ``str`` so that ``0.1`` becomes exactly
    ``10**17`` rather than the nearest binary fraction.
    """
    if isinstance(ether, float):
        ether = str(ether)
    return int(Decimal(ether) * WEI_PER_ETHER)


def gwei_to_wei(gwei: Union[int, float, Decimal]) -> int:
    """Convert gwei to wei."""
    if isinstance(gwei, float):
        gwei = str(gwei)
    return int(Decimal(gwei) * WEI_PER_GWEI)


def wei_to_gwei(wei: int) -> int:
    """Convert wei to whole gwei (truncated)."""
    return wei // WEI_PER_GWEI


# Basis point helpers
def bps_to_percentage(bps: Union[int, float]) -> float:
    """Convert basis points to percent (100 bps = 1.0)."""
    return bps / 100.0


def percentage_to_bps(percentage: float) -> int:
    """Convert percent to whole basis points (truncated)."""
    return int(percentage * 100)


def mask_url(url: str) -> str:
    """Hide the middle of an RPC URL, which usually carries an API key."""
    if not url or len(url) < 24:
        return "***"
    return url[:10] + "***" + url[-10:]


def short_address(address: str, length: int = 10) -> str:
    """Shorten a hex address for log lines."""
    if not address or len(address) <= length:
        return address
    return address[:length] + "..."


# Logging utilities
def get_logger(
    name: str, level: Union[str, int] = logging.INFO, minimal: bool = False
) -> logging.Logger:
    """
    Get a logger with the package's console format.

    A handler is attached only when neither the logger nor the root logger
    has one, so loggers created after ``logging_config.setup()`` share the
    root handler instead of printing twice.

    Args:
        name: Logger name (typically __name__)
        level: Logging level, used when the logger has none yet
        minimal: If True, use simplified format (time + message only)
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers and not logging.getLogger().handlers:
        if minimal:
            format_str = "%(asctime)s | %(message)s"
        else:
            format_str = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(format_str, datefmt="%H:%M:%S"))
        logger.addHandler(handler)

    return logger
