"""
Logging configuration for cleaner output.

Usage:
    from amm_arbitrage import logging_config
    logging_config.setup()
"""

import logging
import sys

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup(level=logging.INFO):
    """
    Configure the root logger for readable console output.

    - Short timestamps (HH:MM:SS)
    - Websocket frame and HTTP access chatter suppressed
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
        )
    )
    root.addHandler(console)

    # Suppress noisy loggers
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    logging.getLogger("amm_arbitrage").setLevel(level)


def setup_from_name(name: str) -> int:
    """
    Configure logging from a level name such as "debug" or "info".

    Unknown names fall back to INFO. Returns the numeric level applied.
    """
    level = LEVELS.get((name or "").strip().lower(), logging.INFO)
    if level == logging.DEBUG:
        setup_debug()
    else:
        setup(level=level)
    return level


def setup_minimal():
    """Only warnings and errors."""
    setup(level=logging.WARNING)


def setup_debug():
    """
    Verbose logging for debugging.
    Shows web3 provider traffic as well.
    """
    setup(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.DEBUG)
