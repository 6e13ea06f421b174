#!/usr/bin/env python3
"""
AMM triangular arbitrage scanner CLI.

Streams new blocks, refreshes pool reserves and logs gas-aware triangular
opportunities.

Usage:
    python3 run_bot.py                              # settings from .env
    python3 run_bot.py --config configs/mainnet.yaml
    python3 run_bot.py --config configs/mainnet.yaml --once
"""

import argparse
import asyncio
import signal
import sys

from amm_arbitrage import logging_config
from amm_arbitrage.bot import ArbitrageBot, build_bot
from amm_arbitrage.config import ConfigError, Settings, load_settings, settings_from_env
from amm_arbitrage.exceptions import AmmArbitrageError
from amm_arbitrage.metrics import initialize_metrics
from amm_arbitrage.utils import get_logger, wei_to_ether


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="AMM triangular arbitrage scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Settings from environment / .env
  python3 run_bot.py

  # Settings from YAML
  python3 run_bot.py --config configs/mainnet.yaml

  # Single refresh + detection pass (for testing/CI)
  python3 run_bot.py --config configs/mainnet.yaml --once
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config YAML file (default: read environment / .env)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Override the configured log level",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh reserves, run one detection pass and exit",
    )
    return parser.parse_args(argv)


def load(args: argparse.Namespace) -> Settings:
    if args.config:
        return load_settings(args.config)
    return settings_from_env()


async def run_forever(bot: ArbitrageBot) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, bot.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass
    await bot.run()


async def run_once(bot: ArbitrageBot) -> None:
    result = await bot.run_once()
    print(f"Refreshed {result.updated}/{result.total} pools in {result.duration:.2f}s")
    best = bot.last_opportunity
    if best is None:
        print("No executable opportunity")
        return
    path = best.path
    print(
        f"Best: {path.describe()} | in {wei_to_ether(path.start_amount)} ETH | "
        f"net {wei_to_ether(path.net_profit)} ETH ({path.net_profit_bps} bps)"
    )


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        settings = load(args)
    except ConfigError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1

    logging_config.setup_from_name(args.log_level or settings.log_level)
    logger = get_logger("run_bot")

    metrics = initialize_metrics() if settings.metrics_port else None

    try:
        bot = build_bot(settings, metrics=metrics)
    except AmmArbitrageError as e:
        print(f"❌ Initialization failed: {e}", file=sys.stderr)
        return 1

    try:
        if args.once:
            asyncio.run(run_once(bot))
        else:
            asyncio.run(run_forever(bot))
    except KeyboardInterrupt:
        print("\n\n⏸ Stopped by user")
        return 0
    except AmmArbitrageError as e:
        logger.error(f"Bot failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
