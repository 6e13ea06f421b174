"""
AMM Triangular Arbitrage Scanner.

Tracks Uniswap V2 style constant-product pools, keeps their reserves fresh
on every new block, and searches three-pool cycles for trades that return
more of the start token than they spend after gas.
"""

PROJECT_NAME = "amm-arbitrage"

from amm_arbitrage.version import __version__ as VERSION

from amm_arbitrage.bot import ArbitrageBot, build_bot
from amm_arbitrage.config import Settings, load_settings, settings_from_env
from amm_arbitrage.path_finder import PathFinder
from amm_arbitrage.refresher import RefreshResult, ReserveRefresher
from amm_arbitrage.registry import PoolRegistry
from amm_arbitrage.subscriber import ReconnectBackoff, ResilientSubscriber
from amm_arbitrage.types import ArbitragePath, BlockHeader, DexKind, Opportunity, Pool
from amm_arbitrage.validator import OpportunityValidator

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbitrageBot",
    "build_bot",
    "Settings",
    "load_settings",
    "settings_from_env",
    "PathFinder",
    "RefreshResult",
    "ReserveRefresher",
    "PoolRegistry",
    "ReconnectBackoff",
    "ResilientSubscriber",
    "ArbitragePath",
    "BlockHeader",
    "DexKind",
    "Opportunity",
    "Pool",
    "OpportunityValidator",
]
