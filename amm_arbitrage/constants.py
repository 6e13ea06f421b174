"""
Constants and enums for the AMM arbitrage scanner.

Centralizes protocol numbers, gas heuristics and default timings so that
components and tests agree on them.
"""

from enum import Enum

# Protocol fees in basis points
UNISWAP_V2_FEE_BPS = 30
SUSHISWAP_FEE_BPS = 30

# Linear gas heuristic: base transaction cost plus a flat cost per swap
BASE_TX_GAS = 21_000
GAS_PER_SWAP = 100_000

# Slippage tolerance applied to adapter quotes
DEFAULT_QUOTE_SLIPPAGE_BPS = 50

# Timings (seconds)
AVERAGE_BLOCK_TIME = 12
DEFAULT_HEARTBEAT_INTERVAL = 30
DEFAULT_RECONNECT_INITIAL_DELAY = 3
DEFAULT_RECONNECT_MAX_DELAY = 30
DEFAULT_DETECTION_INTERVAL = 5
DEFAULT_RPC_TIMEOUT = 5
DEFAULT_CONNECT_TIMEOUT = 15

# Trade sizing grid: max amount is split into this many steps
TRADE_AMOUNT_GRID_STEPS = 10

# Triangle cycles always traverse three pools
TRIANGLE_HOPS = 3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class DexKind(str, Enum):
    """DEX families a pool can belong to."""

    UNISWAP_V2 = "uniswap_v2"
    SUSHISWAP = "sushiswap"
    UNISWAP_V3 = "uniswap_v3"


class SubscriberState(Enum):
    """Connection states of the block subscriber."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    STOPPED = "stopped"


class RejectionReason(str, Enum):
    """Why a candidate path is not executable."""

    UNPROFITABLE_AFTER_GAS = "unprofitable after gas costs"
    BELOW_MINIMUM_BPS = "net profit below minimum bps"
    BELOW_MINIMUM_AMOUNT = "trade amount below minimum"
    ABOVE_MAXIMUM_AMOUNT = "trade amount above maximum"
