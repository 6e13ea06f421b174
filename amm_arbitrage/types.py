"""
Core data types for AMM arbitrage scanning.

Pools are immutable values: the registry swaps whole ``Pool`` instances when
reserves change, so a pool handed to a reader can never be observed half
updated, and a reader that derives a modified copy never affects the
registry.
"""

import dataclasses
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from .constants import DexKind, RejectionReason

__all__ = [
    "DexKind",
    "RejectionReason",
    "Pool",
    "BlockHeader",
    "Quote",
    "ArbitragePath",
    "Opportunity",
]


@dataclass(frozen=True)
class Pool:
    """
    A constant-product liquidity pool snapshot.

    Attributes:
        address: Pair contract address (pool identity)
        dex: DEX family the pool belongs to
        token0: Address of token0 as ordered by the pair contract
        token1: Address of token1
        reserve0: Reserve of token0 in the token's smallest unit
        reserve1: Reserve of token1 in the token's smallest unit
        fee_bps: Swap fee in basis points (30 = 0.3%)
        last_updated: Unix timestamp of the last reserve refresh
    """

    address: str
    dex: DexKind
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    fee_bps: int = 30
    last_updated: float = 0.0

    def __post_init__(self):
        if self.reserve0 < 0 or self.reserve1 < 0:
            raise ValueError(
                f"Reserves must be non-negative: r0={self.reserve0}, r1={self.reserve1}"
            )
        if not 0 <= self.fee_bps < 10_000:
            raise ValueError(f"fee_bps must be in [0, 10000): {self.fee_bps}")

    @property
    def is_degenerate(self) -> bool:
        """True when either side is empty; swaps against it yield nothing."""
        return self.reserve0 == 0 or self.reserve1 == 0

    def has_token(self, token: str) -> bool:
        return token == self.token0 or token == self.token1

    def other_token(self, token: str) -> str:
        """Return the counterpart of ``token`` in this pool."""
        if token == self.token0:
            return self.token1
        if token == self.token1:
            return self.token0
        raise ValueError(f"Token {token} not in pool {self.address}")

    def reserves_for(self, token_in: str) -> Tuple[int, int]:
        """Return (reserve_in, reserve_out) for a swap selling ``token_in``."""
        if token_in == self.token0:
            return self.reserve0, self.reserve1
        if token_in == self.token1:
            return self.reserve1, self.reserve0
        raise ValueError(f"Token {token_in} not in pool {self.address}")

    def with_reserves(
        self, reserve0: int, reserve1: int, timestamp: Optional[float] = None
    ) -> "Pool":
        """Return a copy carrying new reserves and refresh time."""
        return dataclasses.replace(
            self,
            reserve0=reserve0,
            reserve1=reserve1,
            last_updated=time.time() if timestamp is None else timestamp,
        )


@dataclass(frozen=True)
class BlockHeader:
    """Minimal block header yielded by the chain subscription."""

    number: int
    hash: Optional[str] = None
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class Quote:
    """Single-pool swap quote produced by a DEX adapter."""

    pool: Pool
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int
    price_impact: Decimal
    fee_paid: int
    min_amount_out: int


@dataclass
class ArbitragePath:
    """
    A three-pool cycle that returns more of the start token than it spent.

    Created by the path finder with gross figures; the validator fills in
    the gas estimate and the net figures.
    """

    id: str
    pools: List[Pool]
    tokens: List[str]  # [start, mid, alt, start]
    start_token: str
    start_amount: int
    end_amount: int
    profit: int
    profit_bps: int
    price_impact: Decimal = Decimal(0)
    gas_cost: Optional[int] = None
    net_profit: Optional[int] = None
    net_profit_bps: int = 0
    timestamp: float = field(default_factory=time.time)

    @property
    def hops(self) -> int:
        return len(self.pools)

    def describe(self) -> str:
        return " -> ".join(token[:8] for token in self.tokens)


@dataclass
class Opportunity:
    """Validation outcome for one path, handed to the execution gateway."""

    path: ArbitragePath
    is_executable: bool = True
    reason: Optional[str] = None
    priority: int = 0
