"""
Triangular cycle discovery: start -> token1 -> token2 -> start.

Works on a registry snapshot, so a detection pass sees one consistent view
of the pools even while refreshes land concurrently.
"""

import logging
import uuid
from decimal import Decimal
from typing import List, Sequence

from . import swap_math
from .config import Settings
from .constants import TRADE_AMOUNT_GRID_STEPS, TRIANGLE_HOPS
from .exceptions import InsufficientPoolsError
from .registry import PoolRegistry
from .types import ArbitragePath, Pool

logger = logging.getLogger(__name__)


class PathFinder:
    """Exhaustive three-pool cycle search over a trade-size grid."""

    def __init__(self, registry: PoolRegistry, settings: Settings):
        self.registry = registry
        self.settings = settings

    def generate_start_amounts(self) -> List[int]:
        """
        Trade sizes to sample, in wei of the start token.

        Starts at ``min_trade_amount`` and steps by a tenth of
        ``max_trade_amount`` while staying at or below the maximum.
        """
        minimum = self.settings.min_trade_amount
        maximum = self.settings.max_trade_amount
        step = maximum // TRADE_AMOUNT_GRID_STEPS
        if step <= 0:
            return [minimum]

        amounts = []
        amount = minimum
        while amount <= maximum:
            amounts.append(amount)
            amount += step
        return amounts

    def search_triangle_paths(
        self, pools: Sequence[Pool], start_token: str, start_amount: int
    ) -> List[ArbitragePath]:
        """
        Every profitable cycle through three distinct pools for one size.

        A path is recorded only when each hop produces output and the final
        amount exceeds ``start_amount``. Two-hop loops back to the start
        token are skipped.
        """
        paths: List[ArbitragePath] = []

        for i, pool1 in enumerate(pools):
            if not pool1.has_token(start_token):
                continue
            token1 = pool1.other_token(start_token)
            amount1 = self._swap(pool1, start_token, start_amount)
            if amount1 <= 0:
                continue

            for j, pool2 in enumerate(pools):
                if j == i or not pool2.has_token(token1):
                    continue
                token2 = pool2.other_token(token1)
                if token2 == start_token:
                    continue
                amount2 = self._swap(pool2, token1, amount1)
                if amount2 <= 0:
                    continue

                for k, pool3 in enumerate(pools):
                    if k == i or k == j:
                        continue
                    if not (pool3.has_token(token2) and pool3.other_token(token2) == start_token):
                        continue
                    amount3 = self._swap(pool3, token2, amount2)
                    if amount3 <= start_amount:
                        continue

                    paths.append(
                        self._build_path(
                            [pool1, pool2, pool3],
                            [start_token, token1, token2, start_token],
                            [start_amount, amount1, amount2],
                            amount3,
                        )
                    )

        return paths

    def find_triangle_arbitrage(self, start_token: str) -> List[ArbitragePath]:
        """
        Search all grid sizes and keep paths meeting the gross bps floor.

        Raises:
            InsufficientPoolsError: If fewer than three pools are tracked
        """
        pools = self.registry.list_all()
        if len(pools) < TRIANGLE_HOPS:
            raise InsufficientPoolsError(
                f"Insufficient pools for triangular arbitrage: {len(pools)}",
                required=TRIANGLE_HOPS,
                available=len(pools),
            )

        found: List[ArbitragePath] = []
        for start_amount in self.generate_start_amounts():
            for path in self.search_triangle_paths(pools, start_token, start_amount):
                if path.profit_bps >= self.settings.min_profit_bps:
                    found.append(path)

        logger.debug(
            f"Scanned {len(pools)} pools: {len(found)} paths >= "
            f"{self.settings.min_profit_bps} bps"
        )
        return found

    @staticmethod
    def _swap(pool: Pool, token_in: str, amount_in: int) -> int:
        reserve_in, reserve_out = pool.reserves_for(token_in)
        return swap_math.get_amount_out(amount_in, reserve_in, reserve_out, pool.fee_bps)

    @staticmethod
    def _build_path(
        pools: List[Pool], tokens: List[str], amounts_in: List[int], end_amount: int
    ) -> ArbitragePath:
        impact = Decimal(0)
        for pool, token_in, amount_in in zip(pools, tokens, amounts_in):
            reserve_in, reserve_out = pool.reserves_for(token_in)
            impact += swap_math.price_impact(amount_in, reserve_in, reserve_out, pool.fee_bps)

        start_amount = amounts_in[0]
        return ArbitragePath(
            id=str(uuid.uuid4()),
            pools=pools,
            tokens=tokens,
            start_token=tokens[0],
            start_amount=start_amount,
            end_amount=end_amount,
            profit=end_amount - start_amount,
            profit_bps=swap_math.profit_bps(start_amount, end_amount),
            price_impact=impact,
        )
