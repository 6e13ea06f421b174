"""
DEX adapter interface.

Every constant-product DEX family exposes the same capability set: identify
itself, fetch reserves for a pool address, and resolve the pool for a token
pair. Swap math and quoting are shared; subclasses only implement the
contract access.
"""

from abc import ABC, abstractmethod
from typing import Tuple

from .. import swap_math
from ..constants import DEFAULT_QUOTE_SLIPPAGE_BPS, DexKind
from ..types import Pool, Quote
from ..utils import BPS_DENOMINATOR


class DexAdapter(ABC):
    """Abstract base class for DEX adapters"""

    #: Human readable name, e.g. "Uniswap V2"
    name: str = ""
    #: DEX family the adapter serves; the registry keys adapters by it
    kind: DexKind

    def __init__(self, fee_bps: int):
        self.fee_bps = fee_bps

    @abstractmethod
    def get_reserves(self, pool_address: str) -> Tuple[int, int]:
        """
        Fetch current (reserve0, reserve1) for a pool.

        Raises:
            AdapterError: If the fetch fails for any reason
        """

    @abstractmethod
    def get_pair_address(self, token_a: str, token_b: str) -> str:
        """
        Resolve the pool address for a token pair.

        Raises:
            AdapterError: If the pair does not exist or the call fails
        """

    @abstractmethod
    def get_pool(self, token_a: str, token_b: str) -> Pool:
        """Resolve a token pair and return a fully populated pool."""

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        return swap_math.get_amount_out(amount_in, reserve_in, reserve_out, self.fee_bps)

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        return swap_math.get_amount_in(amount_out, reserve_in, reserve_out, self.fee_bps)

    def quote(
        self,
        amount_in: int,
        token_in: str,
        token_out: str,
        slippage_bps: int = DEFAULT_QUOTE_SLIPPAGE_BPS,
    ) -> Quote:
        """
        Quote a single-pool swap against live reserves.

        Args:
            amount_in: Input amount of ``token_in``
            token_in: Token sold
            token_out: Token bought
            slippage_bps: Tolerance used for ``min_amount_out``

        Returns:
            Quote with output, price impact, fee paid and slippage floor
        """
        pool = self.get_pool(token_in, token_out)
        reserve_in, reserve_out = pool.reserves_for(token_in)
        amount_out = self.get_amount_out(amount_in, reserve_in, reserve_out)

        return Quote(
            pool=pool,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            price_impact=swap_math.price_impact(
                amount_in, reserve_in, reserve_out, self.fee_bps
            ),
            fee_paid=amount_in * self.fee_bps // BPS_DENOMINATOR,
            min_amount_out=swap_math.min_amount_out(amount_out, slippage_bps),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, fee_bps={self.fee_bps})"
