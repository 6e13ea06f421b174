"""
Uniswap V2 style adapter for constant-product AMM pools.

Reads reserves and resolves pairs through the router -> factory -> pair
contracts. Any contract layout that matches Uniswap V2 (SushiSwap and most
forks) can reuse it by overriding ``name``/``kind``.
"""

import logging
import time
from typing import Callable, Optional, Tuple

from web3 import Web3

from ..abi import UNISWAP_V2_FACTORY_ABI, UNISWAP_V2_PAIR_ABI, UNISWAP_V2_ROUTER_ABI
from ..constants import SUSHISWAP_FEE_BPS, UNISWAP_V2_FEE_BPS, ZERO_ADDRESS, DexKind
from ..exceptions import AdapterError
from ..types import Pool
from .base import DexAdapter

logger = logging.getLogger(__name__)


class UniswapV2Adapter(DexAdapter):
    """Adapter for Uniswap V2 pairs."""

    name = "Uniswap V2"
    kind = DexKind.UNISWAP_V2

    def __init__(
        self,
        web3: Web3,
        router_address: str,
        fee_bps: int = UNISWAP_V2_FEE_BPS,
        factory_address: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the adapter.

        Args:
            web3: Web3 instance; its provider's request timeout bounds every call
            router_address: Router contract address
            fee_bps: Pool fee in basis points
            factory_address: Factory address; fetched from the router if omitted
            clock: Timestamp source for ``Pool.last_updated``

        Raises:
            AdapterError: If the factory cannot be resolved from the router
        """
        super().__init__(fee_bps)
        self.web3 = web3
        self.clock = clock
        self.router_address = Web3.to_checksum_address(router_address)
        self.router = web3.eth.contract(
            address=self.router_address, abi=UNISWAP_V2_ROUTER_ABI
        )

        if factory_address is None:
            factory_address = self._factory_from_router()
        self.factory_address = Web3.to_checksum_address(factory_address)
        self.factory = web3.eth.contract(
            address=self.factory_address, abi=UNISWAP_V2_FACTORY_ABI
        )

        logger.info(
            f"{self.name} adapter initialized (Router: {self.router_address}, "
            f"Factory: {self.factory_address})"
        )

    def _factory_from_router(self) -> str:
        try:
            return self.router.functions.factory().call()
        except Exception as e:
            raise AdapterError(
                f"factory() call failed on router {self.router_address}: {e}",
                dex=self.kind.value,
            ) from e

    def _pair(self, pool_address: str):
        return self.web3.eth.contract(
            address=Web3.to_checksum_address(pool_address), abi=UNISWAP_V2_PAIR_ABI
        )

    def get_pair_address(self, token_a: str, token_b: str) -> str:
        try:
            pair_address = self.factory.functions.getPair(
                Web3.to_checksum_address(token_a), Web3.to_checksum_address(token_b)
            ).call()
        except Exception as e:
            raise AdapterError(
                f"getPair call failed for {token_a}/{token_b}: {e}", dex=self.kind.value
            ) from e

        if not pair_address or int(pair_address, 16) == int(ZERO_ADDRESS, 16):
            raise AdapterError(
                f"Pair does not exist for {token_a}/{token_b}", dex=self.kind.value
            )
        return Web3.to_checksum_address(pair_address)

    def get_reserves(self, pool_address: str) -> Tuple[int, int]:
        try:
            result = self._pair(pool_address).functions.getReserves().call()
        except Exception as e:
            raise AdapterError(
                f"getReserves call failed for {pool_address}: {e}",
                dex=self.kind.value,
                pool_address=pool_address,
            ) from e

        if not isinstance(result, (list, tuple)) or len(result) < 2:
            raise AdapterError(
                f"getReserves returned insufficient results for {pool_address}",
                dex=self.kind.value,
                pool_address=pool_address,
            )
        reserve0, reserve1 = result[0], result[1]
        if not isinstance(reserve0, int) or not isinstance(reserve1, int):
            raise AdapterError(
                f"getReserves returned non-integer reserves for {pool_address}",
                dex=self.kind.value,
                pool_address=pool_address,
            )
        return reserve0, reserve1

    def get_pool(self, token_a: str, token_b: str) -> Pool:
        pair_address = self.get_pair_address(token_a, token_b)
        pair = self._pair(pair_address)
        try:
            token0 = Web3.to_checksum_address(pair.functions.token0().call())
            token1 = Web3.to_checksum_address(pair.functions.token1().call())
        except Exception as e:
            raise AdapterError(
                f"token0/token1 call failed for {pair_address}: {e}",
                dex=self.kind.value,
                pool_address=pair_address,
            ) from e
        reserve0, reserve1 = self.get_reserves(pair_address)

        return Pool(
            address=pair_address,
            dex=self.kind,
            token0=token0,
            token1=token1,
            reserve0=reserve0,
            reserve1=reserve1,
            fee_bps=self.fee_bps,
            last_updated=self.clock(),
        )


class SushiSwapAdapter(UniswapV2Adapter):
    """SushiSwap shares the Uniswap V2 pair layout."""

    name = "SushiSwap"
    kind = DexKind.SUSHISWAP

    def __init__(self, web3: Web3, router_address: str, fee_bps: int = SUSHISWAP_FEE_BPS, **kwargs):
        super().__init__(web3, router_address, fee_bps=fee_bps, **kwargs)
