"""
Shared fixtures: a WETH/USDC/DAI pool triangle with a known arbitrage, an
in-memory DEX adapter, and test settings with short timings.
"""

from typing import Dict, Tuple, Union

import pytest
from prometheus_client import CollectorRegistry

from amm_arbitrage.adapters.base import DexAdapter
from amm_arbitrage.config import Settings
from amm_arbitrage.constants import DexKind
from amm_arbitrage.exceptions import AdapterError
from amm_arbitrage.metrics import ArbitrageMetrics
from amm_arbitrage.registry import PoolRegistry
from amm_arbitrage.types import Pool

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"

POOL_A = "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"  # WETH/USDC
POOL_B = "0xAE461cA67B15dc8dc81CE7615e0320dA1A9aB8D5"  # USDC/DAI
POOL_C = "0xA478c2975Ab1Ea89e8196811F51A7B7Ade33eB11"  # DAI/WETH

ETHER = 10**18


def make_triangle(dex: DexKind = DexKind.UNISWAP_V2):
    """
    ETH/USDC at 2000, USDC/DAI at 1.04, DAI/ETH at 1900.

    One ether around the loop WETH -> USDC -> DAI -> WETH returns
    1058663981452671505 wei.
    """
    return [
        Pool(POOL_A, dex, WETH, USDC, 100 * ETHER, 200_000 * 10**6),
        Pool(POOL_B, dex, USDC, DAI, 500_000 * 10**6, 520_000 * ETHER),
        Pool(POOL_C, dex, DAI, WETH, 190_000 * ETHER, 100 * ETHER),
    ]


class InMemoryAdapter(DexAdapter):
    """Adapter serving reserves from a dict; values may be exceptions."""

    name = "In-memory V2"
    kind = DexKind.UNISWAP_V2

    def __init__(self, pools=(), fee_bps: int = 30):
        super().__init__(fee_bps)
        self.pools: Dict[str, Pool] = {pool.address: pool for pool in pools}
        self.reserves: Dict[str, Union[Tuple[int, int], Exception]] = {
            pool.address: (pool.reserve0, pool.reserve1) for pool in pools
        }
        self.calls = []

    def get_reserves(self, pool_address: str) -> Tuple[int, int]:
        self.calls.append(pool_address)
        value = self.reserves.get(pool_address)
        if value is None:
            raise AdapterError(
                f"unknown pool {pool_address}", dex=self.kind.value, pool_address=pool_address
            )
        if isinstance(value, Exception):
            raise value
        return value

    def get_pair_address(self, token_a: str, token_b: str) -> str:
        for pool in self.pools.values():
            if {pool.token0, pool.token1} == {token_a, token_b}:
                return pool.address
        raise AdapterError(f"Pair does not exist for {token_a}/{token_b}", dex=self.kind.value)

    def get_pool(self, token_a: str, token_b: str) -> Pool:
        address = self.get_pair_address(token_a, token_b)
        reserve0, reserve1 = self.get_reserves(address)
        return self.pools[address].with_reserves(reserve0, reserve1, 0.0)


@pytest.fixture
def settings():
    return Settings(
        rpc_http_url="http://localhost:8545",
        rpc_ws_url="ws://localhost:8546",
        start_token=WETH,
        min_profit_bps=50,
        min_trade_amount=ETHER // 10,
        max_trade_amount=10 * ETHER,
        pool_refresh_interval=0.05,
        heartbeat_interval=0.05,
        reconnect_initial_delay=0.01,
        reconnect_max_delay=0.08,
        detection_interval=0.05,
        rpc_timeout=0.5,
        connect_timeout=0.5,
    )


@pytest.fixture
def triangle():
    return make_triangle()


@pytest.fixture
def adapter(triangle):
    return InMemoryAdapter(triangle)


@pytest.fixture
def registry(adapter, triangle):
    reg = PoolRegistry(clock=lambda: 1_700_000_000.0)
    reg.register_adapter(adapter)
    for pool in triangle:
        reg.add(pool)
    return reg


@pytest.fixture
def metrics():
    return ArbitrageMetrics(CollectorRegistry())
