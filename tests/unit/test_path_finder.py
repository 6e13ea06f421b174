"""
Tests for triangular path discovery on the WETH/USDC/DAI fixture.
"""

import dataclasses
import unittest

import pytest

from amm_arbitrage.config import Settings
from amm_arbitrage.constants import DexKind
from amm_arbitrage.exceptions import DataError, InsufficientPoolsError
from amm_arbitrage.path_finder import PathFinder
from amm_arbitrage.registry import PoolRegistry
from amm_arbitrage.types import Pool

from conftest import DAI, ETHER, POOL_A, POOL_B, POOL_C, USDC, WETH, make_triangle


class TestSearchTrianglePaths:
    def test_golden_one_ether(self, registry, settings):
        finder = PathFinder(registry, settings)

        paths = finder.search_triangle_paths(make_triangle(), WETH, ETHER)

        assert len(paths) == 1
        path = paths[0]
        assert path.tokens == [WETH, USDC, DAI, WETH]
        assert [p.address for p in path.pools] == [POOL_A, POOL_B, POOL_C]
        assert path.start_token == WETH
        assert path.start_amount == ETHER
        assert path.end_amount == 1_058_663_981_452_671_505
        assert path.profit == 58_663_981_452_671_505
        assert path.profit_bps == 586
        assert path.price_impact > 0
        assert path.gas_cost is None and path.net_profit is None

    def test_other_sizes(self, registry, settings):
        finder = PathFinder(registry, settings)
        pools = make_triangle()

        small = finder.search_triangle_paths(pools, WETH, ETHER // 10)[0]
        larger = finder.search_triangle_paths(pools, WETH, 11 * ETHER // 10)[0]

        assert small.end_amount == 108_223_032_886_703_534
        assert small.profit_bps == 822
        assert larger.end_amount == 1_161_719_570_351_928_911
        assert larger.profit_bps == 561

    def test_unprofitable_direction_is_not_recorded(self, registry, settings):
        finder = PathFinder(registry, settings)
        paths = finder.search_triangle_paths(make_triangle(), WETH, ETHER)
        # The reverse cycle WETH -> DAI -> USDC -> WETH loses money
        assert all(path.tokens[1] == USDC for path in paths)

    def test_every_path_returns_to_start(self, registry, settings):
        finder = PathFinder(registry, settings)
        for path in finder.search_triangle_paths(make_triangle(), WETH, ETHER):
            assert path.tokens[0] == path.tokens[-1] == WETH
            assert len({p.address for p in path.pools}) == 3
            assert path.end_amount > path.start_amount
            assert path.profit == path.end_amount - path.start_amount

    def test_balanced_pools_yield_nothing(self, registry, settings):
        pools = [
            Pool(POOL_A, DexKind.UNISWAP_V2, WETH, USDC, 100 * ETHER, 200_000 * 10**6),
            Pool(POOL_B, DexKind.UNISWAP_V2, USDC, DAI, 500_000 * 10**6, 500_000 * ETHER),
            Pool(POOL_C, DexKind.UNISWAP_V2, DAI, WETH, 200_000 * ETHER, 100 * ETHER),
        ]
        assert PathFinder(registry, settings).search_triangle_paths(pools, WETH, ETHER) == []

    def test_degenerate_pool_is_skipped(self, registry, settings):
        pools = make_triangle()
        pools[1] = pools[1].with_reserves(0, 0, 0.0)
        assert PathFinder(registry, settings).search_triangle_paths(pools, WETH, ETHER) == []

    def test_two_hop_loops_are_ignored(self, registry, settings):
        a = make_triangle()[0]
        twin = dataclasses.replace(a, address="0xtwin", reserve1=a.reserve1 * 2)
        pools = [a, twin, make_triangle()[1]]
        assert PathFinder(registry, settings).search_triangle_paths(pools, WETH, ETHER) == []

    def test_start_token_absent(self, registry, settings):
        paths = PathFinder(registry, settings).search_triangle_paths(
            make_triangle(), "0x0000000000000000000000000000000000000001", ETHER
        )
        assert paths == []

    def test_path_ids_are_unique(self, registry, settings):
        finder = PathFinder(registry, settings)
        first = finder.search_triangle_paths(make_triangle(), WETH, ETHER)[0]
        second = finder.search_triangle_paths(make_triangle(), WETH, ETHER)[0]
        assert first.id != second.id


class TestFindTriangleArbitrage:
    def test_insufficient_pools(self, settings, adapter, triangle):
        reg = PoolRegistry()
        reg.register_adapter(adapter)
        reg.add(triangle[0])
        reg.add(triangle[1])

        with pytest.raises(InsufficientPoolsError) as exc_info:
            PathFinder(reg, settings).find_triangle_arbitrage(WETH)
        assert exc_info.value.available == 2
        assert exc_info.value.required == 3
        assert isinstance(exc_info.value, DataError)

    def test_scans_whole_grid(self, registry, settings):
        paths = PathFinder(registry, settings).find_triangle_arbitrage(WETH)

        amounts = [p.start_amount for p in paths]
        assert ETHER // 10 in amounts
        assert 11 * ETHER // 10 in amounts
        assert all(p.profit_bps >= settings.min_profit_bps for p in paths)
        assert all(p.start_amount <= settings.max_trade_amount for p in paths)

    def test_gross_threshold_filters(self, registry, settings):
        strict = dataclasses.replace(settings, min_profit_bps=600)
        paths = PathFinder(registry, strict).find_triangle_arbitrage(WETH)
        # Only 0.1 ETH (822 bps) clears 600 bps
        assert [p.start_amount for p in paths] == [ETHER // 10]

    def test_reads_current_registry_state(self, registry, adapter, settings):
        finder = PathFinder(registry, settings)
        assert finder.find_triangle_arbitrage(WETH)

        adapter.reserves[POOL_B] = (500_000 * 10**6, 500_000 * ETHER)
        adapter.reserves[POOL_C] = (200_000 * ETHER, 100 * ETHER)
        registry.update(POOL_B)
        registry.update(POOL_C)

        assert finder.find_triangle_arbitrage(WETH) == []


class TestGenerateStartAmounts(unittest.TestCase):
    def _finder(self, minimum, maximum):
        settings = Settings(
            rpc_http_url="http://localhost:8545",
            rpc_ws_url="ws://localhost:8546",
            start_token=WETH,
            min_trade_amount=minimum,
            max_trade_amount=maximum,
        )
        return PathFinder(PoolRegistry(), settings)

    def test_default_grid(self):
        amounts = self._finder(ETHER // 10, 10 * ETHER).generate_start_amounts()
        self.assertEqual(len(amounts), 10)
        self.assertEqual(amounts[0], ETHER // 10)
        self.assertEqual(amounts[1], 11 * ETHER // 10)
        self.assertEqual(amounts[-1], 91 * ETHER // 10)

    def test_grid_includes_maximum_when_aligned(self):
        amounts = self._finder(ETHER, 10 * ETHER).generate_start_amounts()
        self.assertEqual(amounts, [n * ETHER for n in range(1, 11)])

    def test_zero_step_yields_minimum(self):
        self.assertEqual(self._finder(3, 9).generate_start_amounts(), [3])

    def test_min_equals_max(self):
        self.assertEqual(self._finder(ETHER, ETHER).generate_start_amounts(), [ETHER])
