"""
Tests for bot orchestration: detection passes against the fixture triangle,
the gas price gate, and the full run/stop lifecycle.
"""

import asyncio
import dataclasses
import logging
import time
from unittest.mock import MagicMock, patch

import pytest

from amm_arbitrage.bot import ArbitrageBot, build_bot
from amm_arbitrage.chain import Web3ChainSource
from amm_arbitrage.config import DexSettings, PairSettings
from amm_arbitrage.constants import DexKind, SubscriberState
from amm_arbitrage.execution import DryRunExecutionGateway
from amm_arbitrage.refresher import RefreshResult
from amm_arbitrage.registry import PoolRegistry
from amm_arbitrage.types import BlockHeader

from conftest import DAI, ETHER, POOL_A, USDC, WETH, InMemoryAdapter

GWEI = 10**9

# 1.1 ETH at 20 gwei: 61719570351928911 gross minus 6420000000000000 gas
BEST_NET_PROFIT = 55_299_570_351_928_911


class FixedGasPrice:
    def __init__(self, wei=20 * GWEI, error=None):
        self.wei = wei
        self.error = error
        self.calls = 0

    async def gas_price(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.wei


class BlockSource:
    """Yields the given block numbers once, then idles until closed."""

    def __init__(self, blocks=(1, 2, 3)):
        self.blocks = list(blocks)
        self.closed = 0

    async def connect(self):
        pass

    async def close(self):
        self.closed += 1

    async def block_number(self):
        return self.blocks[-1] if self.blocks else 0

    async def subscribe_new_blocks(self):
        for number in self.blocks:
            yield BlockHeader(number=number)
            await asyncio.sleep(0)
        await asyncio.Event().wait()


def make_bot(settings, registry, gas=None, metrics=None, source=None):
    return ArbitrageBot(
        settings,
        registry,
        source or BlockSource(),
        DryRunExecutionGateway(metrics),
        gas or FixedGasPrice(),
        metrics=metrics,
    )


class TestDetectOnce:
    @pytest.mark.asyncio
    async def test_submits_best_opportunity(self, settings, registry):
        bot = make_bot(settings, registry)

        best = await bot.detect_once()

        assert best is not None and best.is_executable
        # 0.1 ETH has the best gross bps but 1.1 ETH wins after gas
        assert best.path.start_amount == 11 * ETHER // 10
        assert best.path.net_profit == BEST_NET_PROFIT
        assert best.path.net_profit_bps == 502
        assert bot.gateway.submissions == 1
        assert bot.last_opportunity is best
        assert bot.detections == 1

    @pytest.mark.asyncio
    async def test_insufficient_pools(self, settings, adapter, triangle):
        reg = PoolRegistry()
        reg.register_adapter(adapter)
        reg.add(triangle[0])
        gas = FixedGasPrice()
        bot = make_bot(settings, reg, gas=gas)

        assert await bot.detect_once() is None
        assert gas.calls == 0

    @pytest.mark.asyncio
    async def test_no_candidates_skips_gas_query(self, settings, registry):
        gas = FixedGasPrice()
        bot = make_bot(dataclasses.replace(settings, min_profit_bps=5_000), registry, gas=gas)

        assert await bot.detect_once() is None
        assert gas.calls == 0

    @pytest.mark.asyncio
    async def test_gas_above_limit_is_not_submitted(self, settings, registry, caplog):
        bot = make_bot(dataclasses.replace(settings, max_gas_price_gwei=10), registry)

        with caplog.at_level(logging.WARNING, logger="amm_arbitrage.bot"):
            best = await bot.detect_once()

        assert best is not None
        assert bot.gateway.submissions == 0
        assert "above limit" in caplog.text

    @pytest.mark.asyncio
    async def test_nothing_executable_at_high_gas(self, settings, registry, metrics):
        bot = make_bot(settings, registry, gas=FixedGasPrice(1_000 * GWEI), metrics=metrics)

        assert await bot.detect_once() is None
        assert bot.gateway.submissions == 0
        assert bot.last_opportunity is None

    @pytest.mark.asyncio
    async def test_gas_price_failure(self, settings, registry):
        bot = make_bot(settings, registry, gas=FixedGasPrice(error=ConnectionError("down")))

        assert await bot.detect_once() is None
        assert bot.gateway.submissions == 0

    @pytest.mark.asyncio
    async def test_run_once(self, settings, registry, adapter):
        bot = make_bot(settings, registry)

        result = await bot.run_once()

        assert isinstance(result, RefreshResult)
        assert result.updated == 3
        assert result.failed == 0
        assert bot.last_opportunity is not None


class TestRunLifecycle:
    @pytest.mark.asyncio
    async def test_run_until_stopped(self, settings, registry, adapter):
        source = BlockSource()
        bot = make_bot(settings, registry, source=source)

        task = asyncio.ensure_future(bot.run())
        deadline = time.monotonic() + 2.0
        while bot.subscriber.blocks_seen < 3 or not bot.gateway.submissions:
            assert time.monotonic() < deadline, "bot made no progress"
            await asyncio.sleep(0.01)

        bot.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert bot.subscriber.state == SubscriberState.STOPPED
        assert bot.subscriber.last_block == 3
        assert source.closed >= 1
        # Startup refresh plus at least one block- or timer-driven cycle
        assert adapter.calls.count(POOL_A) >= 2

    @pytest.mark.asyncio
    async def test_stop_before_run(self, settings, registry, adapter):
        bot = make_bot(settings, registry)
        bot.stop()

        await asyncio.wait_for(bot.run(), timeout=1.0)

        assert adapter.calls == []


class TestBuildBot:
    def test_resolves_configured_pairs(self, settings, triangle):
        adapter = InMemoryAdapter(triangle)
        unknown = "0x0000000000000000000000000000000000000001"
        configured = dataclasses.replace(
            settings,
            dexes=(DexSettings("Uniswap V2", DexKind.UNISWAP_V2, "0xrouter"),),
            pairs=(
                PairSettings(DexKind.UNISWAP_V2, WETH, USDC),
                PairSettings(DexKind.UNISWAP_V2, USDC, DAI),
                PairSettings(DexKind.UNISWAP_V2, DAI, WETH),
                PairSettings(DexKind.UNISWAP_V2, WETH, unknown),
                PairSettings(DexKind.SUSHISWAP, WETH, USDC),
            ),
        )

        with patch("amm_arbitrage.bot.build_http_web3", return_value=MagicMock()), patch(
            "amm_arbitrage.bot.build_adapter", return_value=adapter
        ):
            bot = build_bot(configured)

        assert len(bot.registry) == 3
        assert isinstance(bot.subscriber.source, Web3ChainSource)
        assert bot.gas_price_provider is bot.subscriber.source
        assert isinstance(bot.gateway, DryRunExecutionGateway)


class TestDetectionLoop:
    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_end_loop(self, settings, registry, caplog):
        bot = make_bot(settings, registry)
        calls = []

        async def flaky_detect():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return None

        bot.detect_once = flaky_detect
        stop = asyncio.Event()

        with caplog.at_level(logging.ERROR, logger="amm_arbitrage.bot"):
            task = asyncio.ensure_future(bot._detection_loop(stop))
            deadline = time.monotonic() + 2.0
            while len(calls) < 2:
                assert time.monotonic() < deadline, "detection loop stopped"
                await asyncio.sleep(0.01)
            stop.set()
            await asyncio.wait_for(task, timeout=1.0)

        assert "boom" in caplog.text
