"""Tests for the dry-run execution gateway."""

import gc
import logging
import weakref

import pytest
from prometheus_client import generate_latest

from amm_arbitrage.exceptions import ExecutionError
from amm_arbitrage.execution import DryRunExecutionGateway
from amm_arbitrage.interfaces import ExecutionGateway
from amm_arbitrage.types import ArbitragePath, Opportunity

from conftest import DAI, ETHER, USDC, WETH, make_triangle

GWEI = 10**9


def make_opportunity(is_executable=True, reason=None):
    path = ArbitragePath(
        id="path-1",
        pools=make_triangle(),
        tokens=[WETH, USDC, DAI, WETH],
        start_token=WETH,
        start_amount=ETHER,
        end_amount=1_058_663_981_452_671_505,
        profit=58_663_981_452_671_505,
        profit_bps=586,
        gas_cost=6_420_000_000_000_000,
        net_profit=52_243_981_452_671_505,
        net_profit_bps=522,
    )
    return Opportunity(path, is_executable=is_executable, reason=reason, priority=522)


def test_satisfies_gateway_protocol():
    assert isinstance(DryRunExecutionGateway(), ExecutionGateway)


@pytest.mark.asyncio
async def test_submit_logs_and_records(metrics, caplog):
    gateway = DryRunExecutionGateway(metrics)
    opportunity = make_opportunity()

    with caplog.at_level(logging.INFO, logger="amm_arbitrage.execution"):
        result = await gateway.submit(opportunity, 20 * GWEI)

    assert result.success
    assert result.tx_hash is None
    assert gateway.submissions == 1
    assert "[DRY RUN]" in caplog.text
    assert "522 bps" in caplog.text
    output = generate_latest(metrics.registry).decode("utf-8")
    assert 'amm_arbitrage_executions_total{result="success"} 1.0' in output


@pytest.mark.asyncio
async def test_refuses_non_executable():
    gateway = DryRunExecutionGateway()

    with pytest.raises(ExecutionError) as exc_info:
        await gateway.submit(make_opportunity(False, "unprofitable after gas costs"), GWEI)

    assert exc_info.value.opportunity_id == "path-1"
    assert gateway.submissions == 0


@pytest.mark.asyncio
async def test_submitted_opportunities_are_not_retained():
    gateway = DryRunExecutionGateway()
    refs = []
    for _ in range(100):
        opportunity = make_opportunity()
        refs.append(weakref.ref(opportunity))
        assert (await gateway.submit(opportunity, GWEI)).success
    del opportunity
    gc.collect()

    assert gateway.submissions == 100
    assert all(ref() is None for ref in refs)
