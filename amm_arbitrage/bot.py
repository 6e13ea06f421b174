"""
Arbitrage bot orchestration.

Runs the block subscriber, the reserve refresher and the detection loop
concurrently under one stop event. A new block only requests a refresh; the
refresher decides when to run it, and detection always reads a registry
snapshot.
"""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Optional

from .adapters import build_adapter
from .chain import Web3ChainSource, build_http_web3
from .config import Settings
from .exceptions import (
    AdapterError,
    AdapterMissingError,
    AmmArbitrageError,
    ExecutionError,
    InsufficientPoolsError,
    PoolNotFoundError,
)
from .execution import DryRunExecutionGateway
from .interfaces import ChainDataSource, ExecutionGateway, GasPriceProvider
from .metrics import ArbitrageMetrics
from .path_finder import PathFinder
from .refresher import RefreshResult, ReserveRefresher
from .registry import PoolRegistry
from .subscriber import ResilientSubscriber
from .types import BlockHeader, Opportunity
from .utils import gwei_to_wei, wei_to_ether, wei_to_gwei
from .validator import OpportunityValidator

logger = logging.getLogger(__name__)


class ArbitrageBot:
    """Wires the scanner components together and owns their lifecycle."""

    def __init__(
        self,
        settings: Settings,
        registry: PoolRegistry,
        source: ChainDataSource,
        gateway: ExecutionGateway,
        gas_price_provider: GasPriceProvider,
        metrics: Optional[ArbitrageMetrics] = None,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings
        self.registry = registry
        self.gateway = gateway
        self.gas_price_provider = gas_price_provider
        self.metrics = metrics
        self.executor = executor

        self.refresher = ReserveRefresher(registry, settings, metrics, executor)
        self.subscriber = ResilientSubscriber(source, settings, self._on_block, metrics)
        self.path_finder = PathFinder(registry, settings)
        self.validator = OpportunityValidator(settings, metrics)

        self.detections = 0
        self.last_opportunity: Optional[Opportunity] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def stop_event(self) -> asyncio.Event:
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        return self._stop_event

    def stop(self) -> None:
        """Signal every loop to exit; ``run`` returns once they have."""
        logger.info("Shutdown requested")
        self.stop_event.set()

    def _on_block(self, header: BlockHeader) -> None:
        self.refresher.request_refresh()

    async def _current_gas_price(self) -> int:
        return await asyncio.wait_for(
            self.gas_price_provider.gas_price(), timeout=self.settings.rpc_timeout
        )

    async def detect_once(self) -> Optional[Opportunity]:
        """
        One detection pass: search, rank, hand the best to the gateway.

        Returns:
            The best executable opportunity, or None
        """
        self.detections += 1
        loop = asyncio.get_running_loop()
        try:
            paths = await loop.run_in_executor(
                self.executor,
                self.path_finder.find_triangle_arbitrage,
                self.settings.start_token,
            )
        except (InsufficientPoolsError, PoolNotFoundError) as e:
            logger.debug(f"No opportunities: {e}")
            return None

        if not paths:
            if self.metrics:
                self.metrics.record_detection(0, 0)
            return None

        try:
            gas_price = await self._current_gas_price()
        except asyncio.TimeoutError:
            logger.warning("Gas price query timed out; skipping detection pass")
            return None
        except Exception as e:
            logger.warning(f"Failed to get gas price: {e}")
            return None

        ranked = self.validator.rank(paths, gas_price)
        best = ranked[0] if ranked else None
        if self.metrics:
            self.metrics.record_detection(
                len(paths), len(ranked), best.path.net_profit_bps if best else 0
            )
        if best is None:
            logger.debug(f"{len(paths)} candidate paths, none executable after gas")
            return None

        path = best.path
        logger.info(
            f"Found arbitrage opportunity {path.id[:8]}: {path.describe()} | "
            f"in {wei_to_ether(path.start_amount)} ETH, "
            f"net {wei_to_ether(path.net_profit)} ETH ({path.net_profit_bps} bps), "
            f"gas {wei_to_ether(path.gas_cost)} ETH"
        )
        self.last_opportunity = best

        if gas_price > gwei_to_wei(self.settings.max_gas_price_gwei):
            logger.warning(
                f"Gas price {wei_to_gwei(gas_price)} gwei above limit "
                f"{self.settings.max_gas_price_gwei} gwei; not executing"
            )
            return best

        try:
            result = await self.gateway.submit(best, gas_price)
        except ExecutionError as e:
            logger.error(f"Execution failed: {e}")
            if self.metrics:
                self.metrics.record_execution(False)
            return best

        if not result.success:
            logger.warning(f"Execution rejected: {result.error}")
        return best

    async def _detection_loop(self, stop_event: asyncio.Event) -> None:
        logger.info(
            f"Arbitrage detection started (interval: {self.settings.detection_interval}s)"
        )
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self.settings.detection_interval
                )
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.detect_once()
            except AmmArbitrageError as e:
                logger.error(f"Detection pass failed: {e}")
            except Exception as e:
                logger.error(f"Unexpected error in detection pass: {e!r}")
        logger.info("Arbitrage detection stopped")

    async def run_once(self) -> RefreshResult:
        """Refresh every pool once and run a single detection pass."""
        result = await self.refresher.refresh_all("manual")
        await self.detect_once()
        return result

    async def run(self) -> None:
        """Run all loops until ``stop`` is called."""
        stop_event = self.stop_event
        for line in self.settings.describe():
            logger.info(line)

        if self.metrics and self.settings.metrics_port:
            await self.metrics.start_server(port=self.settings.metrics_port)

        tasks = []
        try:
            if not stop_event.is_set():
                await self.refresher.refresh_all("startup")
                logger.info(f"Monitoring {len(self.registry)} pools")

            tasks = [
                asyncio.ensure_future(self.subscriber.run(stop_event)),
                asyncio.ensure_future(self.refresher.run(stop_event)),
                asyncio.ensure_future(self._detection_loop(stop_event)),
            ]
            await asyncio.gather(*tasks)
        finally:
            stop_event.set()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            if self.metrics and self.settings.metrics_port:
                await self.metrics.stop_server()
            logger.info("Bot stopped")


def build_bot(settings: Settings, metrics: Optional[ArbitrageMetrics] = None) -> ArbitrageBot:
    """
    Connect to the node, attach adapters and resolve the configured pairs.

    Pairs that cannot be resolved are logged and skipped.

    Raises:
        NetworkError: If the HTTP endpoint is unreachable
        ConfigError: If a DEX kind has no adapter implementation
    """
    web3 = build_http_web3(settings.rpc_http_url, timeout=settings.rpc_timeout)

    registry = PoolRegistry()
    for dex in settings.dexes:
        registry.register_adapter(build_adapter(web3, dex))

    for pair in settings.pairs:
        try:
            pool = registry.discover(pair.token_a, pair.token_b, pair.dex)
        except (AdapterError, AdapterMissingError) as e:
            logger.warning(f"Skipping pair {pair.token_a}/{pair.token_b} on {pair.dex.value}: {e}")
            continue
        logger.debug(f"Resolved {pair.dex.value} pool {pool.address}")

    if not settings.dry_run:
        logger.warning("Live submission is not available; opportunities are logged only")

    source = Web3ChainSource(settings.rpc_ws_url, http_web3=web3, rpc_timeout=settings.rpc_timeout)
    return ArbitrageBot(
        settings,
        registry,
        source,
        DryRunExecutionGateway(metrics),
        gas_price_provider=source,
        metrics=metrics,
    )
