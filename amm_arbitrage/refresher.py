"""
Reserve refresher.

Keeps registry reserves fresh on two triggers: a fixed interval timer that
approximates block time, and an explicit "refresh now" request raised by the
block subscriber. Each cycle fans out one reserve fetch per pool and waits
for all of them; a failing pool is logged and skipped for that cycle only.
"""

import asyncio
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, Optional

from .config import Settings
from .exceptions import AmmArbitrageError
from .metrics import ArbitrageMetrics
from .registry import PoolRegistry

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle."""

    updated: int = 0
    failed: int = 0
    duration: float = 0.0
    failed_addresses: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.updated + self.failed


class ReserveRefresher:
    """Periodic and on-demand reserve updater for every tracked pool."""

    def __init__(
        self,
        registry: PoolRegistry,
        settings: Settings,
        metrics: Optional[ArbitrageMetrics] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            registry: Pool registry to refresh
            settings: Interval, per-call timeout and concurrency bound
            metrics: Optional metrics sink
            executor: Thread pool for blocking adapter calls (loop default if None)
        """
        self.registry = registry
        self.settings = settings
        self.metrics = metrics
        self.executor = executor
        self.cycles = 0
        self._refresh_requested: Optional[asyncio.Event] = None

    @property
    def _requested(self) -> asyncio.Event:
        # Created lazily so the event binds to the running loop
        if self._refresh_requested is None:
            self._refresh_requested = asyncio.Event()
        return self._refresh_requested

    def request_refresh(self) -> None:
        """Ask the run loop to refresh now; requests during a cycle coalesce."""
        self._requested.set()

    async def _update_one(
        self, address: str, semaphore: Optional[asyncio.Semaphore]
    ) -> Optional[Exception]:
        loop = asyncio.get_running_loop()

        async def fetch():
            await asyncio.wait_for(
                loop.run_in_executor(self.executor, self.registry.update, address),
                timeout=self.settings.rpc_timeout,
            )

        try:
            if semaphore is None:
                await fetch()
            else:
                async with semaphore:
                    await fetch()
            return None
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Failed to update pool {address}: timed out after {self.settings.rpc_timeout}s"
            )
            return e
        except AmmArbitrageError as e:
            logger.warning(f"Failed to update pool {address}: {e}")
            return e
        except Exception as e:
            logger.warning(f"Unexpected error updating pool {address}: {e!r}")
            return e

    async def refresh_all(self, trigger: str = "manual") -> RefreshResult:
        """
        Refresh every pool concurrently and wait for all fetches.

        Args:
            trigger: Label recorded in metrics ("timer", "block", "manual")

        Returns:
            RefreshResult with per-cycle counts
        """
        started = time.monotonic()
        addresses = self.registry.addresses()
        semaphore = (
            asyncio.Semaphore(self.settings.refresh_concurrency)
            if self.settings.refresh_concurrency > 0
            else None
        )

        errors = await asyncio.gather(
            *[self._update_one(address, semaphore) for address in addresses]
        )

        result = RefreshResult(duration=time.monotonic() - started)
        for address, error in zip(addresses, errors):
            if error is None:
                result.updated += 1
            else:
                result.failed += 1
                result.failed_addresses.append(address)
                if self.metrics:
                    self.metrics.record_pool_update_failure(
                        getattr(error, "dex", None) or "unknown"
                    )

        self.cycles += 1
        if self.metrics:
            self.metrics.record_refresh_cycle(trigger, result.duration, len(addresses))

        if result.failed:
            logger.info(
                f"Refreshed {result.updated}/{result.total} pools "
                f"({result.failed} failed) in {result.duration:.2f}s"
            )
        else:
            logger.debug(f"Updated {result.updated} pools in {result.duration:.2f}s")
        return result

    async def _wait_for_trigger(self, stop_event: asyncio.Event) -> Optional[str]:
        """Block until the timer fires, a refresh is requested, or stop."""
        stop_task = asyncio.ensure_future(stop_event.wait())
        request_task = asyncio.ensure_future(self._requested.wait())
        try:
            done, _ = await asyncio.wait(
                {stop_task, request_task},
                timeout=self.settings.pool_refresh_interval,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (stop_task, request_task):
                if not task.done():
                    task.cancel()

        if stop_event.is_set():
            return None
        if request_task in done:
            return "block"
        return "timer"

    async def run(self, stop_event: asyncio.Event) -> None:
        """Refresh loop; returns promptly once ``stop_event`` is set."""
        logger.info(
            f"Reserve refresher started (interval: {self.settings.pool_refresh_interval}s)"
        )
        while not stop_event.is_set():
            trigger = await self._wait_for_trigger(stop_event)
            if trigger is None:
                break
            self._requested.clear()
            await self.refresh_all(trigger)
        logger.info("Reserve refresher stopped")
