"""
Concurrent pool registry.

The registry is the single owner of pool state. Readers receive immutable
``Pool`` snapshots; reserve refreshes replace the whole value under the
write lock, so a torn read is impossible. The lock is only ever held for a
dictionary read or write, never across an RPC call.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .adapters.base import DexAdapter
from .constants import DexKind
from .exceptions import AdapterMissingError, PoolNotFoundError
from .types import Pool

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Many concurrent readers or one writer.

    Writer-preferring: once a writer is waiting, new readers queue behind it
    so that a steady stream of ``list_all`` calls cannot starve refreshes.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class PoolRegistry:
    """Store of pool snapshots keyed by pool address."""

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Args:
            clock: Timestamp source for ``last_updated`` on refresh
        """
        self._lock = ReadWriteLock()
        self._pools: Dict[str, Pool] = {}
        self._adapters: Dict[DexKind, DexAdapter] = {}
        self._clock = clock

    def register_adapter(self, adapter: DexAdapter) -> None:
        with self._lock.write_locked():
            self._adapters[adapter.kind] = adapter
        logger.info(f"Registered DEX adapter: {adapter.name or adapter.kind.value}")

    def get_adapter(self, kind: DexKind) -> DexAdapter:
        with self._lock.read_locked():
            adapter = self._adapters.get(kind)
        if adapter is None:
            raise AdapterMissingError(
                f"No adapter registered for DEX type: {kind.value}", dex=kind.value
            )
        return adapter

    def add(self, pool: Pool) -> None:
        """
        Insert or overwrite a pool.

        Raises:
            AdapterMissingError: If no adapter serves ``pool.dex``
        """
        with self._lock.write_locked():
            if pool.dex not in self._adapters:
                raise AdapterMissingError(
                    f"No adapter registered for DEX type: {pool.dex.value}",
                    dex=pool.dex.value,
                )
            self._pools[pool.address] = pool
        logger.info(f"Added pool to monitor: {pool.address} ({pool.dex.value})")

    def get(self, address: str) -> Pool:
        """
        Raises:
            PoolNotFoundError: If the address is not tracked
        """
        with self._lock.read_locked():
            pool = self._pools.get(address)
        if pool is None:
            raise PoolNotFoundError(f"Pool not found: {address}", address=address)
        return pool

    def list_all(self) -> List[Pool]:
        """Snapshot of every tracked pool; safe to iterate without the lock."""
        with self._lock.read_locked():
            return list(self._pools.values())

    def list_by_dex(self, kind: DexKind) -> List[Pool]:
        with self._lock.read_locked():
            return [pool for pool in self._pools.values() if pool.dex == kind]

    def addresses(self) -> List[str]:
        with self._lock.read_locked():
            return list(self._pools.keys())

    def update(self, address: str) -> Pool:
        """
        Refresh one pool's reserves through its DEX adapter.

        The adapter call runs with no lock held; only the commit takes the
        write lock. On adapter failure the stored pool is left untouched.

        Returns:
            The refreshed pool

        Raises:
            PoolNotFoundError: If the pool is unknown or was removed meanwhile
            AdapterMissingError: If its adapter is gone
            AdapterError: If the reserve fetch fails
        """
        with self._lock.read_locked():
            pool = self._pools.get(address)
            adapter = self._adapters.get(pool.dex) if pool is not None else None
        if pool is None:
            raise PoolNotFoundError(f"Pool not found: {address}", address=address)
        if adapter is None:
            raise AdapterMissingError(
                f"Adapter not found for DEX: {pool.dex.value}", dex=pool.dex.value
            )

        reserve0, reserve1 = adapter.get_reserves(address)

        with self._lock.write_locked():
            current = self._pools.get(address)
            if current is None:
                raise PoolNotFoundError(
                    f"Pool removed during update: {address}", address=address
                )
            refreshed = current.with_reserves(reserve0, reserve1, self._clock())
            self._pools[address] = refreshed

        logger.debug(f"Updated pool {address}: Reserve0={reserve0}, Reserve1={reserve1}")
        return refreshed

    def remove(self, address: str) -> None:
        with self._lock.write_locked():
            if self._pools.pop(address, None) is None:
                raise PoolNotFoundError(f"Pool not found: {address}", address=address)

    def find_pool_for_tokens(self, token_a: str, token_b: str, kind: DexKind) -> Pool:
        """
        Find the tracked pool for a pair on one DEX, in either token order.

        Raises:
            PoolNotFoundError: If no tracked pool matches
        """
        with self._lock.read_locked():
            for pool in self._pools.values():
                if pool.dex != kind:
                    continue
                if (pool.token0 == token_a and pool.token1 == token_b) or (
                    pool.token0 == token_b and pool.token1 == token_a
                ):
                    return pool

        raise PoolNotFoundError(
            f"Pool not found for tokens {token_a}/{token_b} on {kind.value}"
        )

    def discover(self, token_a: str, token_b: str, kind: DexKind) -> Pool:
        """
        Resolve a pair through its adapter and start tracking it.

        Already tracked pairs are returned without a network call.

        Raises:
            AdapterMissingError: If no adapter serves ``kind``
            AdapterError: If the adapter cannot resolve the pair
        """
        try:
            return self.find_pool_for_tokens(token_a, token_b, kind)
        except PoolNotFoundError:
            pass

        adapter = self.get_adapter(kind)
        pool = adapter.get_pool(token_a, token_b)
        self.add(pool)
        return pool

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._pools)

    def __contains__(self, address: object) -> bool:
        with self._lock.read_locked():
            return address in self._pools

    def oldest_update(self) -> Optional[float]:
        """Timestamp of the stalest pool, or None if empty."""
        with self._lock.read_locked():
            if not self._pools:
                return None
            return min(pool.last_updated for pool in self._pools.values())
