"""
Resilient block subscription.

Maintains a live ``newHeads`` subscription with a heartbeat check and
reconnects with exponential backoff whenever the stream errors, ends, or the
heartbeat fails. Every wait (connect, backoff, stream, heartbeat) races the
stop event, and stop always wins.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from .config import Settings
from .constants import SubscriberState
from .exceptions import HeartbeatError, NetworkError, SubscriptionError
from .interfaces import ChainDataSource
from .metrics import ArbitrageMetrics
from .types import BlockHeader

logger = logging.getLogger(__name__)

BlockHandler = Callable[[BlockHeader], Union[None, Awaitable[None]]]


class ReconnectBackoff:
    """Exponential backoff: initial, initial*factor, ... capped at maximum."""

    def __init__(self, initial: float = 3.0, maximum: float = 30.0, factor: float = 2.0):
        if initial <= 0 or maximum < initial or factor < 1:
            raise ValueError(
                f"Invalid backoff: initial={initial}, maximum={maximum}, factor={factor}"
            )
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.current = initial

    def next_delay(self) -> float:
        """Return the delay to wait now and grow the next one."""
        delay = self.current
        self.current = min(self.current * self.factor, self.maximum)
        return delay

    def reset(self) -> None:
        self.current = self.initial


class ResilientSubscriber:
    """
    Reconnecting block subscriber.

    State machine: DISCONNECTED -> CONNECTING -> SUBSCRIBED, back to
    DISCONNECTED on any error, STOPPED once the run loop exits.
    """

    def __init__(
        self,
        source: ChainDataSource,
        settings: Settings,
        on_block: BlockHandler,
        metrics: Optional[ArbitrageMetrics] = None,
    ):
        """
        Args:
            source: Streaming node connection
            settings: Heartbeat interval, timeouts and backoff bounds
            on_block: Called (sync or async) for every new block header
            metrics: Optional metrics sink
        """
        self.source = source
        self.settings = settings
        self.on_block = on_block
        self.metrics = metrics
        self.backoff = ReconnectBackoff(
            settings.reconnect_initial_delay, settings.reconnect_max_delay
        )

        self.state = SubscriberState.DISCONNECTED
        self.blocks_seen = 0
        self.last_block: Optional[int] = None
        self.reconnects = 0
        self.last_error: Optional[Exception] = None

    def _set_state(self, state: SubscriberState) -> None:
        if state != self.state:
            logger.debug(f"Subscriber state: {self.state.value} -> {state.value}")
        self.state = state
        if self.metrics:
            self.metrics.set_subscriber_state(state)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Connect, listen and reconnect until ``stop_event`` is set."""
        self._set_state(SubscriberState.DISCONNECTED)
        try:
            while not stop_event.is_set():
                try:
                    await self._connect_and_listen(stop_event)
                except NetworkError as e:
                    self.last_error = e
                    logger.warning(f"Connection lost: {e}")
                except Exception as e:
                    self.last_error = SubscriptionError(str(e), endpoint=None)
                    logger.warning(f"Connection lost: {e!r}")
                finally:
                    await self._close_source()
                    self._set_state(SubscriberState.DISCONNECTED)

                if stop_event.is_set():
                    break

                delay = self.backoff.next_delay()
                self.reconnects += 1
                if self.metrics:
                    self.metrics.record_reconnect()
                logger.warning(f"Reconnecting in {delay:g}s (attempt {self.reconnects})...")
                if await self._wait_or_stop(stop_event, delay):
                    break
        finally:
            await self._close_source()
            self._set_state(SubscriberState.STOPPED)
            logger.info(
                f"Block subscriber stopped ({self.blocks_seen} blocks, "
                f"{self.reconnects} reconnects)"
            )

    async def _wait_or_stop(self, stop_event: asyncio.Event, delay: float) -> bool:
        """Sleep ``delay`` seconds; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _race_stop(self, awaitable: Awaitable, stop_event: asyncio.Event) -> bool:
        """Run ``awaitable`` unless stop comes first; True if it completed."""
        task = asyncio.ensure_future(awaitable)
        stop_task = asyncio.ensure_future(stop_event.wait())
        done, _ = await asyncio.wait(
            {task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if task in done:
            stop_task.cancel()
            task.result()
            return True

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return False

    async def _connect_and_listen(self, stop_event: asyncio.Event) -> None:
        self._set_state(SubscriberState.CONNECTING)
        logger.info("Connecting to block stream...")
        try:
            connected = await self._race_stop(
                asyncio.wait_for(
                    self.source.connect(), timeout=self.settings.connect_timeout
                ),
                stop_event,
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"Connection timed out after {self.settings.connect_timeout}s"
            ) from e
        if not connected:
            return

        self._set_state(SubscriberState.SUBSCRIBED)
        self.backoff.reset()
        logger.info("Subscribed to new blocks")

        consume_task = asyncio.ensure_future(self._consume())
        heartbeat_task = asyncio.ensure_future(self._heartbeat())
        stop_task = asyncio.ensure_future(stop_event.wait())
        tasks = {consume_task, heartbeat_task, stop_task}
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if stop_task in done:
            return
        for task in (heartbeat_task, consume_task):
            if task in done and not task.cancelled() and task.exception() is not None:
                raise task.exception()
        raise SubscriptionError("Block subscription ended unexpectedly")

    async def _consume(self) -> None:
        stream = self.source.subscribe_new_blocks()
        try:
            async for header in stream:
                self.blocks_seen += 1
                self.last_block = header.number
                if self.metrics:
                    self.metrics.record_block(header.number)
                logger.debug(f"New block {header.number}")
                await self._dispatch(header)
        except (asyncio.CancelledError, NetworkError):
            raise
        except Exception as e:
            raise SubscriptionError(f"Subscription error: {e}") from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await asyncio.gather(aclose(), return_exceptions=True)

    async def _dispatch(self, header: BlockHeader) -> None:
        try:
            result = self.on_block(header)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Block handler failed for block {header.number}: {e}")

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.settings.heartbeat_interval)
            try:
                block_number = await asyncio.wait_for(
                    self.source.block_number(), timeout=self.settings.rpc_timeout
                )
            except asyncio.TimeoutError as e:
                raise HeartbeatError(
                    f"Heartbeat timed out after {self.settings.rpc_timeout}s"
                ) from e
            except Exception as e:
                raise HeartbeatError(f"Heartbeat failed: {e}") from e
            logger.debug(f"Heartbeat OK (block {block_number})")

    async def _close_source(self) -> None:
        try:
            await self.source.close()
        except Exception as e:
            logger.debug(f"Error while closing source: {e}")
