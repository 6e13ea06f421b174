"""
Prometheus metrics for the AMM arbitrage scanner.

Exposes reserve refresh, subscription health and detection statistics on a
``/metrics`` endpoint.
"""

import logging
import threading
from typing import Optional

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from .constants import SubscriberState

logger = logging.getLogger(__name__)

_STATE_VALUES = {
    SubscriberState.DISCONNECTED: 0,
    SubscriberState.CONNECTING: 1,
    SubscriberState.SUBSCRIBED: 2,
    SubscriberState.STOPPED: 3,
}


class ArbitrageMetrics:
    """
    Metric collection and exposure

    Provides Prometheus-compatible metrics for:
    - Reserve refresh cycles and per-pool failures
    - Block subscription state, blocks and reconnects
    - Opportunities found, rejected and executed
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._initialize_metrics()

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

        self._lock = threading.RLock()

    def _initialize_metrics(self):
        # === REFRESH METRICS ===
        self.refresh_cycles_total = Counter(
            "amm_arbitrage_refresh_cycles_total",
            "Total reserve refresh cycles completed",
            ["trigger"],
            registry=self.registry,
        )

        self.pool_update_failures_total = Counter(
            "amm_arbitrage_pool_update_failures_total",
            "Total failed per-pool reserve fetches",
            ["dex"],
            registry=self.registry,
        )

        self.refresh_duration_seconds = Histogram(
            "amm_arbitrage_refresh_duration_seconds",
            "Duration of a full reserve refresh cycle",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.pools_tracked = Gauge(
            "amm_arbitrage_pools_tracked",
            "Number of pools in the registry",
            registry=self.registry,
        )

        # === SUBSCRIPTION METRICS ===
        self.blocks_received_total = Counter(
            "amm_arbitrage_blocks_received_total",
            "Total new block headers received",
            registry=self.registry,
        )

        self.reconnects_total = Counter(
            "amm_arbitrage_reconnects_total",
            "Total subscription reconnect attempts",
            registry=self.registry,
        )

        self.subscriber_state = Gauge(
            "amm_arbitrage_subscriber_state",
            "Subscriber state (0=disconnected, 1=connecting, 2=subscribed, 3=stopped)",
            registry=self.registry,
        )

        self.last_block_number = Gauge(
            "amm_arbitrage_last_block_number",
            "Most recent block number seen",
            registry=self.registry,
        )

        # === DETECTION METRICS ===
        self.opportunities_found_total = Counter(
            "amm_arbitrage_opportunities_found_total",
            "Total candidate paths with positive gross profit",
            registry=self.registry,
        )

        self.opportunities_executable_total = Counter(
            "amm_arbitrage_opportunities_executable_total",
            "Total candidate paths that passed validation",
            registry=self.registry,
        )

        self.rejections_total = Counter(
            "amm_arbitrage_rejections_total",
            "Total candidate paths rejected by validation",
            ["reason"],
            registry=self.registry,
        )

        self.best_net_profit_bps = Gauge(
            "amm_arbitrage_best_net_profit_bps",
            "Net profit of the best executable opportunity in the last pass",
            registry=self.registry,
        )

        self.executions_total = Counter(
            "amm_arbitrage_executions_total",
            "Total submissions to the execution gateway",
            ["result"],
            registry=self.registry,
        )

    # === METRIC RECORDING METHODS ===

    def record_refresh_cycle(
        self, trigger: str, duration_seconds: float, pools_tracked: int
    ):
        with self._lock:
            self.refresh_cycles_total.labels(trigger=trigger).inc()
            self.refresh_duration_seconds.observe(duration_seconds)
            self.pools_tracked.set(pools_tracked)

    def record_pool_update_failure(self, dex: str):
        with self._lock:
            self.pool_update_failures_total.labels(dex=dex).inc()

    def record_block(self, block_number: int):
        with self._lock:
            self.blocks_received_total.inc()
            self.last_block_number.set(block_number)

    def record_reconnect(self):
        with self._lock:
            self.reconnects_total.inc()

    def set_subscriber_state(self, state: SubscriberState):
        with self._lock:
            self.subscriber_state.set(_STATE_VALUES[state])

    def record_detection(self, found: int, executable: int, best_net_bps: int = 0):
        with self._lock:
            self.opportunities_found_total.inc(found)
            self.opportunities_executable_total.inc(executable)
            self.best_net_profit_bps.set(best_net_bps)

    def record_rejection(self, reason: str):
        with self._lock:
            self.rejections_total.labels(reason=reason).inc()

    def record_execution(self, success: bool):
        with self._lock:
            self.executions_total.labels(result="success" if success else "failure").inc()

    # === HTTP SERVER ===

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        body = generate_latest(self.registry)
        return web.Response(
            body=body, headers={"Content-Type": CONTENT_TYPE_LATEST}
        )

    async def _health_handler(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/metrics", self._metrics_handler)
        app.router.add_get("/health", self._health_handler)
        return app

    async def start_server(self, host: str = "0.0.0.0", port: int = 8000):
        """Serve /metrics and /health until ``stop_server`` is called."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()
        logger.info(f"Metrics server listening on http://{host}:{port}/metrics")

    async def stop_server(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("Metrics server stopped")


# Global metrics instance (singleton pattern)
_global_metrics: Optional[ArbitrageMetrics] = None


def get_metrics() -> ArbitrageMetrics:
    """Get or create global metrics instance"""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = ArbitrageMetrics()
    return _global_metrics


def initialize_metrics(registry: Optional[CollectorRegistry] = None) -> ArbitrageMetrics:
    """Initialize global metrics with custom registry"""
    global _global_metrics
    _global_metrics = ArbitrageMetrics(registry)
    return _global_metrics
