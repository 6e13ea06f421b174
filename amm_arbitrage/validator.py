"""
Gas-aware validation and ranking of candidate paths.
"""

import dataclasses
import logging
from typing import Iterable, List, Optional

from .config import Settings
from .constants import BASE_TX_GAS, GAS_PER_SWAP, RejectionReason
from .metrics import ArbitrageMetrics
from .types import ArbitragePath, Opportunity
from .utils import BPS_DENOMINATOR

logger = logging.getLogger(__name__)


class OpportunityValidator:
    """Applies gas costs and trade limits to gross-profitable paths."""

    def __init__(self, settings: Settings, metrics: Optional[ArbitrageMetrics] = None):
        self.settings = settings
        self.metrics = metrics

    @staticmethod
    def estimate_gas_cost(path: ArbitragePath, gas_price: int) -> int:
        """Linear heuristic: base transaction plus a flat cost per swap, in wei."""
        gas_units = BASE_TX_GAS + GAS_PER_SWAP * path.hops
        return gas_units * gas_price

    def calculate_net_profit(self, path: ArbitragePath, gas_price: int) -> ArbitragePath:
        """Return a copy of ``path`` with gas cost and net figures filled in."""
        gas_cost = self.estimate_gas_cost(path, gas_price)
        net_profit = path.profit - gas_cost
        net_bps = (
            net_profit * BPS_DENOMINATOR // path.start_amount
            if net_profit > 0 and path.start_amount > 0
            else 0
        )
        return dataclasses.replace(
            path, gas_cost=gas_cost, net_profit=net_profit, net_profit_bps=net_bps
        )

    def validate(self, path: ArbitragePath, gas_price: int) -> Opportunity:
        """
        Decide whether a path is executable at ``gas_price``.

        Checks run in order and the first failure is the reported reason:
        net profit, net bps floor, minimum size, maximum size.
        """
        enriched = self.calculate_net_profit(path, gas_price)

        reason = None
        if enriched.net_profit <= 0:
            reason = RejectionReason.UNPROFITABLE_AFTER_GAS
        elif enriched.net_profit_bps < self.settings.min_profit_bps:
            reason = RejectionReason.BELOW_MINIMUM_BPS
        elif enriched.start_amount < self.settings.min_trade_amount:
            reason = RejectionReason.BELOW_MINIMUM_AMOUNT
        elif enriched.start_amount > self.settings.max_trade_amount:
            reason = RejectionReason.ABOVE_MAXIMUM_AMOUNT

        if reason is not None:
            logger.debug(
                f"Path {enriched.id[:8]} rejected: {reason.value} "
                f"(net {enriched.net_profit} wei, {enriched.net_profit_bps} bps)"
            )
            if self.metrics:
                self.metrics.record_rejection(reason.value)
            return Opportunity(path=enriched, is_executable=False, reason=reason.value)

        return Opportunity(
            path=enriched, is_executable=True, priority=enriched.net_profit_bps
        )

    def rank(self, paths: Iterable[ArbitragePath], gas_price: int) -> List[Opportunity]:
        """
        Executable opportunities, best first.

        Ordered by net bps, then by absolute net profit, then by discovery
        time (earlier first).
        """
        executable = [
            opportunity
            for opportunity in (self.validate(path, gas_price) for path in paths)
            if opportunity.is_executable
        ]
        executable.sort(
            key=lambda o: (-o.path.net_profit_bps, -o.path.net_profit, o.path.timestamp)
        )
        return executable

    def find_best(
        self, paths: Iterable[ArbitragePath], gas_price: int
    ) -> Optional[Opportunity]:
        ranked = self.rank(paths, gas_price)
        return ranked[0] if ranked else None
