"""
Execution gateways.

Only a dry-run gateway ships: it reports what would be submitted and
records the outcome, without building or signing a transaction.
"""

import logging
from typing import Optional

from .exceptions import ExecutionError
from .interfaces import ExecutionResult
from .metrics import ArbitrageMetrics
from .types import Opportunity
from .utils import wei_to_ether, wei_to_gwei

logger = logging.getLogger(__name__)


class DryRunExecutionGateway:
    """Logs executable opportunities and counts them; nothing is retained."""

    def __init__(self, metrics: Optional[ArbitrageMetrics] = None):
        self.metrics = metrics
        self.submissions = 0

    async def submit(self, opportunity: Opportunity, gas_price: int) -> ExecutionResult:
        """
        Raises:
            ExecutionError: If the opportunity was not marked executable
        """
        path = opportunity.path
        if not opportunity.is_executable:
            raise ExecutionError(
                f"Refusing to submit non-executable opportunity: {opportunity.reason}",
                opportunity_id=path.id,
            )

        logger.info(
            f"[DRY RUN] Would execute {path.describe()} with "
            f"{wei_to_ether(path.start_amount)} ETH: net profit "
            f"{wei_to_ether(path.net_profit or 0)} ETH ({path.net_profit_bps} bps) "
            f"at {wei_to_gwei(gas_price)} gwei"
        )
        self.submissions += 1
        if self.metrics:
            self.metrics.record_execution(True)
        return ExecutionResult(success=True)
