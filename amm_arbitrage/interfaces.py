"""
Collaborator interfaces the scanner core is written against.

The chain data source and the execution gateway live outside the core; the
core only depends on these protocols so that tests can plug in fakes and new
node clients or submission paths can be added without touching it.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from .types import BlockHeader, Opportunity


@runtime_checkable
class ChainDataSource(Protocol):
    """Streaming node connection used by the block subscriber."""

    async def connect(self) -> None:
        """Open the connection. Raises on failure."""
        ...

    async def close(self) -> None:
        """Close the connection. Must be safe to call more than once."""
        ...

    async def block_number(self) -> int:
        """Lightweight liveness check."""
        ...

    def subscribe_new_blocks(self) -> AsyncIterator[BlockHeader]:
        """Yield new block headers until the stream errors or is closed."""
        ...


@runtime_checkable
class GasPriceProvider(Protocol):
    """Source of the current gas price in wei."""

    async def gas_price(self) -> int:
        ...


@dataclass
class ExecutionResult:
    """Outcome reported by an execution gateway."""

    success: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None


@runtime_checkable
class ExecutionGateway(Protocol):
    """Accepts finalized opportunities for submission."""

    async def submit(self, opportunity: Opportunity, gas_price: int) -> ExecutionResult:
        ...
