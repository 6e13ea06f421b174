"""
web3.py node connections.

``Web3ChainSource`` is the production ``ChainDataSource``: a websocket
connection that streams ``newHeads`` and answers liveness checks. View calls
used by the DEX adapters go through a separate blocking HTTP client built by
``build_http_web3``.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

from web3 import AsyncWeb3, Web3
from web3.providers import WebSocketProvider

from .constants import DEFAULT_RPC_TIMEOUT
from .exceptions import NetworkError, SubscriptionError
from .types import BlockHeader
from .utils import mask_url

logger = logging.getLogger(__name__)


def build_http_web3(rpc_url: str, timeout: float = DEFAULT_RPC_TIMEOUT) -> Web3:
    """
    Create a blocking HTTP client for contract view calls.

    Raises:
        NetworkError: If the endpoint does not answer
    """
    endpoint = mask_url(rpc_url)
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

    # Query the chain directly; is_connected() swallows the cause
    try:
        chain_id = w3.eth.chain_id
        block = w3.eth.block_number
    except Exception as e:
        raise NetworkError(f"RPC connection failed: {e}", endpoint=endpoint) from e

    logger.info(f"Connected to {endpoint} (chain {chain_id}, block #{block:,})")
    return w3


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _as_hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)


def header_from_message(header: Any) -> BlockHeader:
    """Convert a ``newHeads`` payload (formatted or raw hex) to a BlockHeader."""
    try:
        number = _as_int(header["number"])
    except (KeyError, TypeError, ValueError) as e:
        raise SubscriptionError(f"Malformed block header: {header!r}") from e
    return BlockHeader(
        number=number,
        hash=_as_hex(header.get("hash")),
        timestamp=_as_int(header.get("timestamp")),
    )


class Web3ChainSource:
    """Websocket block stream backed by ``AsyncWeb3``."""

    def __init__(
        self,
        ws_url: str,
        http_web3: Optional[Web3] = None,
        rpc_timeout: float = DEFAULT_RPC_TIMEOUT,
    ):
        """
        Args:
            ws_url: WebSocket RPC endpoint
            http_web3: Optional HTTP client used for gas price queries
            rpc_timeout: Per-request timeout on the websocket
        """
        self.ws_url = ws_url
        self.http_web3 = http_web3
        self.rpc_timeout = rpc_timeout
        self.w3: Optional[AsyncWeb3] = None

    @property
    def endpoint(self) -> str:
        return mask_url(self.ws_url)

    def _require_connection(self) -> AsyncWeb3:
        if self.w3 is None:
            raise NetworkError("Websocket is not connected", endpoint=self.endpoint)
        return self.w3

    async def connect(self) -> None:
        await self.close()
        w3 = AsyncWeb3(WebSocketProvider(self.ws_url, request_timeout=self.rpc_timeout))
        try:
            await w3.provider.connect()
        except Exception as e:
            raise NetworkError(
                f"Failed to connect to WebSocket: {e}", endpoint=self.endpoint
            ) from e
        self.w3 = w3
        logger.info(f"Connected to WebSocket {self.endpoint}")

    async def close(self) -> None:
        w3, self.w3 = self.w3, None
        if w3 is None:
            return
        try:
            await w3.provider.disconnect()
        except Exception as e:
            logger.debug(f"WebSocket disconnect error: {e}")

    async def block_number(self) -> int:
        w3 = self._require_connection()
        return await w3.eth.block_number

    async def subscribe_new_blocks(self) -> AsyncIterator[BlockHeader]:
        w3 = self._require_connection()
        subscription_id = await w3.eth.subscribe("newHeads")
        logger.debug(f"newHeads subscription id {subscription_id}")

        async for message in w3.socket.process_subscriptions():
            result = message.get("result") if hasattr(message, "get") else None
            if result is None:
                continue
            yield header_from_message(result)

    async def gas_price(self) -> int:
        """Current gas price in wei, via HTTP when available."""
        if self.http_web3 is not None:
            loop = asyncio.get_running_loop()
            return await asyncio.wait_for(
                loop.run_in_executor(None, lambda: self.http_web3.eth.gas_price),
                timeout=self.rpc_timeout,
            )
        w3 = self._require_connection()
        return await w3.eth.gas_price
