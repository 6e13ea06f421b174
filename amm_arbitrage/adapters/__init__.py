"""
DEX adapter modules for different AMM families.
"""

from typing import Dict, Type

from web3 import Web3

from ..config import DexSettings
from ..constants import DexKind
from ..exceptions import ConfigError
from .base import DexAdapter
from .uniswap_v2 import SushiSwapAdapter, UniswapV2Adapter

ADAPTER_CLASSES: Dict[DexKind, Type[DexAdapter]] = {
    DexKind.UNISWAP_V2: UniswapV2Adapter,
    DexKind.SUSHISWAP: SushiSwapAdapter,
}


def build_adapter(web3: Web3, dex: DexSettings) -> DexAdapter:
    """
    Instantiate the adapter for a configured DEX.

    Raises:
        ConfigError: If no adapter implementation exists for the DEX kind
    """
    adapter_cls = ADAPTER_CLASSES.get(dex.kind)
    if adapter_cls is None:
        raise ConfigError(f"No adapter implementation for DEX kind '{dex.kind.value}'")
    return adapter_cls(web3, dex.router, fee_bps=dex.fee_bps)


__all__ = [
    "ADAPTER_CLASSES",
    "DexAdapter",
    "SushiSwapAdapter",
    "UniswapV2Adapter",
    "build_adapter",
]
