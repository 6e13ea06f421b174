"""
Configuration loading and validation for the AMM arbitrage scanner.

A ``Settings`` value is built once at startup (from YAML or from the
environment) and passed explicitly to every component. It is frozen; there
is no module-level configuration.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from . import constants
from .constants import DexKind
from .exceptions import ConfigError
from .utils import ether_to_wei, mask_url


@dataclass(frozen=True)
class DexSettings:
    """One DEX family to attach an adapter for."""

    name: str
    kind: DexKind
    router: str
    fee_bps: int = constants.UNISWAP_V2_FEE_BPS


@dataclass(frozen=True)
class PairSettings:
    """A token pair whose pool should be resolved and tracked on ``dex``."""

    dex: DexKind
    token_a: str
    token_b: str


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings bundle.

    Attributes:
        rpc_http_url: HTTP(S) RPC endpoint used for view calls
        rpc_ws_url: WebSocket endpoint used for the block subscription
        start_token: Token every triangle starts and ends in (usually WETH)
        min_profit_bps: Minimum net profit for a path to be executable
        min_trade_amount: Smallest sampled trade size (wei)
        max_trade_amount: Largest sampled trade size (wei)
        pool_refresh_interval: Seconds between timed reserve refreshes
        heartbeat_interval: Seconds between subscription liveness checks
        reconnect_initial_delay: First reconnect backoff delay (seconds)
        reconnect_max_delay: Backoff cap (seconds)
        detection_interval: Seconds between arbitrage detection passes
        rpc_timeout: Bound on a single RPC call (seconds)
        connect_timeout: Bound on establishing the websocket (seconds)
        refresh_concurrency: Max parallel reserve fetches, 0 for unbounded
        max_gas_price_gwei: Gas price above which detection skips execution
        dry_run: If True, opportunities are only logged
        log_level: Logging level name
        metrics_port: Port for the Prometheus endpoint, None to disable
        dexes: DEX adapters to build
        pairs: Token pairs to resolve into tracked pools
    """

    rpc_http_url: str
    rpc_ws_url: str
    start_token: str
    min_profit_bps: int = 50
    min_trade_amount: int = 10**17
    max_trade_amount: int = 10 * 10**18
    pool_refresh_interval: float = constants.AVERAGE_BLOCK_TIME
    heartbeat_interval: float = constants.DEFAULT_HEARTBEAT_INTERVAL
    reconnect_initial_delay: float = constants.DEFAULT_RECONNECT_INITIAL_DELAY
    reconnect_max_delay: float = constants.DEFAULT_RECONNECT_MAX_DELAY
    detection_interval: float = constants.DEFAULT_DETECTION_INTERVAL
    rpc_timeout: float = constants.DEFAULT_RPC_TIMEOUT
    connect_timeout: float = constants.DEFAULT_CONNECT_TIMEOUT
    refresh_concurrency: int = 0
    max_gas_price_gwei: int = 100
    dry_run: bool = True
    log_level: str = "info"
    metrics_port: Optional[int] = None
    dexes: Tuple[DexSettings, ...] = field(default_factory=tuple)
    pairs: Tuple[PairSettings, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.start_token:
            raise ConfigError("start_token is required")
        if self.min_profit_bps < 0:
            raise ConfigError(f"min_profit_bps must be >= 0, got {self.min_profit_bps}")
        if self.min_trade_amount <= 0:
            raise ConfigError("min_trade_amount must be positive")
        if self.min_trade_amount > self.max_trade_amount:
            raise ConfigError(
                f"min_trade_amount ({self.min_trade_amount}) exceeds "
                f"max_trade_amount ({self.max_trade_amount})"
            )
        for name in (
            "pool_refresh_interval",
            "heartbeat_interval",
            "reconnect_initial_delay",
            "reconnect_max_delay",
            "detection_interval",
            "rpc_timeout",
            "connect_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.reconnect_initial_delay > self.reconnect_max_delay:
            raise ConfigError("reconnect_initial_delay exceeds reconnect_max_delay")
        if self.refresh_concurrency < 0:
            raise ConfigError("refresh_concurrency must be >= 0")
        for dex in self.dexes:
            if not 0 <= dex.fee_bps < 10_000:
                raise ConfigError(f"DEX '{dex.name}' fee_bps out of range: {dex.fee_bps}")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "Settings":
        """
        Build settings from a parsed YAML dictionary.

        Trade amounts are given in ether (``min_trade_amount_eth``) and
        converted to wei here.

        Raises:
            ConfigError: If required fields are missing or invalid
        """
        rpc_http_url = _get_required(config_dict, "rpc_http_url", str)
        rpc_ws_url = _get_required(config_dict, "rpc_ws_url", str)
        start_token = _get_required(config_dict, "start_token", str)

        kwargs: Dict[str, Any] = {}
        for key in (
            "min_profit_bps",
            "refresh_concurrency",
            "max_gas_price_gwei",
            "metrics_port",
        ):
            if config_dict.get(key) is not None:
                kwargs[key] = _as_int(config_dict[key], key)
        for key in (
            "pool_refresh_interval",
            "heartbeat_interval",
            "reconnect_initial_delay",
            "reconnect_max_delay",
            "detection_interval",
            "rpc_timeout",
            "connect_timeout",
        ):
            if config_dict.get(key) is not None:
                kwargs[key] = _as_float(config_dict[key], key)
        if "min_trade_amount_eth" in config_dict:
            kwargs["min_trade_amount"] = _parse_ether(
                config_dict["min_trade_amount_eth"], "min_trade_amount_eth"
            )
        if "max_trade_amount_eth" in config_dict:
            kwargs["max_trade_amount"] = _parse_ether(
                config_dict["max_trade_amount_eth"], "max_trade_amount_eth"
            )
        if "dry_run" in config_dict:
            kwargs["dry_run"] = bool(config_dict["dry_run"])
        if "log_level" in config_dict:
            kwargs["log_level"] = str(config_dict["log_level"])

        return cls(
            rpc_http_url=rpc_http_url,
            rpc_ws_url=rpc_ws_url,
            start_token=start_token,
            dexes=_parse_dexes(config_dict.get("dexes", [])),
            pairs=_parse_pairs(config_dict.get("pairs", [])),
            **kwargs,
        )

    def describe(self) -> List[str]:
        """Sanitized summary lines for startup logging."""
        return [
            f"RPC HTTPS: {mask_url(self.rpc_http_url)}",
            f"RPC WSS: {mask_url(self.rpc_ws_url)}",
            f"Start token: {self.start_token}",
            f"Min profit: {self.min_profit_bps} bps ({self.min_profit_bps / 100:.2f}%)",
            f"Trade size: {self.min_trade_amount} - {self.max_trade_amount} wei",
            f"Refresh interval: {self.pool_refresh_interval}s, "
            f"heartbeat: {self.heartbeat_interval}s",
            f"Reconnect backoff: {self.reconnect_initial_delay}s -> "
            f"{self.reconnect_max_delay}s",
            f"DEXes: {', '.join(d.name for d in self.dexes) or 'none'}",
            f"Dry run: {self.dry_run}",
        ]


def _get_required(d: Dict, key: str, expected_type: type) -> Any:
    """Get required config field with type validation."""
    if key not in d or d[key] in (None, ""):
        raise ConfigError(f"Missing required config field: {key}")
    val = d[key]
    if not isinstance(val, expected_type):
        raise ConfigError(
            f"Config field '{key}' must be {expected_type.__name__}, got {type(val).__name__}"
        )
    return val


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config field '{key}' must be an integer: {value!r}") from e


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config field '{key}' must be a number: {value!r}") from e


def _parse_ether(value: Any, key: str) -> int:
    try:
        return ether_to_wei(Decimal(str(value)))
    except (InvalidOperation, ValueError) as e:
        raise ConfigError(f"Config field '{key}' is not an ether amount: {value!r}") from e


def _parse_kind(raw: Any, where: str) -> DexKind:
    try:
        return DexKind(raw)
    except ValueError as e:
        valid = ", ".join(k.value for k in DexKind)
        raise ConfigError(f"{where} has invalid kind '{raw}' (must be one of {valid})") from e


def _parse_dexes(dexes_raw: List[Any]) -> Tuple[DexSettings, ...]:
    """Parse and validate DEX adapter configs."""
    if not isinstance(dexes_raw, list):
        raise ConfigError("dexes must be a list")

    dexes = []
    for i, dex in enumerate(dexes_raw):
        if not isinstance(dex, dict):
            raise ConfigError(f"DEX config {i} must be a dict")

        name = dex.get("name")
        if not name:
            raise ConfigError(f"DEX config {i} missing 'name'")
        router = dex.get("router")
        if not router:
            raise ConfigError(f"DEX '{name}' missing 'router'")

        dexes.append(
            DexSettings(
                name=name,
                kind=_parse_kind(dex.get("kind", DexKind.UNISWAP_V2.value), f"DEX '{name}'"),
                router=router,
                fee_bps=_as_int(dex.get("fee_bps", constants.UNISWAP_V2_FEE_BPS), "fee_bps"),
            )
        )
    return tuple(dexes)


def _parse_pairs(pairs_raw: List[Any]) -> Tuple[PairSettings, ...]:
    """Parse the token pairs to track."""
    if not isinstance(pairs_raw, list):
        raise ConfigError("pairs must be a list")

    pairs = []
    for i, pair in enumerate(pairs_raw):
        if not isinstance(pair, dict):
            raise ConfigError(f"Pair config {i} must be a dict")
        token_a = pair.get("token_a")
        token_b = pair.get("token_b")
        if not token_a or not token_b:
            raise ConfigError(f"Pair config {i} missing 'token_a' or 'token_b'")
        pairs.append(
            PairSettings(
                dex=_parse_kind(pair.get("dex", DexKind.UNISWAP_V2.value), f"Pair {i}"),
                token_a=token_a,
                token_b=token_b,
            )
        )
    return tuple(pairs)


def load_settings(config_path: str) -> Settings:
    """
    Load and validate settings from a YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigError("Config file must contain a YAML dictionary")

    return Settings.from_dict(config_dict)


def settings_from_env(env_file: Optional[str] = None) -> Settings:
    """
    Build settings from environment variables, loading ``.env`` first.

    Recognized variables: RPC_HTTPS_URL, RPC_WSS_URL, WETH_ADDRESS,
    USDC_ADDRESS, DAI_ADDRESS, UNISWAP_V2_ROUTER, SUSHISWAP_ROUTER,
    MIN_PROFIT_BPS, MIN_TRADE_AMOUNT_ETH, MAX_TRADE_AMOUNT_ETH,
    POOL_MONITOR_INTERVAL, HEARTBEAT_INTERVAL, CONNECTION_TIMEOUT,
    MAX_GAS_PRICE_GWEI, DRY_RUN, LOG_LEVEL, METRICS_PORT.

    When router and token addresses are present, the WETH/USDC, WETH/DAI
    and USDC/DAI pools are tracked on each configured DEX.

    Raises:
        ConfigError: If RPC URLs or WETH_ADDRESS are missing
    """
    load_dotenv(env_file)

    rpc_http_url = os.getenv("RPC_HTTPS_URL", "")
    rpc_ws_url = os.getenv("RPC_WSS_URL", "")
    if not rpc_http_url or not rpc_ws_url:
        raise ConfigError("RPC_HTTPS_URL and RPC_WSS_URL are required")

    weth = os.getenv("WETH_ADDRESS", "")
    if not weth:
        raise ConfigError("WETH_ADDRESS is required")

    dexes = []
    for env_key, name, kind in (
        ("UNISWAP_V2_ROUTER", "Uniswap V2", DexKind.UNISWAP_V2),
        ("SUSHISWAP_ROUTER", "SushiSwap", DexKind.SUSHISWAP),
    ):
        router = os.getenv(env_key)
        if router:
            dexes.append({"name": name, "kind": kind.value, "router": router})

    tokens = [
        t for t in (weth, os.getenv("USDC_ADDRESS"), os.getenv("DAI_ADDRESS")) if t
    ]
    pairs = []
    for dex in dexes:
        for i in range(len(tokens)):
            for j in range(i + 1, len(tokens)):
                pairs.append(
                    {"dex": dex["kind"], "token_a": tokens[i], "token_b": tokens[j]}
                )

    config_dict: Dict[str, Any] = {
        "rpc_http_url": rpc_http_url,
        "rpc_ws_url": rpc_ws_url,
        "start_token": weth,
        "dexes": dexes,
        "pairs": pairs,
        "min_profit_bps": os.getenv("MIN_PROFIT_BPS"),
        "pool_refresh_interval": os.getenv("POOL_MONITOR_INTERVAL"),
        "heartbeat_interval": os.getenv("HEARTBEAT_INTERVAL"),
        "connect_timeout": os.getenv("CONNECTION_TIMEOUT"),
        "max_gas_price_gwei": os.getenv("MAX_GAS_PRICE_GWEI"),
        "metrics_port": os.getenv("METRICS_PORT"),
        "dry_run": os.getenv("DRY_RUN", "true").lower() in ("true", "1", "yes"),
        "log_level": os.getenv("LOG_LEVEL", "info"),
    }
    if os.getenv("MIN_TRADE_AMOUNT_ETH"):
        config_dict["min_trade_amount_eth"] = os.getenv("MIN_TRADE_AMOUNT_ETH")
    if os.getenv("MAX_TRADE_AMOUNT_ETH"):
        config_dict["max_trade_amount_eth"] = os.getenv("MAX_TRADE_AMOUNT_ETH")

    return Settings.from_dict(config_dict)
