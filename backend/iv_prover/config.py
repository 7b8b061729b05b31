"""
Configuration constants for the Uniswap V3 implied-volatility prover.

Centralizes chain parameters, pool addresses, storage slots and service
endpoints. Credentials and per-deployment overrides come from the
environment (a local .env file is loaded if present).
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from dotenv import load_dotenv


class ConfigError(ValueError):
    """Raised when a required setting is missing or malformed."""


# ─── Chains ───
MAINNET_CHAIN_ID = 1
SEPOLIA_CHAIN_ID = 11155111

# Average seconds per block. Integer seconds only; sub-second chains
# (arbitrum at 0.25s, unichain) are not representable yet.
BLOCK_TIMES_IN_SECONDS = MappingProxyType({
    MAINNET_CHAIN_ID: 12,
    SEPOLIA_CHAIN_ID: 12,
})

INTERVAL_TO_SECONDS = MappingProxyType({
    "1d": 86400,
    "1h": 3600,
    "6h": 21600,
    "12h": 43200,
})


@dataclass(frozen=True)
class ApproximatorConfig:
    """Lookup tables used to turn chain ids and interval names into seconds."""
    block_times: Mapping[int, int] = field(default_factory=lambda: BLOCK_TIMES_IN_SECONDS)
    intervals: Mapping[str, int] = field(default_factory=lambda: INTERVAL_TO_SECONDS)

    def __post_init__(self) -> None:
        for chain_id, seconds in self.block_times.items():
            if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds <= 0:
                raise ConfigError(
                    f"Block time for chain {chain_id} must be a positive integer, got {seconds!r}"
                )
        for name, seconds in self.intervals.items():
            if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds <= 0:
                raise ConfigError(
                    f"Interval {name!r} must be a positive integer of seconds, got {seconds!r}"
                )
        # Freeze caller-supplied dicts
        object.__setattr__(self, "block_times", MappingProxyType(dict(self.block_times)))
        object.__setattr__(self, "intervals", MappingProxyType(dict(self.intervals)))


DEFAULT_APPROXIMATOR_CONFIG = ApproximatorConfig()

# ─── Pool (Ethereum Mainnet) ───

# USDC/WETH 0.05% Uniswap V3 pool
USDC_WETH_5BPS_POOL = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
POOL_FEE_TIER = 500  # hundredths of a bip
WETH_DECIMALS = 18

# Storage layout of a UniswapV3Pool (from `cast storage` on a verified pool)
SLOT0_STORAGE_SLOT = "0x0"
LIQUIDITY_STORAGE_SLOT = "0x4"

# ─── Circuit limits ───
# Allocated space must be a multiple of 32
MAX_RECEIPTS = 32
MAX_STORAGE = 32
DEFAULT_NUM_RECEIPTS = 2

# ─── Services ───
DEFAULT_PROVER_URL = "http://localhost:33247"
DEFAULT_GATEWAY_URL = "https://appsdkv3.brevis.network"
DEFAULT_CALLBACK_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
ALCHEMY_MAINNET_URL = "https://eth-mainnet.g.alchemy.com/v2/{key}"

# ─── Scheduling ───
SECONDS_PER_DAY = 86400
DEFAULT_LOG_CHUNK_SIZE = 2000


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one deployment of the prover loop."""
    rpc_url: str
    pool_address: str = USDC_WETH_5BPS_POOL
    source_chain_id: int = MAINNET_CHAIN_ID
    dest_chain_id: int = SEPOLIA_CHAIN_ID
    prover_url: str = DEFAULT_PROVER_URL
    gateway_url: str = DEFAULT_GATEWAY_URL
    partner_key: str = ""
    callback_address: str = DEFAULT_CALLBACK_ADDRESS
    num_receipts: int = DEFAULT_NUM_RECEIPTS
    lookback_interval: str = "1d"
    cycle_sleep_seconds: int = SECONDS_PER_DAY
    log_chunk_size: int = DEFAULT_LOG_CHUNK_SIZE


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ after loading .env.

    Returns:
        Frozen Settings instance

    Raises:
        ConfigError: if no RPC endpoint is configured or a value is invalid
    """
    if env is None:
        load_dotenv()
        env = os.environ

    rpc_url = env.get("RPC_URL", "").strip()
    if not rpc_url:
        alchemy_key = env.get("ALCHEMY_API_KEY", "").strip()
        if not alchemy_key:
            raise ConfigError("Set RPC_URL or ALCHEMY_API_KEY")
        rpc_url = ALCHEMY_MAINNET_URL.format(key=alchemy_key)

    num_receipts = _int_setting(env, "NUM_RECEIPTS", DEFAULT_NUM_RECEIPTS)
    if not 1 <= num_receipts <= MAX_RECEIPTS:
        raise ConfigError(f"NUM_RECEIPTS must be between 1 and {MAX_RECEIPTS}, got {num_receipts}")

    lookback_interval = env.get("LOOKBACK_INTERVAL", "1d").strip()
    if lookback_interval not in INTERVAL_TO_SECONDS:
        raise ConfigError(
            f"LOOKBACK_INTERVAL must be one of {sorted(INTERVAL_TO_SECONDS)}, got {lookback_interval!r}"
        )

    log_chunk_size = _int_setting(env, "LOG_CHUNK_SIZE", DEFAULT_LOG_CHUNK_SIZE)
    if log_chunk_size < 1:
        raise ConfigError(f"LOG_CHUNK_SIZE must be positive, got {log_chunk_size}")

    return Settings(
        rpc_url=rpc_url,
        pool_address=env.get("POOL_ADDRESS", "").strip() or USDC_WETH_5BPS_POOL,
        source_chain_id=_int_setting(env, "SOURCE_CHAIN_ID", MAINNET_CHAIN_ID),
        dest_chain_id=_int_setting(env, "DEST_CHAIN_ID", SEPOLIA_CHAIN_ID),
        prover_url=env.get("PROVER_URL", "").strip() or DEFAULT_PROVER_URL,
        gateway_url=env.get("GATEWAY_URL", "").strip() or DEFAULT_GATEWAY_URL,
        partner_key=env.get("BREVIS_PARTNER_KEY", "").strip(),
        callback_address=env.get("CALLBACK_ADDRESS", "").strip() or DEFAULT_CALLBACK_ADDRESS,
        num_receipts=num_receipts,
        lookback_interval=lookback_interval,
        cycle_sleep_seconds=_int_setting(env, "CYCLE_SLEEP_SECONDS", SECONDS_PER_DAY),
        log_chunk_size=log_chunk_size,
    )
