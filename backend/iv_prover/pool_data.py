"""
On-chain reads for the Uniswap V3 pool whose implied volatility is proven.

Fetches the reference block, pool state (slot0, liquidity), raw storage
words and Swap logs over the lookback window.
"""

import logging
import time
from dataclasses import dataclass

from web3 import Web3

from .abis import V3_POOL_ABI
from .block_utils import (
    ApproximateBlock,
    ReferenceBlock,
    approximate_blocks_for_timestamp,
    resolve_interval,
    timestamps_to_dates,
)
from .config import DEFAULT_APPROXIMATOR_CONFIG, DEFAULT_LOG_CHUNK_SIZE, ApproximatorConfig
from .swaps import SWAP_TOPIC, SwapEvent, decode_swap_log

logger = logging.getLogger(__name__)


def clamp_from_block(estimate: int, to_block: int) -> int:
    """Keep a log query start within [0, to_block]."""
    return min(max(0, estimate), to_block)


@dataclass(frozen=True)
class IvInputs:
    """Everything read from chain for one implied-volatility proof."""
    reference: ReferenceBlock
    lookback_start: ApproximateBlock
    swaps: list[SwapEvent]
    sqrt_price_x96: int
    current_tick: int
    liquidity: int

    @property
    def from_block(self) -> int:
        return clamp_from_block(self.lookback_start.number, self.reference.number)

    @property
    def to_block(self) -> int:
        return self.reference.number


class PoolReader:
    """Thin web3 wrapper around a single UniswapV3Pool."""

    def __init__(self, w3: Web3, pool_address: str, chunk_size: int = DEFAULT_LOG_CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.w3 = w3
        self.pool_address = Web3.to_checksum_address(pool_address)
        self.pool = w3.eth.contract(address=self.pool_address, abi=V3_POOL_ABI)
        self.chunk_size = chunk_size

    def get_reference_block(self, block_tag: str | int = "safe") -> ReferenceBlock:
        """Fetch number and timestamp of a block (default: the 'safe' head)."""
        block = self.w3.eth.get_block(block_tag)
        return ReferenceBlock(number=int(block["number"]), timestamp=int(block["timestamp"]))

    def get_slot0(self, block: int) -> tuple[int, int]:
        """Return (sqrtPriceX96, tick) at block."""
        result = self.pool.functions.slot0().call(block_identifier=block)
        return (result[0], result[1])

    def get_liquidity(self, block: int) -> int:
        """Return in-range liquidity at block."""
        return self.pool.functions.liquidity().call(block_identifier=block)

    def get_storage(self, slot: str, block: int) -> str:
        """Return the raw 32-byte storage word at slot as 0x-prefixed hex."""
        value = self.w3.eth.get_storage_at(self.pool_address, int(slot, 16), block_identifier=block)
        return Web3.to_hex(value)

    def get_swap_events(self, from_block: int, to_block: int) -> list[SwapEvent]:
        """
        Fetch and decode Swap logs in [from_block, to_block].

        Requests are split into chunk_size block ranges to stay under
        provider limits on eth_getLogs.
        """
        if from_block > to_block:
            raise ValueError(f"from_block {from_block} is after to_block {to_block}")

        swaps: list[SwapEvent] = []
        start = from_block
        while start <= to_block:
            end = min(start + self.chunk_size - 1, to_block)
            logs = self.w3.eth.get_logs({
                "address": self.pool_address,
                "topics": [SWAP_TOPIC],
                "fromBlock": start,
                "toBlock": end,
            })
            logger.debug("Blocks %d-%d: %d swap logs", start, end, len(logs))
            swaps.extend(decode_swap_log(log) for log in logs)
            start = end + 1

        swaps.sort(key=lambda s: (s.block_number, s.log_index))
        return swaps


def fetch_iv_inputs(
    reader: PoolReader,
    reference: ReferenceBlock,
    lookback_interval: str,
    chain_id: int,
    now: float | None = None,
    config: ApproximatorConfig = DEFAULT_APPROXIMATOR_CONFIG,
) -> IvInputs:
    """
    Read pool state at the reference block and the swaps of the lookback window.

    The window starts at the block estimated for (now - lookback_interval)
    and ends at the reference block.
    """
    if now is None:
        now = time.time()
    interval_seconds = resolve_interval(lookback_interval, config)
    lookback_ts = int(now) - interval_seconds

    lookback_start = approximate_blocks_for_timestamp(
        initial_timestamp_sec=lookback_ts,
        reference_block=reference,
        interval=interval_seconds,
        number_of_periods=1,
        chain_id=chain_id,
        config=config,
    )[0]

    sqrt_price_x96, current_tick = reader.get_slot0(reference.number)
    liquidity = reader.get_liquidity(reference.number)

    from_block = clamp_from_block(lookback_start.number, reference.number)
    if from_block != lookback_start.number:
        logger.warning(
            "Lookback start block %d outside [0, %d]; querying from %d",
            lookback_start.number, reference.number, from_block,
        )
    start_date, end_date = timestamps_to_dates([lookback_start.timestamp, reference.timestamp])
    logger.info(
        "Fetching swaps for blocks %d-%d (%s to %s UTC)",
        from_block, reference.number, start_date, end_date,
    )
    swaps = reader.get_swap_events(from_block, reference.number)
    logger.info("Found %d swaps", len(swaps))

    return IvInputs(
        reference=reference,
        lookback_start=lookback_start,
        swaps=swaps,
        sqrt_price_x96=sqrt_price_x96,
        current_tick=current_tick,
        liquidity=liquidity,
    )
