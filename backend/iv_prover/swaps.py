"""
Uniswap V3 Swap event decoding and trade-size selection.

The circuit allocates a fixed number of receipt slots ahead of time, so only
the largest swaps (by abs(amount1)) of the lookback window are proven.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from eth_abi.abi import decode
from hexbytes import HexBytes
from web3 import Web3

from .abis import SWAP_DATA_TYPES, SWAP_EVENT_SIGNATURE

SWAP_TOPIC = Web3.to_hex(Web3.keccak(text=SWAP_EVENT_SIGNATURE))


@dataclass(frozen=True)
class SwapEvent:
    """A decoded Uniswap V3 Swap log."""
    address: str
    block_number: int
    tx_hash: str
    log_index: int
    event_id: str  # topic0
    sender: str
    recipient: str
    amount0: int
    amount1: int
    sqrt_price_x96: int
    liquidity: int
    tick: int

    @property
    def trade_size(self) -> int:
        """abs(amount1); amount1 is WETH on the mainnet USDC/WETH pool."""
        return abs(self.amount1)


def decode_swap_log(log: Mapping[str, Any]) -> SwapEvent:
    """
    Decode a raw eth_getLogs entry for a V3 Swap event.

    topics:
      topics[0] = event signature hash
      topics[1] = indexed sender
      topics[2] = indexed recipient
    data:
      amount0, amount1, sqrtPriceX96, liquidity, tick
    """
    topics = [HexBytes(t) for t in log["topics"]]
    if len(topics) < 3:
        raise ValueError(f"Swap log has {len(topics)} topics, expected 3")
    if Web3.to_hex(topics[0]) != SWAP_TOPIC:
        raise ValueError(f"Not a Swap log: topic0={Web3.to_hex(topics[0])}")

    amount0, amount1, sqrt_price_x96, liquidity, tick = decode(
        SWAP_DATA_TYPES, HexBytes(log["data"])
    )
    return SwapEvent(
        address=Web3.to_checksum_address(log["address"]),
        block_number=int(log["blockNumber"]),
        tx_hash=Web3.to_hex(HexBytes(log["transactionHash"])),
        log_index=int(log["logIndex"]),
        event_id=SWAP_TOPIC,
        sender=Web3.to_checksum_address(topics[1][-20:]),
        recipient=Web3.to_checksum_address(topics[2][-20:]),
        amount0=amount0,
        amount1=amount1,
        sqrt_price_x96=sqrt_price_x96,
        liquidity=liquidity,
        tick=tick,
    )


def select_largest_swaps(swaps: list[SwapEvent], k: int) -> list[SwapEvent]:
    """
    Return the k swaps with the largest abs(amount1), largest first.

    Swaps of equal size keep their original (chain) order.
    """
    if k < 0:
        raise ValueError(f"k must be >= 0, got {k}")
    # sorted() is stable, so ties stay in log order
    order = sorted(range(len(swaps)), key=lambda i: -swaps[i].trade_size)
    return [swaps[i] for i in order[:k]]
