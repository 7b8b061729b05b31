import math

from decimal import Decimal, getcontext

from .swaps import SwapEvent

# Set high precision for Decimal operations
getcontext().prec = 50

# Pre-compute 2^96 as Decimal for price conversions
Q96 = Decimal(2 ** 96)

DAYS_PER_YEAR = 365


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> Decimal:
    """
    Convert sqrtPriceX96 to raw price (token1 per token0, no decimal adjustment).

    sqrtPriceX96 = sqrt(price) * 2^96
    price = (sqrtPriceX96 / 2^96)^2
    """
    sqrt_price = Decimal(sqrt_price_x96) / Q96
    return sqrt_price ** 2


def tick_to_sqrt_price(tick: int) -> float:
    """Convert tick to sqrt price: sqrt(1.0001^tick) = 1.0001^(tick/2)"""
    return 1.0001 ** (tick / 2)


def decode_slot0_word(word: str | bytes | int) -> tuple[int, int]:
    """
    Decode the packed slot0 storage word of a UniswapV3Pool.

    Layout (low to high bits):
      0..159    sqrtPriceX96 (uint160)
      160..183  tick (int24)
      184..     observation fields, feeProtocol, unlocked

    Returns:
        (sqrtPriceX96, tick)
    """
    if isinstance(word, str):
        value = int(word, 16)
    elif isinstance(word, (bytes, bytearray)):
        value = int.from_bytes(word, "big")
    else:
        value = word

    sqrt_price_x96 = value & ((1 << 160) - 1)
    raw_tick = (value >> 160) & ((1 << 24) - 1)
    # two's complement int24
    tick = raw_tick - (1 << 24) if raw_tick & (1 << 23) else raw_tick
    return sqrt_price_x96, tick


def total_volume(swaps: list[SwapEvent]) -> int:
    """Sum of abs(amount1) over swaps, in token1 base units."""
    return sum(s.trade_size for s in swaps)


def approximate_tick_tvl(
    liquidity: int,
    tick: int,
    fee_tier: int,
    d0: float = 1.0,
    decimals0: int = 18,
) -> float:
    """
    Approximate the value locked in the active tick without view calls.

    ((liquidity + 1) * feeTier * d0) / (1.0001^(tick/2) * 10^(decs0 + 6))

    d0 is the ETH value of token0 (1 for WETH).
    See https://lambert-guillaume.medium.com/on-chain-volatility-and-uniswap-v3-d031b98143d1
    """
    return ((liquidity + 1) * fee_tier * d0) / (tick_to_sqrt_price(tick) * 10 ** (decimals0 + 6))


def implied_volatility(fee_tier: int, daily_volume: float, tick_tvl: float) -> float:
    """
    Annualized implied volatility from fee tier, daily volume and tick TVL.

    iv = 2 * (feeTier / 10^6) * sqrt(dailyVolume / tickTvl) * sqrt(365)
    """
    if tick_tvl <= 0 or daily_volume <= 0:
        return 0.0
    return 2 * (fee_tier / 1e6) * math.sqrt(daily_volume / tick_tvl) * math.sqrt(DAYS_PER_YEAR)
