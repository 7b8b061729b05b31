"""
Block approximation and timestamp utilities for historical lookbacks.

Estimates block numbers at past timestamps from a known reference block
using a fixed average block time per chain. No RPC calls are made; the
estimate is typically within a few blocks on chains with a steady slot time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .config import DEFAULT_APPROXIMATOR_CONFIG, ApproximatorConfig

logger = logging.getLogger(__name__)


class ApproximationError(Exception):
    """Base class for block approximation failures."""


class InvalidArgument(ApproximationError, ValueError):
    """An argument is outside its valid range."""


class UnrecognizedChain(ApproximationError, LookupError):
    """The chain id has no configured block time."""

    def __init__(self, chain_id: int):
        super().__init__(f"Unrecognized chain id: {chain_id}")
        self.chain_id = chain_id


class InternalInvariantViolation(ApproximationError, RuntimeError):
    """The approximator produced output that breaks its own postconditions."""


@dataclass(frozen=True)
class ReferenceBlock:
    """A block whose number and timestamp are known (usually the chain head)."""
    number: int
    timestamp: int


@dataclass(frozen=True)
class ApproximateBlock:
    """Estimated block number at a timestamp."""
    number: int
    timestamp: int


def resolve_block_time(chain_id: int, config: ApproximatorConfig = DEFAULT_APPROXIMATOR_CONFIG) -> int:
    """Return the average block time in seconds for chain_id."""
    try:
        return config.block_times[chain_id]
    except KeyError:
        raise UnrecognizedChain(chain_id) from None


def resolve_interval(interval: str | int, config: ApproximatorConfig = DEFAULT_APPROXIMATOR_CONFIG) -> int:
    """Return the length of an interval in seconds. Accepts a name ('1d') or seconds."""
    if isinstance(interval, str):
        try:
            return config.intervals[interval]
        except KeyError:
            raise InvalidArgument(
                f"Unknown interval {interval!r}, expected one of {sorted(config.intervals)}"
            ) from None
    return interval


def approximate_blocks(
    initial_timestamp_sec: int,
    reference_block: ReferenceBlock,
    interval_seconds: int,
    number_of_periods: int,
    block_time_seconds: int | float,
) -> list[ApproximateBlock]:
    """
    Estimate block numbers for evenly spaced timestamps, oldest to newest.

    The last element is the estimate at initial_timestamp_sec; each earlier
    element steps back interval_seconds.

    Args:
        initial_timestamp_sec: Most recent timestamp of interest (unix seconds)
        reference_block: Known block used as the anchor for the estimate
        interval_seconds: Spacing between consecutive periods
        number_of_periods: Number of blocks to return (>= 1)
        block_time_seconds: Average seconds per block

    Returns:
        List of ApproximateBlock, ordered by ascending timestamp

    Raises:
        InvalidArgument: if number_of_periods < 1 or a duration is not positive
        InternalInvariantViolation: if the output length is wrong
    """
    if number_of_periods < 1:
        raise InvalidArgument(f"number_of_periods must be >= 1, got {number_of_periods}")
    if interval_seconds <= 0:
        raise InvalidArgument(f"interval_seconds must be positive, got {interval_seconds}")
    if block_time_seconds <= 0:
        raise InvalidArgument(f"block_time_seconds must be positive, got {block_time_seconds}")

    if initial_timestamp_sec > reference_block.timestamp:
        logger.warning(
            "Initial timestamp %d is after reference block %d (ts %d); estimate extrapolates forward",
            initial_timestamp_sec, reference_block.number, reference_block.timestamp,
        )

    time_difference = reference_block.timestamp - initial_timestamp_sec
    block_difference = int(time_difference // block_time_seconds)
    anchor = ApproximateBlock(
        number=reference_block.number - block_difference,
        timestamp=initial_timestamp_sec,
    )

    blocks: list[ApproximateBlock] = []
    for i in range(number_of_periods):
        period_time_delta = i * interval_seconds
        period_block_delta = int(period_time_delta // block_time_seconds)
        # Newest first while iterating; prepend to keep oldest at index 0
        blocks.insert(0, ApproximateBlock(
            number=anchor.number - period_block_delta,
            timestamp=anchor.timestamp - period_time_delta,
        ))

    if len(blocks) != number_of_periods:
        raise InternalInvariantViolation(
            f"Generated blocks ({len(blocks)}) do not match requested number of periods ({number_of_periods})"
        )
    return blocks


def approximate_blocks_for_timestamp(
    initial_timestamp_sec: int,
    reference_block: ReferenceBlock,
    interval: str | int,
    number_of_periods: int,
    chain_id: int,
    config: ApproximatorConfig = DEFAULT_APPROXIMATOR_CONFIG,
) -> list[ApproximateBlock]:
    """Same as approximate_blocks, resolving block time and interval from config."""
    block_time = resolve_block_time(chain_id, config)
    if number_of_periods < 1:
        raise InvalidArgument(f"number_of_periods must be >= 1, got {number_of_periods}")
    interval_seconds = resolve_interval(interval, config)
    return approximate_blocks(
        initial_timestamp_sec,
        reference_block,
        interval_seconds,
        number_of_periods,
        block_time,
    )


def timestamps_to_dates(timestamps: list[int]) -> list[str]:
    """Convert unix timestamps to 'YYYY-MM-DD HH:MM' UTC strings."""
    return [
        datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
        for ts in timestamps
    ]
