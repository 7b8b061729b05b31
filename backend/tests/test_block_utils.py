"""
Tests for block approximation.

Unit tests with synthetic reference blocks (known answers).
Run: cd backend && uv run python tests/test_block_utils.py
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from iv_prover.block_utils import (
    ApproximateBlock,
    ApproximationError,
    InvalidArgument,
    ReferenceBlock,
    UnrecognizedChain,
    approximate_blocks,
    approximate_blocks_for_timestamp,
    resolve_interval,
    timestamps_to_dates,
)
from iv_prover.config import ApproximatorConfig, ConfigError

REF = ReferenceBlock(number=1000, timestamp=12000)


def _raises(exc_type, fn, *args, **kwargs):
    try:
        fn(*args, **kwargs)
    except exc_type as exc:
        return exc
    raise AssertionError(f"{fn.__name__} did not raise {exc_type.__name__}")


def test_two_periods_known_answer() -> None:
    """1200s before ref = 100 blocks; one hour further = 300 more blocks."""
    blocks = approximate_blocks(10800, REF, 3600, 2, 12)
    assert blocks == [ApproximateBlock(600, 7200), ApproximateBlock(900, 10800)], blocks
    print("  [PASS] two_periods_known_answer")


def test_single_period_is_anchor() -> None:
    blocks = approximate_blocks(10800, REF, 3600, 1, 12)
    assert blocks == [ApproximateBlock(900, 10800)]
    print("  [PASS] single_period_is_anchor")


def test_anchor_uses_floor() -> None:
    """1199s / 12 = 99.9 -> 99 blocks back; 3601s / 12 -> 300 blocks."""
    blocks = approximate_blocks(12000 - 1199, REF, 3601, 2, 12)
    assert blocks[-1] == ApproximateBlock(901, 10801)
    assert blocks[0] == ApproximateBlock(601, 10801 - 3601)
    print("  [PASS] anchor_uses_floor")


def test_length_and_ordering() -> None:
    ref = ReferenceBlock(number=19_000_000, timestamp=1_700_000_000)
    for periods in (1, 2, 7, 30):
        blocks = approximate_blocks(1_700_000_000 - 86400, ref, 3600, periods, 12)
        assert len(blocks) == periods
        assert blocks[-1].timestamp == 1_700_000_000 - 86400
        for prev, nxt in zip(blocks, blocks[1:]):
            assert nxt.timestamp > prev.timestamp
            assert nxt.number >= prev.number
        assert all(b.number <= ref.number for b in blocks)
        assert all(isinstance(b.number, int) for b in blocks)
    print("  [PASS] length_and_ordering")


def test_float_block_time_gives_whole_numbers() -> None:
    """12.0s matches the integer case; 0.25s steps 4 blocks per second."""
    blocks = approximate_blocks(10800, REF, 3600, 2, 12.0)
    assert blocks == [ApproximateBlock(600, 7200), ApproximateBlock(900, 10800)]
    assert all(type(b.number) is int for b in blocks)

    fast_ref = ReferenceBlock(number=100_000, timestamp=12000)
    blocks = approximate_blocks(11999, fast_ref, 10, 3, 0.25)
    assert blocks == [
        ApproximateBlock(99_916, 11979),
        ApproximateBlock(99_956, 11989),
        ApproximateBlock(99_996, 11999),
    ], blocks
    assert all(type(b.number) is int for b in blocks)
    print("  [PASS] float_block_time_gives_whole_numbers")


def test_initial_equals_reference() -> None:
    blocks = approximate_blocks(12000, REF, 86400, 1, 12)
    assert blocks == [ApproximateBlock(1000, 12000)]
    print("  [PASS] initial_equals_reference")


def test_invalid_number_of_periods() -> None:
    for periods in (0, -1):
        _raises(InvalidArgument, approximate_blocks, 10800, REF, 3600, periods, 12)
        _raises(InvalidArgument, approximate_blocks_for_timestamp, 10800, REF, "1h", periods, 1)
    print("  [PASS] invalid_number_of_periods")


def test_invalid_durations() -> None:
    _raises(InvalidArgument, approximate_blocks, 10800, REF, 0, 2, 12)
    _raises(InvalidArgument, approximate_blocks, 10800, REF, 3600, 2, 0)
    _raises(InvalidArgument, resolve_interval, "2w")
    print("  [PASS] invalid_durations")


def test_unrecognized_chain() -> None:
    exc = _raises(UnrecognizedChain, approximate_blocks_for_timestamp, 10800, REF, "1h", 2, 999999)
    assert exc.chain_id == 999999
    # Chain is checked before the other arguments
    _raises(UnrecognizedChain, approximate_blocks_for_timestamp, 10800, REF, "bogus", 0, 999999)
    assert isinstance(exc, ApproximationError)
    print("  [PASS] unrecognized_chain")


def test_mainnet_resolution() -> None:
    blocks = approximate_blocks_for_timestamp(10800, REF, "1h", 2, 1)
    assert blocks == [ApproximateBlock(600, 7200), ApproximateBlock(900, 10800)]
    print("  [PASS] mainnet_resolution")


def test_custom_config() -> None:
    """Synthetic 2s chain without touching the default tables."""
    config = ApproximatorConfig(block_times={42: 2}, intervals={"1m": 60})
    blocks = approximate_blocks_for_timestamp(11940, REF, "1m", 3, 42, config=config)
    # anchor: 60s / 2 = 30 blocks back -> 970
    assert blocks == [
        ApproximateBlock(910, 11820),
        ApproximateBlock(940, 11880),
        ApproximateBlock(970, 11940),
    ]
    _raises(UnrecognizedChain, approximate_blocks_for_timestamp, 11940, REF, "1m", 1, 1, config=config)
    print("  [PASS] custom_config")


def test_config_rejects_fractional_block_time() -> None:
    _raises(ConfigError, ApproximatorConfig, block_times={42161: 0.25})
    _raises(ConfigError, ApproximatorConfig, intervals={"0s": 0})
    print("  [PASS] config_rejects_fractional_block_time")


def test_timestamps_to_dates() -> None:
    assert timestamps_to_dates([0, 86400 + 3600]) == ["1970-01-01 00:00", "1970-01-02 01:00"]
    print("  [PASS] timestamps_to_dates")


if __name__ == "__main__":
    print("=== test_block_utils.py ===")
    test_two_periods_known_answer()
    test_single_period_is_anchor()
    test_anchor_uses_floor()
    test_length_and_ordering()
    test_float_block_time_gives_whole_numbers()
    test_initial_equals_reference()
    test_invalid_number_of_periods()
    test_invalid_durations()
    test_unrecognized_chain()
    test_mainnet_resolution()
    test_custom_config()
    test_config_rejects_fractional_block_time()
    test_timestamps_to_dates()
    print("\nAll block approximation tests passed.")
