"""
Tests for the proof cycle with fake chain, prover and gateway.

Run: cd backend && uv run python tests/test_runner.py
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fakes import POOL, FakeResponse, FakeSession, FakeWeb3, make_swap_log
from iv_prover.__main__ import parse_args, run_once
from iv_prover.brevis_client import (
    PROVE_PATH,
    STATUS_PATH,
    SUBMIT_PATH,
    GatewayClient,
    ProverClient,
    ProverError,
)
from iv_prover.config import Settings
from iv_prover.pool_data import PoolReader
from iv_prover.runner import iter_cycles, run_cycle, run_forever

HEAD = {"number": 20_000, "timestamp": 2_000_000}
# 1d on a 12s chain = 7200 blocks -> window starts at 12_800
LOGS = [
    make_swap_log(12_799, 0, 10 ** 21),  # before the window
    make_swap_log(12_800, 0, 3 * 10 ** 18),
    make_swap_log(15_000, 2, -9 * 10 ** 18),
    make_swap_log(19_999, 1, 1 * 10 ** 18),
]
SETTINGS = Settings(rpc_url="http://node", cycle_sleep_seconds=5)


def _clients(prove_payload: dict) -> tuple[ProverClient, GatewayClient]:
    prover = ProverClient("http://prover", session=FakeSession({PROVE_PATH: [FakeResponse(prove_payload)]}))
    gateway = GatewayClient(
        "https://gateway",
        session=FakeSession({
            SUBMIT_PATH: [FakeResponse({"query_key": "0xq", "fee": 0})],
            STATUS_PATH: [FakeResponse({"status": "done", "tx_hash": "0xt"})],
        }),
        sleep=lambda _: None,
    )
    return prover, gateway


def test_run_cycle() -> None:
    w3 = FakeWeb3(HEAD, LOGS)
    reader = PoolReader(w3, POOL)
    prover, gateway = _clients({"proof": "0xp"})

    result = run_cycle(reader, prover, gateway, SETTINGS, now=2_000_000)

    assert result.reference.number == 20_000
    assert result.num_swaps == 3
    # Two largest by abs(amount1), largest first
    values = [r.fields[0].value for r in result.request.receipts]
    assert values == [str(-9 * 10 ** 18), str(3 * 10 ** 18)]
    assert [s.slot for s in result.request.storage] == ["0x0", "0x4"]
    assert all(s.block_num == 20_000 for s in result.request.storage)
    assert result.submission.query_key == "0xq"
    assert result.status["tx_hash"] == "0xt"
    assert result.iv_estimate > 0
    # slot0 sqrtPriceX96 of 2**96 is a raw price of 1
    assert result.spot_price == 1.0

    _, submit_payload = gateway.session.posts[0]
    assert submit_payload["src_chain_id"] == 1
    assert submit_payload["dst_chain_id"] == 11155111
    assert submit_payload["callback_addr"] == SETTINGS.callback_address
    print("  [PASS] run_cycle")


def test_prover_error_stops_submission() -> None:
    reader = PoolReader(FakeWeb3(HEAD, LOGS), POOL)
    prover, gateway = _clients({"err": {"code": 1, "msg": "bad receipt"}})
    try:
        run_cycle(reader, prover, gateway, SETTINGS, now=2_000_000)
    except ProverError:
        assert gateway.session.posts == []
        print("  [PASS] prover_error_stops_submission")
        return
    raise AssertionError("expected ProverError")


def test_run_forever_continues_after_failure() -> None:
    reader = PoolReader(FakeWeb3(HEAD, LOGS), POOL)
    prover, gateway = _clients({"err": {"code": 3, "msg": "oom"}})
    slept: list[float] = []

    results = run_forever(reader, prover, gateway, SETTINGS, sleep=slept.append, max_cycles=3)

    assert results == [None, None, None]
    assert slept == [5, 5]
    print("  [PASS] run_forever_continues_after_failure")


def test_unbounded_cycles_are_lazy() -> None:
    """Cycles only run as they are consumed; nothing accumulates between them."""
    reader = PoolReader(FakeWeb3(HEAD, LOGS), POOL)
    prover, gateway = _clients({"err": {"code": 3, "msg": "oom"}})
    slept: list[float] = []

    cycles = iter_cycles(reader, prover, gateway, SETTINGS, sleep=slept.append)
    assert prover.session.posts == []
    assert next(cycles) is None
    assert len(prover.session.posts) == 1 and slept == []
    assert next(cycles) is None
    assert next(cycles) is None
    assert len(prover.session.posts) == 3 and slept == [5, 5]
    print("  [PASS] unbounded_cycles_are_lazy")


def test_once_exit_codes() -> None:
    reader = PoolReader(FakeWeb3(HEAD, LOGS), POOL)
    prover, gateway = _clients({"err": {"code": 1, "msg": "bad receipt"}})
    assert run_once(reader, prover, gateway, SETTINGS) == 1
    assert gateway.session.posts == []

    prover, gateway = _clients({"proof": "0xp"})
    assert run_once(reader, prover, gateway, SETTINGS) == 0
    assert len(gateway.session.posts) == 2
    print("  [PASS] once_exit_codes")


def test_cli_args() -> None:
    args = parse_args(["pk", "0xcb", "--once"])
    assert (args.partner_key, args.callback_address, args.once) == ("pk", "0xcb", True)
    args = parse_args([])
    assert args.partner_key is None and args.callback_address is None and not args.once
    print("  [PASS] cli_args")


if __name__ == "__main__":
    print("=== test_runner.py ===")
    test_run_cycle()
    test_prover_error_stops_submission()
    test_run_forever_continues_after_failure()
    test_unbounded_cycles_are_lazy()
    test_once_exit_codes()
    test_cli_args()
    print("\nAll runner tests passed.")
