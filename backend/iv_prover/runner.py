"""
Proof cycle orchestration.

One cycle reads the pool at the safe head, selects the largest swaps of the
lookback window, builds and proves the request, submits it to the gateway
and waits for settlement. run_forever repeats this once per sleep period.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .amm_math import (
    approximate_tick_tvl,
    decode_slot0_word,
    implied_volatility,
    sqrt_price_x96_to_price,
    total_volume,
)
from .block_utils import ReferenceBlock
from .brevis_client import GatewayClient, GatewaySubmission, ProverClient, ProveResponse
from .config import (
    LIQUIDITY_STORAGE_SLOT,
    POOL_FEE_TIER,
    SLOT0_STORAGE_SLOT,
    WETH_DECIMALS,
    Settings,
)
from .pool_data import PoolReader, fetch_iv_inputs
from .proof_request import ProofRequest, StorageData, build_proof_request
from .swaps import select_largest_swaps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleResult:
    reference: ReferenceBlock
    num_swaps: int
    request: ProofRequest
    proof: ProveResponse
    submission: GatewaySubmission
    status: dict[str, Any]
    spot_price: float
    iv_estimate: float


def read_storage(reader: PoolReader, block: int) -> list[StorageData]:
    """Read the slot0 and liquidity storage words at block."""
    return [
        StorageData(
            block_num=block,
            address=reader.pool_address,
            slot=slot,
            value=reader.get_storage(slot, block),
        )
        for slot in (SLOT0_STORAGE_SLOT, LIQUIDITY_STORAGE_SLOT)
    ]


def run_cycle(
    reader: PoolReader,
    prover: ProverClient,
    gateway: GatewayClient,
    settings: Settings,
    now: float | None = None,
) -> CycleResult:
    """
    Run one prove-and-submit cycle.

    Raises:
        ProverError: if the prover returns an error (nothing is submitted)
        GatewayError: if submission or settlement fails
    """
    reference = reader.get_reference_block("safe")
    logger.info("Reference block %d (ts %d)", reference.number, reference.timestamp)

    inputs = fetch_iv_inputs(
        reader, reference, settings.lookback_interval, settings.source_chain_id, now=now
    )
    selected = select_largest_swaps(inputs.swaps, settings.num_receipts)

    storage = read_storage(reader, reference.number)
    _, stored_tick = decode_slot0_word(storage[0].value)
    if stored_tick != inputs.current_tick:
        logger.warning("slot0 storage tick %d differs from slot0() tick %d", stored_tick, inputs.current_tick)

    daily_volume = total_volume(inputs.swaps) / 10 ** WETH_DECIMALS
    tick_tvl = approximate_tick_tvl(inputs.liquidity, inputs.current_tick, POOL_FEE_TIER)
    iv_estimate = implied_volatility(POOL_FEE_TIER, daily_volume, tick_tvl)
    # raw token1/token0, no decimal adjustment
    spot_price = float(sqrt_price_x96_to_price(inputs.sqrt_price_x96))
    logger.info(
        "tick=%d price=%.6g liquidity=%d volume=%.4f WETH reference iv=%.6f",
        inputs.current_tick, spot_price, inputs.liquidity, daily_volume, iv_estimate,
    )

    request = build_proof_request(selected, storage)
    logger.info(
        "Sending proof request for iv (%d receipts, %d storage)",
        len(request.receipts), len(request.storage),
    )
    proof = prover.prove(request)
    proof.raise_for_error()
    logger.info("Proof generated (%d chars)", len(proof.proof))

    submission = gateway.submit(
        request,
        proof,
        settings.source_chain_id,
        settings.dest_chain_id,
        0,
        settings.partner_key,
        settings.callback_address,
    )
    logger.info("Submitted query %s (fee %d)", submission.query_key, submission.fee)
    status = gateway.wait(submission.query_key, settings.dest_chain_id)

    return CycleResult(
        reference=reference,
        num_swaps=len(inputs.swaps),
        request=request,
        proof=proof,
        submission=submission,
        status=status,
        spot_price=spot_price,
        iv_estimate=iv_estimate,
    )


def iter_cycles(
    reader: PoolReader,
    prover: ProverClient,
    gateway: GatewayClient,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[CycleResult | None]:
    """
    Yield one result per cycle (None for a failed cycle), endlessly.

    Sleeps cycle_sleep_seconds before every cycle after the first, so the
    next cycle only starts when the consumer asks for it.
    """
    cycle = 0
    while True:
        cycle += 1
        if cycle > 1:
            logger.info("Sleeping %ds until next cycle", settings.cycle_sleep_seconds)
            sleep(settings.cycle_sleep_seconds)
        logger.info("Starting proof cycle %d", cycle)
        try:
            result = run_cycle(reader, prover, gateway, settings)
        except Exception:
            logger.exception("Proof cycle %d failed", cycle)
            result = None
        yield result


def run_forever(
    reader: PoolReader,
    prover: ProverClient,
    gateway: GatewayClient,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
    max_cycles: int | None = None,
) -> list[CycleResult | None]:
    """
    Run cycles back to back; a failed cycle is logged and the loop carries on.

    With max_cycles set, returns the per-cycle results (None for failures).
    Without it, never returns and keeps no results.
    """
    cycles = iter_cycles(reader, prover, gateway, settings, sleep=sleep)
    if max_cycles is None:
        for _ in cycles:
            pass
    return list(itertools.islice(cycles, max_cycles))
