"""
Proof request assembly for the implied-volatility circuit.

A request carries receipt fields (one per selected Swap log) and storage
reads (slot0 and liquidity of the pool at the reference block).
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from .config import MAX_RECEIPTS, MAX_STORAGE
from .swaps import SwapEvent

# amount1 is the 2nd non-indexed value in the Swap log data
AMOUNT1_FIELD_INDEX = 1


@dataclass(frozen=True)
class Field:
    """One value extracted from a log, addressed by contract/log position/index."""
    contract: str
    log_pos: int
    event_id: str
    value: str
    is_topic: bool
    field_index: int


@dataclass(frozen=True)
class ReceiptData:
    block_num: int
    tx_hash: str
    fields: list[Field]


@dataclass(frozen=True)
class StorageData:
    block_num: int
    address: str
    slot: str
    value: str


@dataclass
class ProofRequest:
    """Receipts and storage reads submitted to the prover."""
    receipts: list[ReceiptData] = field(default_factory=list)
    storage: list[StorageData] = field(default_factory=list)

    def add_receipt(self, receipt: ReceiptData) -> None:
        if len(self.receipts) >= MAX_RECEIPTS:
            raise ValueError(f"Circuit allocates at most {MAX_RECEIPTS} receipts")
        self.receipts.append(receipt)

    def add_storage(self, storage: StorageData) -> None:
        if len(self.storage) >= MAX_STORAGE:
            raise ValueError(f"Circuit allocates at most {MAX_STORAGE} storage slots")
        self.storage.append(storage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "receipts": [asdict(r) for r in self.receipts],
            "storages": [asdict(s) for s in self.storage],
            "transactions": [],
        }


def receipt_for_swap(swap: SwapEvent) -> ReceiptData:
    """Build a receipt exposing the signed amount1 of a Swap log."""
    return ReceiptData(
        block_num=swap.block_number,
        tx_hash=swap.tx_hash,
        fields=[
            Field(
                contract=swap.address,
                log_pos=swap.log_index,
                event_id=swap.event_id,
                value=str(swap.amount1),
                is_topic=False,
                field_index=AMOUNT1_FIELD_INDEX,
            )
        ],
    )


def build_proof_request(swaps: list[SwapEvent], storage: list[StorageData]) -> ProofRequest:
    """Assemble a ProofRequest from selected swaps and storage reads."""
    request = ProofRequest()
    for swap in swaps:
        request.add_receipt(receipt_for_swap(swap))
    for item in storage:
        request.add_storage(item)
    return request
