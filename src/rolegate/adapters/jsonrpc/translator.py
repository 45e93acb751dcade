"""Translate JSON-RPC transaction payloads into engine transfers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rolegate.domain.addresses import normalize_address
from rolegate.domain.model import CandidateTransfer

if TYPE_CHECKING:
    from .schema import BlockPayload, TransactionPayload


def parse_transfer(payload: TransactionPayload) -> CandidateTransfer:
    return CandidateTransfer(
        transfer_id=payload.hash.lower(),
        from_address=normalize_address(payload.sender),
        # contract creations have no recipient
        to_address=normalize_address(payload.to) if payload.to else "",
        amount=payload.value,
        auxiliary_data=payload.input,
        block_height=payload.block_number,
    )


def parse_block_transfers(block: BlockPayload) -> list[CandidateTransfer]:
    transfers: list[CandidateTransfer] = []
    ordered = sorted(
        block.transactions,
        key=lambda tx: tx.transaction_index if tx.transaction_index is not None else 0,
    )
    for payload in ordered:
        transfer = parse_transfer(payload)
        if transfer.block_height is None:
            transfer = _with_height(transfer, block.number)
        transfers.append(transfer)
    return transfers


def _with_height(transfer: CandidateTransfer, height: int) -> CandidateTransfer:
    return CandidateTransfer(
        transfer_id=transfer.transfer_id,
        from_address=transfer.from_address,
        to_address=transfer.to_address,
        amount=transfer.amount,
        auxiliary_data=transfer.auxiliary_data,
        block_height=height,
    )
