from __future__ import annotations

from datetime import timedelta

from rolegate.domain import ClaimInfo, EngineContext, VerificationPolicy
from rolegate.domain.pending import PendingRequestStore
from tests.helpers.engine import (
    START,
    VERIFY_AMOUNT,
    MemoryAddressStore,
    MemoryClaimStore,
    SequentialCodes,
    addr,
    txid,
)

POLICY = VerificationPolicy(verification_amount=VERIFY_AMOUNT, refund_amount=VERIFY_AMOUNT)


def test_injected_empty_pending_store_is_kept() -> None:
    injected = PendingRequestStore(code_factory=SequentialCodes("ABC123"))

    context = EngineContext.from_stores(
        addresses=MemoryAddressStore([addr(1)]),
        claims=MemoryClaimStore(),
        policy=POLICY,
        pending=injected,
    )

    assert context.pending is injected
    request = context.pending.create(
        claimant_id="u1",
        claimant_label="alice",
        address=addr(1),
        origin_context=None,
        now=START,
    )
    assert request.code == "ABC123"


def test_stored_claims_mark_their_finalizing_transfers_processed() -> None:
    claims = {
        addr(1): ClaimInfo("u1", "alice", START, transfer_id=txid(1)),
        addr(2): ClaimInfo("u2", "bob", START + timedelta(minutes=1)),
    }

    context = EngineContext.from_stores(
        addresses=MemoryAddressStore([addr(1), addr(2)]),
        claims=MemoryClaimStore(claims),
        policy=POLICY,
    )

    assert txid(1) in context.processed
    assert len(context.processed) == 1
    # stored claims carry no height, so window eviction keeps them
    context.processed.evict_below(10**9)
    assert txid(1) in context.processed
