from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from rolegate.domain import (
    AlreadyClaimedError,
    AlreadyProcessedError,
    ClaimInfo,
    InputInvalidError,
    NotEligibleError,
    PendingRequestExistsError,
    RequestExpiredError,
    ScanningUnavailableError,
    StatusKind,
    UnknownTransferError,
    VerificationInstructions,
)
from tests.helpers.engine import (
    RECEIVER,
    START,
    VERIFY_AMOUNT,
    Harness,
    addr,
    make_harness,
    shout,
    transfer,
    txid,
)

ALICE = addr(0xAAA)
BOB = addr(0xBBB)


def _initiate(harness: Harness, address: str, claimant: str = "u1") -> VerificationInstructions:
    return asyncio.run(
        harness.service.initiate_verification(
            address, claimant_id=claimant, claimant_label=claimant, origin_context="guild-1"
        )
    )


def test_initiate_returns_payment_instructions() -> None:
    harness = make_harness(eligible=[ALICE], codes=["ABC123"])

    instructions = _initiate(harness, shout(ALICE))

    assert instructions.request.code == "ABC123"
    assert instructions.request.address == ALICE
    assert instructions.receiving_address == RECEIVER
    assert instructions.amount == VERIFY_AMOUNT
    assert instructions.amount_text == "0.001"
    assert instructions.expires_at == START + timedelta(minutes=10)
    assert instructions.strategy == "sender"
    assert not instructions.reused


def test_initiate_twice_by_same_claimant_reuses_request() -> None:
    harness = make_harness(eligible=[ALICE])
    first = _initiate(harness, ALICE)

    second = _initiate(harness, ALICE)

    assert second.reused
    assert second.request == first.request
    assert len(harness.context.pending) == 1


def test_initiate_by_other_claimant_is_rejected() -> None:
    harness = make_harness(eligible=[ALICE])
    _initiate(harness, ALICE)

    with pytest.raises(PendingRequestExistsError):
        _initiate(harness, ALICE, claimant="u2")


def test_initiate_rejects_invalid_claimed_and_ineligible_addresses() -> None:
    owner = ClaimInfo(claimant_id="u0", claimant_label="first", claimed_at=START)
    harness = make_harness(eligible=[ALICE], claims={ALICE: owner})

    with pytest.raises(InputInvalidError):
        _initiate(harness, "0x123")
    with pytest.raises(AlreadyClaimedError, match="first"):
        _initiate(harness, ALICE)
    with pytest.raises(NotEligibleError):
        _initiate(harness, BOB)
    assert len(harness.context.pending) == 0


def test_initiate_in_degraded_mode_is_unavailable() -> None:
    harness = make_harness(eligible=[ALICE], scanning=False)

    with pytest.raises(ScanningUnavailableError):
        _initiate(harness, ALICE)


def test_check_status_reports_each_kind() -> None:
    owner = ClaimInfo(claimant_id="u0", claimant_label="first", claimed_at=START)
    carol = addr(0xCCC)
    harness = make_harness(eligible=[ALICE, BOB], claims={carol: owner})
    _initiate(harness, ALICE)
    harness.clock.advance(timedelta(minutes=4))

    pending = harness.service.check_status(ALICE)
    assert pending.kind is StatusKind.PENDING
    assert pending.remaining == timedelta(minutes=6)

    assert harness.service.check_status(BOB).kind is StatusKind.ELIGIBLE
    claimed = harness.service.check_status(carol)
    assert claimed.kind is StatusKind.CLAIMED
    assert claimed.owner == owner
    assert harness.service.check_status(addr(0xDDD)).kind is StatusKind.NOT_ELIGIBLE


def test_cancel_only_by_owner() -> None:
    harness = make_harness(eligible=[ALICE])
    code = _initiate(harness, ALICE).request.code

    with pytest.raises(RequestExpiredError):
        asyncio.run(harness.service.cancel_verification(code, claimant_id="u2"))

    cancelled = asyncio.run(harness.service.cancel_verification(code.lower(), claimant_id="u1"))
    assert cancelled.code == code
    with pytest.raises(RequestExpiredError):
        asyncio.run(harness.service.cancel_verification(code, claimant_id="u1"))


def test_admin_list_management_is_audited() -> None:
    harness = make_harness()

    assert harness.service.add_address(shout(ALICE)) is True
    assert harness.service.add_address(ALICE) is False
    assert harness.service.list_addresses() == [ALICE]
    assert harness.service.remove_address(ALICE) is True

    assert harness.audit.kinds() == ["eligible_added", "eligible_added", "eligible_removed"]


def test_upload_replaces_list() -> None:
    harness = make_harness(eligible=[ALICE])

    count = harness.service.upload_addresses(f"{BOB}\nshort\n\n{BOB.upper()}\n")

    assert count == 1
    assert harness.service.list_addresses() == [BOB]
    assert harness.address_store.saved == {BOB}


def test_upload_without_valid_entries_is_rejected() -> None:
    harness = make_harness(eligible=[ALICE])

    with pytest.raises(InputInvalidError):
        harness.service.upload_addresses("tiny\n\n")
    assert harness.service.list_addresses() == [ALICE]


def test_lookup_claimant() -> None:
    owner = ClaimInfo(claimant_id="u0", claimant_label="first", claimed_at=START)
    harness = make_harness(claims={ALICE: owner})

    assert harness.service.lookup_claimant(shout(ALICE)) == owner
    assert harness.service.lookup_claimant(BOB) is None


def test_manual_verify_processes_and_rejects_replay() -> None:
    harness = make_harness(eligible=[ALICE])
    _initiate(harness, ALICE)
    harness.ledger.add(transfer(1, sender=ALICE))

    outcome = asyncio.run(harness.service.manual_verify(txid(1)))

    assert outcome.finalized
    with pytest.raises(AlreadyProcessedError):
        asyncio.run(harness.service.manual_verify(txid(1)))
    scan = asyncio.run(harness.loop.run_scan_cycle())
    assert scan is not None
    assert scan.skipped_duplicates == 1
    assert len(harness.submitter.sent) == 1


def test_manual_verify_enforces_amount() -> None:
    harness = make_harness(eligible=[ALICE])
    _initiate(harness, ALICE)
    harness.ledger.add(transfer(1, sender=ALICE, amount=VERIFY_AMOUNT * 2))

    outcome = asyncio.run(harness.service.manual_verify(txid(1)))

    assert not outcome.finalized
    assert harness.submitter.sent == []


def test_force_process_finalizes_wrong_amount() -> None:
    harness = make_harness(eligible=[ALICE])
    _initiate(harness, ALICE)
    harness.ledger.add(transfer(1, sender=ALICE, amount=VERIFY_AMOUNT * 2))

    outcome = asyncio.run(harness.service.force_process(txid(1)))

    assert outcome.finalized
    assert harness.context.claims.is_claimed(ALICE)


def test_process_by_id_rejects_unknown_or_foreign_transfers() -> None:
    harness = make_harness(eligible=[ALICE])
    harness.ledger.add(transfer(2, sender=ALICE, to=BOB))

    with pytest.raises(InputInvalidError):
        asyncio.run(harness.service.manual_verify("not-a-hash"))
    with pytest.raises(UnknownTransferError):
        asyncio.run(harness.service.manual_verify(txid(1)))
    with pytest.raises(UnknownTransferError):
        asyncio.run(harness.service.force_process(txid(2)))


def test_manual_grant_in_degraded_mode() -> None:
    harness = make_harness(eligible=[ALICE], scanning=False)

    claim = asyncio.run(
        harness.service.manual_grant(ALICE, claimant_id="u1", claimant_label="alice")
    )

    assert claim.claimant_label == "alice"
    assert harness.granter.grants == [("u1", None)]
    with pytest.raises(AlreadyClaimedError):
        asyncio.run(harness.service.manual_grant(ALICE, claimant_id="u2", claimant_label="b"))


def test_help_text_lists_commands() -> None:
    text = make_harness().service.help_text()

    assert "verify <address>" in text
    assert "force-process" in text
