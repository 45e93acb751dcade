"""Binding observed transfers to pending requests.

The engine is read-only: it looks at the pending store, the eligibility
registry and the claim ledger and returns a decision. Acting on the decision
(claiming, removing requests, refunding) belongs to the reconciliation loop.

Checks run in a fixed order for every strategy:

1. exact amount (a mismatch is ignored: no refund, no state change)
2. request resolution through the active strategy (no match: refund sender)
3. eligibility of the resolved request's address (refund, request kept)
4. claim-once (refund, request dropped)
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, TypeAlias

from .addresses import addresses_equal
from .amounts import format_amount
from .pending import REQUEST_CODE_ALPHABET, REQUEST_CODE_LENGTH

if TYPE_CHECKING:
    from .claims import ClaimLedger
    from .model import CandidateTransfer, ClaimInfo, VerificationPolicy, VerificationRequest
    from .pending import PendingRequestStore
    from .registry import EligibilityRegistry

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Accepted:
    request: VerificationRequest
    transfer: CandidateTransfer


@dataclass(frozen=True, slots=True)
class RejectedWrongAmount:
    transfer: CandidateTransfer
    expected: int


@dataclass(frozen=True, slots=True)
class RejectedUnmatched:
    transfer: CandidateTransfer


@dataclass(frozen=True, slots=True)
class RejectedNotEligible:
    request: VerificationRequest
    transfer: CandidateTransfer


@dataclass(frozen=True, slots=True)
class RejectedAlreadyClaimed:
    request: VerificationRequest
    transfer: CandidateTransfer
    owner: ClaimInfo | None


MatchResult: TypeAlias = (
    Accepted
    | RejectedWrongAmount
    | RejectedUnmatched
    | RejectedNotEligible
    | RejectedAlreadyClaimed
)


def refund_due(result: MatchResult, policy: VerificationPolicy) -> int | None:
    """Amount owed back to the sender for ``result``; ``None`` means no refund."""

    match result:
        case Accepted():
            return policy.refund_amount
        case RejectedWrongAmount():
            return None
        case RejectedUnmatched(transfer=transfer):
            return transfer.amount
        case RejectedNotEligible(transfer=transfer) | RejectedAlreadyClaimed(transfer=transfer):
            return transfer.amount


class MatchStrategy(Protocol):
    """Resolve the pending request a transfer pays for, if any."""

    name: str

    def resolve(
        self,
        transfer: CandidateTransfer,
        pending: PendingRequestStore,
    ) -> VerificationRequest | None: ...


class SenderAddressStrategy:
    """Bind by the transfer's sender: the claimant pays from the address being verified."""

    name = "sender"

    def resolve(
        self,
        transfer: CandidateTransfer,
        pending: PendingRequestStore,
    ) -> VerificationRequest | None:
        return pending.find_by_address(transfer.from_address)


class EmbeddedCodeStrategy:
    """Bind by a request code carried in the transfer's data field.

    The sender must still be the address stored on the request, so a leaked
    code cannot be redeemed from another wallet.
    """

    name = "code"

    def resolve(
        self,
        transfer: CandidateTransfer,
        pending: PendingRequestStore,
    ) -> VerificationRequest | None:
        code = decode_request_code(transfer.auxiliary_data)
        if code is None:
            return None
        request = pending.find_by_code(code)
        if request is None:
            return None
        if not addresses_equal(request.address, transfer.from_address):
            log.warning(
                "Transfer %s carries code %s but was sent from %s, not %s",
                transfer.transfer_id,
                code,
                transfer.from_address,
                request.address,
            )
            return None
        return request


def decode_request_code(data: bytes) -> str | None:
    text = data.strip(b"\x00").decode("utf-8", errors="ignore").strip().upper()
    if len(text) < REQUEST_CODE_LENGTH:
        return None
    token = text[:REQUEST_CODE_LENGTH]
    if any(ch not in REQUEST_CODE_ALPHABET for ch in token):
        return None
    return token


def build_strategy(name: str) -> MatchStrategy:
    if name == SenderAddressStrategy.name:
        return SenderAddressStrategy()
    if name == EmbeddedCodeStrategy.name:
        return EmbeddedCodeStrategy()
    raise ValueError(f"Unknown match strategy: {name}")


@dataclass(slots=True)
class MatchEngine:
    strategy: MatchStrategy
    registry: EligibilityRegistry
    claims: ClaimLedger
    policy: VerificationPolicy

    def evaluate(
        self,
        transfer: CandidateTransfer,
        pending: PendingRequestStore,
        *,
        enforce_amount: bool = True,
    ) -> MatchResult:
        if enforce_amount and transfer.amount != self.policy.verification_amount:
            log.info(
                "Transfer %s has wrong amount: expected %s, got %s",
                transfer.transfer_id,
                format_amount(self.policy.verification_amount),
                format_amount(transfer.amount),
            )
            return RejectedWrongAmount(transfer, self.policy.verification_amount)

        request = self.strategy.resolve(transfer, pending)
        if request is None:
            log.info(
                "No pending request matches transfer %s from %s",
                transfer.transfer_id,
                transfer.from_address,
            )
            return RejectedUnmatched(transfer)

        if not self.registry.is_eligible(request.address):
            log.info("Address %s of request %s is not eligible", request.address, request.code)
            return RejectedNotEligible(request, transfer)

        owner = self.claims.owner_of(request.address)
        if owner is not None:
            log.info("Address %s of request %s already claimed", request.address, request.code)
            return RejectedAlreadyClaimed(request, transfer, owner)

        return Accepted(request, transfer)
