"""Command-surface operations mapped onto the engine.

A chat integration (or the CLI) calls these methods; each one validates input,
reads state from the engine context and routes every mutation of pending
requests or claims through the reconciliation loop's lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .addresses import addresses_equal, validate_address, validate_transfer_id
from .amounts import format_amount
from .errors import (
    AlreadyClaimedError,
    AlreadyProcessedError,
    InputInvalidError,
    NotEligibleError,
    PendingRequestExistsError,
    RequestExpiredError,
    ScanningUnavailableError,
    UnknownTransferError,
)
from .registry import parse_address_list

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from .model import ClaimInfo, VerificationRequest
    from .ports.ledger import LedgerReader
    from .reconciliation import ReconciliationLoop, TransferOutcome

log = getLogger(__name__)

HELP_TEXT: Final[str] = """\
User commands:
  verify <address>        start verification of an address you control
  check-status <address>  show whether an address is claimed, pending or eligible
  cancel <code>           cancel your pending verification
Admin commands:
  add-address <address>   add an address to the eligibility list
  remove-address <addr>   remove an address from the eligibility list
  list-addresses          list the eligibility list
  upload-addresses <file> replace the eligibility list with a newline-delimited file
  lookup-claimant <addr>  show who claimed an address
  manual-verify <hash>    process a transfer by hash through the normal checks
  force-process <hash>    finalize a transfer by hash, skipping the amount check
  manual-grant <address>  claim an address without payment (scanning unavailable)
"""


class StatusKind(StrEnum):
    CLAIMED = "claimed"
    PENDING = "pending"
    ELIGIBLE = "eligible"
    NOT_ELIGIBLE = "not_eligible"


@dataclass(frozen=True, slots=True)
class AddressStatus:
    address: str
    kind: StatusKind
    owner: ClaimInfo | None = None
    remaining: timedelta | None = None


@dataclass(frozen=True, slots=True)
class VerificationInstructions:
    """Everything a claimant needs to complete the payment."""

    request: VerificationRequest
    receiving_address: str
    amount: int
    expires_at: datetime
    strategy: str
    reused: bool = False

    @property
    def amount_text(self) -> str:
        return format_amount(self.amount)


class VerificationService:
    def __init__(self, loop: ReconciliationLoop, *, reader: LedgerReader | None = None) -> None:
        self.loop = loop
        self.context = loop.context
        self.reader = reader

    @property
    def scanning_enabled(self) -> bool:
        return self.loop.scanning_enabled and self.reader is not None

    # User commands -----------------------------------------------------------

    async def initiate_verification(
        self,
        address: str | None,
        *,
        claimant_id: str,
        claimant_label: str,
        origin_context: str | None = None,
    ) -> VerificationInstructions:
        normalized = validate_address(address)
        owner = self.context.claims.owner_of(normalized)
        if owner is not None:
            raise AlreadyClaimedError(normalized, owner)
        if not self.context.registry.is_eligible(normalized):
            raise NotEligibleError(normalized)
        if not self.loop.scanning_enabled or self.loop.receiving_address is None:
            raise ScanningUnavailableError(
                "Payment verification is unavailable right now; ask an administrator"
            )

        existing = self.context.pending.find_by_address(normalized)
        if existing is not None:
            if existing.claimant_id != claimant_id:
                raise PendingRequestExistsError(normalized)
            return self._instructions(existing, reused=True)

        request = await self.loop.open_request(
            claimant_id=claimant_id,
            claimant_label=claimant_label,
            address=normalized,
            origin_context=origin_context,
        )
        return self._instructions(request)

    async def cancel_verification(self, code: str, *, claimant_id: str) -> VerificationRequest:
        request = self.context.pending.find_by_code(code)
        if request is None or request.claimant_id != claimant_id:
            raise RequestExpiredError(f"No pending verification with code {code}")
        cancelled = await self.loop.cancel_request(request.code)
        if cancelled is None:
            raise RequestExpiredError(f"No pending verification with code {code}")
        return cancelled

    def check_status(self, address: str | None) -> AddressStatus:
        normalized = validate_address(address)
        owner = self.context.claims.owner_of(normalized)
        if owner is not None:
            return AddressStatus(normalized, StatusKind.CLAIMED, owner=owner)

        pending = self.context.pending.find_by_address(normalized)
        if pending is not None:
            remaining = pending.remaining(
                self.context.clock(), self.context.policy.request_timeout
            )
            return AddressStatus(normalized, StatusKind.PENDING, remaining=remaining)

        if self.context.registry.is_eligible(normalized):
            return AddressStatus(normalized, StatusKind.ELIGIBLE)
        return AddressStatus(normalized, StatusKind.NOT_ELIGIBLE)

    @staticmethod
    def help_text() -> str:
        return HELP_TEXT

    # Admin commands ----------------------------------------------------------

    def add_address(self, address: str | None) -> bool:
        normalized = validate_address(address)
        added = self.context.registry.add(normalized)
        self.loop.effects.record("eligible_added", {"address": normalized, "changed": added})
        return added

    def remove_address(self, address: str | None) -> bool:
        normalized = validate_address(address)
        removed = self.context.registry.remove(normalized)
        self.loop.effects.record("eligible_removed", {"address": normalized, "changed": removed})
        return removed

    def list_addresses(self) -> list[str]:
        return self.context.registry.addresses()

    def upload_addresses(self, content: str) -> int:
        addresses = parse_address_list(content)
        if not addresses:
            raise InputInvalidError("No valid addresses found in the uploaded list")
        count = self.context.registry.replace_all(addresses)
        self.loop.effects.record("eligible_replaced", {"count": count})
        return count

    def lookup_claimant(self, address: str | None) -> ClaimInfo | None:
        return self.context.claims.owner_of(validate_address(address))

    async def manual_verify(self, transfer_id: str | None) -> TransferOutcome:
        return await self._process_by_id(transfer_id, force=False)

    async def force_process(self, transfer_id: str | None) -> TransferOutcome:
        return await self._process_by_id(transfer_id, force=True)

    async def manual_grant(
        self,
        address: str | None,
        *,
        claimant_id: str,
        claimant_label: str,
        origin_context: str | None = None,
    ) -> ClaimInfo:
        normalized = validate_address(address)
        return await self.loop.record_manual_claim(
            address=normalized,
            claimant_id=claimant_id,
            claimant_label=claimant_label,
            origin_context=origin_context,
        )

    # Internals ---------------------------------------------------------------

    async def _process_by_id(self, transfer_id: str | None, *, force: bool) -> TransferOutcome:
        normalized_id = validate_transfer_id(transfer_id)
        if self.reader is None or self.loop.receiving_address is None:
            raise ScanningUnavailableError("Ledger access is not configured")

        log.info("%s transaction %s", "Force processing" if force else "Checking", normalized_id)
        transfer = await self.reader.get_transfer(normalized_id)
        if transfer is None:
            raise UnknownTransferError(f"Transaction {normalized_id} not found")
        if not addresses_equal(transfer.to_address, self.loop.receiving_address):
            raise UnknownTransferError(
                f"Transaction {normalized_id} is not addressed to {self.loop.receiving_address}"
            )

        outcome = await self.loop.process_transfer(transfer, force=force)
        if outcome.duplicate:
            raise AlreadyProcessedError(normalized_id)
        return outcome

    def _instructions(
        self,
        request: VerificationRequest,
        *,
        reused: bool = False,
    ) -> VerificationInstructions:
        receiving = self.loop.receiving_address
        if receiving is None:
            raise ScanningUnavailableError("Receiving address is not configured")
        return VerificationInstructions(
            request=request,
            receiving_address=receiving,
            amount=self.context.policy.verification_amount,
            expires_at=request.expires_at(self.context.policy.request_timeout),
            strategy=self.loop.engine.strategy.name,
            reused=reused,
        )
