"""Outgoing refund submission."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .amounts import format_amount
from .errors import UpstreamUnavailableError

if TYPE_CHECKING:
    from .ports.ledger import TransferSubmitter

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RefundReceipt:
    to_address: str
    amount: int
    transfer_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.transfer_id is not None


@dataclass(slots=True)
class RefundIssuer:
    """Submit one refund per call; failures are reported, never retried."""

    submitter: TransferSubmitter

    async def issue(self, to_address: str, amount: int) -> RefundReceipt:
        try:
            transfer_id = await self.submitter.submit_transfer(to_address, amount)
        except UpstreamUnavailableError as exc:
            log.error("Refund of %s to %s failed: %s", format_amount(amount), to_address, exc)
            return RefundReceipt(to_address=to_address, amount=amount, error=str(exc))
        log.info("Refund sent: %s to %s (%s)", transfer_id, to_address, format_amount(amount))
        return RefundReceipt(to_address=to_address, amount=amount, transfer_id=transfer_id)
