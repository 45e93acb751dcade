"""Explicit engine context: the state every operation works against."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .claims import ClaimLedger
from .dedup import ProcessedTransferCache
from .model import Clock, VerificationPolicy, utcnow
from .pending import PendingRequestStore
from .registry import EligibilityRegistry

if TYPE_CHECKING:
    from .ports.persistence import AddressListStore, ClaimStore

log = getLogger(__name__)


@dataclass(slots=True)
class EngineContext:
    registry: EligibilityRegistry
    claims: ClaimLedger
    pending: PendingRequestStore
    policy: VerificationPolicy
    processed: ProcessedTransferCache = field(default_factory=ProcessedTransferCache)
    clock: Clock = utcnow

    @classmethod
    def from_stores(
        cls,
        *,
        addresses: AddressListStore,
        claims: ClaimStore,
        policy: VerificationPolicy,
        clock: Clock = utcnow,
        pending: PendingRequestStore | None = None,
    ) -> EngineContext:
        """Build a context and load the durable state from ``addresses`` and ``claims``."""

        context = cls(
            registry=EligibilityRegistry(addresses),
            claims=ClaimLedger(claims),
            pending=pending if pending is not None else PendingRequestStore(),
            policy=policy,
            clock=clock,
        )
        context.registry.load()
        context.claims.load()
        context.remember_finalizing_transfers()
        return context

    def remember_finalizing_transfers(self) -> int:
        """Mark the transfer behind every stored claim as processed.

        A restarted loop re-scans blocks that already finalized a claim; those
        transfers must stay no-ops instead of being refunded as unmatched.
        """

        finalizing = [
            info.transfer_id
            for info in sorted(self.claims.snapshot().values(), key=lambda info: info.claimed_at)
            if info.transfer_id is not None
        ]
        for transfer_id in finalizing:
            self.processed.mark(transfer_id, None)
        if finalizing:
            log.info("Remembered %s finalizing transfers from stored claims", len(finalizing))
        return len(finalizing)
