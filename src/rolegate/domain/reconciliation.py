"""Reconciliation loop: the single writer of claims and pending requests.

Every mutation of ``PendingRequestStore`` and ``ClaimLedger`` happens while
holding ``ReconciliationLoop.lock``. Scan triggers that find the lock taken are
skipped instead of queued, so a slow cycle never overlaps the next one.

Per request the lifecycle is ``created -> finalized | expired | cancelled``.
Finalizing writes the claim, drops the request, marks the transfer processed,
then grants, notifies and refunds. A transfer id that is already marked is a
no-op, which is what keeps a rolling scan window from paying twice.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .amounts import format_amount
from .errors import NotEligibleError, ScanningUnavailableError
from .matching import (
    Accepted,
    RejectedAlreadyClaimed,
    RejectedNotEligible,
    RejectedUnmatched,
    RejectedWrongAmount,
    refund_due,
)
from .model import CycleReport, RequestState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .context import EngineContext
    from .matching import MatchEngine, MatchResult
    from .model import CandidateTransfer, ClaimInfo, VerificationRequest
    from .refunds import RefundIssuer, RefundReceipt
    from .scanner import LedgerScanner
    from .side_effects import SideEffects

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransferOutcome:
    """What the loop did with one transfer."""

    transfer: CandidateTransfer
    result: MatchResult | None = None
    claim: ClaimInfo | None = None
    refund: RefundReceipt | None = None
    duplicate: bool = False

    @property
    def finalized(self) -> bool:
        return self.claim is not None


class ReconciliationLoop:
    def __init__(  # noqa: PLR0913
        self,
        context: EngineContext,
        engine: MatchEngine,
        effects: SideEffects,
        *,
        scanner: LedgerScanner | None = None,
        refunds: RefundIssuer | None = None,
        receiving_address: str | None = None,
        scan_interval: float = 30.0,
        sweep_interval: float = 60.0,
    ) -> None:
        self.context = context
        self.engine = engine
        self.effects = effects
        self.scanner = scanner
        self.refunds = refunds
        self.receiving_address = receiving_address
        self.scan_interval = scan_interval
        self.sweep_interval = sweep_interval
        self.lock = asyncio.Lock()
        self._timers: list[asyncio.Task[None]] = []
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def scanning_enabled(self) -> bool:
        return (
            self.scanner is not None
            and self.refunds is not None
            and self.receiving_address is not None
        )

    # Request lifecycle -------------------------------------------------------

    async def open_request(
        self,
        *,
        claimant_id: str,
        claimant_label: str,
        address: str,
        origin_context: str | None,
    ) -> VerificationRequest:
        async with self.lock:
            request = self.context.pending.create(
                claimant_id=claimant_id,
                claimant_label=claimant_label,
                address=address,
                origin_context=origin_context,
                now=self.context.clock(),
            )
        self.effects.record(
            "request_created",
            {
                "code": request.code,
                "address": request.address,
                "claimant_id": claimant_id,
                "state": RequestState.CREATED,
            },
        )
        return request

    async def cancel_request(self, code: str) -> VerificationRequest | None:
        async with self.lock:
            request = self.context.pending.remove(code)
        if request is not None:
            log.info("Pending request %s cancelled", request.code)
            self.effects.record(
                "request_cancelled",
                {
                    "code": request.code,
                    "address": request.address,
                    "state": RequestState.CANCELLED,
                },
            )
        return request

    async def sweep_expired(self) -> list[str]:
        async with self.lock:
            expired = self.context.pending.sweep_expired(
                self.context.clock(), self.context.policy.request_timeout
            )
        for code in expired:
            self.effects.record("request_expired", {"code": code, "state": RequestState.EXPIRED})
        if expired:
            log.info("Expired %s pending requests", len(expired))
        return expired

    async def record_manual_claim(
        self,
        *,
        address: str,
        claimant_id: str,
        claimant_label: str,
        origin_context: str | None,
    ) -> ClaimInfo:
        """Claim without a payment (admin path while scanning is unavailable)."""

        async with self.lock:
            if not self.context.registry.is_eligible(address):
                raise NotEligibleError(address)
            info = self.context.claims.claim(
                address, claimant_id, claimant_label, self.context.clock()
            )
            pending = self.context.pending.find_by_address(address)
            if pending is not None:
                self.context.pending.remove(pending.code)
        self.effects.record(
            "manual_claim",
            {"address": address, "claimant_id": claimant_id, "claimant_label": claimant_label},
        )
        await self.effects.grant(claimant_id, origin_context)
        return info

    # Scan cycle --------------------------------------------------------------

    async def run_scan_cycle(self) -> CycleReport | None:
        """Run one scan cycle; returns ``None`` when a previous cycle still holds the lock."""

        scanner, receiving = self._require_scanning()
        if self.lock.locked():
            log.warning("Previous reconciliation pass still running, skipping this trigger")
            return None

        async with self.lock:
            policy = self.context.policy
            scan = await scanner.scan_recent_transfers(receiving, policy.scan_window_blocks)
            report = CycleReport(observed=len(scan.transfers))
            for transfer in scan.transfers:
                try:
                    outcome = await self._process_locked(transfer, height=transfer.block_height)
                except Exception:
                    log.exception("Error processing transfer %s", transfer.transfer_id)
                    report.errors += 1
                    continue
                _tally(report, outcome)
            if scan.start_height is not None:
                self.context.processed.evict_below(scan.start_height)

        log.info(
            "Cycle done: observed=%s, duplicates=%s, finalized=%s, rejected=%s, "
            "refunds=%s, refund_failures=%s, errors=%s",
            report.observed,
            report.skipped_duplicates,
            len(report.finalized),
            report.rejected,
            report.refunds_issued,
            report.refunds_failed,
            report.errors,
        )
        return report

    async def process_transfer(
        self,
        transfer: CandidateTransfer,
        *,
        force: bool = False,
    ) -> TransferOutcome:
        """Process one transfer outside the timer (manual verify / force process).

        ``force`` skips the exact-amount check and never refunds an unmatched
        transfer. Claim-once, eligibility and dedup still apply.
        """

        self._require_scanning()
        async with self.lock:
            # height stays unknown so window eviction never forgets a manual decision
            return await self._process_locked(transfer, height=None, force=force)

    async def _process_locked(
        self,
        transfer: CandidateTransfer,
        *,
        height: int | None,
        force: bool = False,
    ) -> TransferOutcome:
        processed = self.context.processed
        if transfer.transfer_id in processed:
            log.debug("Transfer %s already processed, skipping", transfer.transfer_id)
            return TransferOutcome(transfer=transfer, duplicate=True)

        result = self.engine.evaluate(transfer, self.context.pending, enforce_amount=not force)
        claim: ClaimInfo | None = None

        match result:
            case Accepted(request=request):
                # a failing claim write propagates before the transfer is marked,
                # so the next cycle sees it again
                claim = self._finalize_locked(request, transfer)
            case RejectedAlreadyClaimed(request=request):
                self.context.pending.remove(request.code)
            case _:
                pass
        processed.mark(transfer.transfer_id, height)

        await self._announce(result)

        amount = refund_due(result, self.context.policy)
        if force and isinstance(result, RejectedUnmatched):
            amount = None
        refund = await self._refund(transfer, amount) if amount else None
        return TransferOutcome(transfer=transfer, result=result, claim=claim, refund=refund)

    def _finalize_locked(
        self, request: VerificationRequest, transfer: CandidateTransfer
    ) -> ClaimInfo:
        info = self.context.claims.claim(
            request.address,
            request.claimant_id,
            request.claimant_label,
            self.context.clock(),
            transfer_id=transfer.transfer_id,
        )
        self.context.pending.remove(request.code)
        return info

    async def _announce(self, result: MatchResult) -> None:
        effects = self.effects
        match result:
            case Accepted(request=request, transfer=transfer):
                effects.record(
                    "verification_finalized",
                    {
                        "code": request.code,
                        "address": request.address,
                        "claimant_id": request.claimant_id,
                        "claimant_label": request.claimant_label,
                        "transfer_id": transfer.transfer_id,
                        "state": RequestState.FINALIZED,
                    },
                )
                await effects.grant(request.claimant_id, request.origin_context)
                await effects.notify(
                    request.claimant_id,
                    f"Verification successful! Address {request.address} has been verified "
                    f"and the credential granted. Your refund of "
                    f"{format_amount(self.context.policy.refund_amount)} is being processed. "
                    f"Transaction: {transfer.transfer_id}",
                )
                log.info(
                    "Verification successful for %s - address %s",
                    request.claimant_label,
                    request.address,
                )
            case RejectedNotEligible(request=request, transfer=transfer):
                effects.record(
                    "rejected_not_eligible",
                    {
                        "code": request.code,
                        "address": request.address,
                        "transfer_id": transfer.transfer_id,
                    },
                )
                await effects.notify(
                    request.claimant_id,
                    f"Address {request.address} is not eligible; your payment will be refunded.",
                )
            case RejectedAlreadyClaimed(request=request, transfer=transfer):
                effects.record(
                    "rejected_already_claimed",
                    {
                        "code": request.code,
                        "address": request.address,
                        "transfer_id": transfer.transfer_id,
                    },
                )
                await effects.notify(
                    request.claimant_id,
                    f"Address {request.address} has already been claimed; "
                    "your payment will be refunded.",
                )
            case RejectedUnmatched(transfer=transfer):
                effects.record(
                    "rejected_unmatched",
                    {"transfer_id": transfer.transfer_id, "from": transfer.from_address},
                )
            case RejectedWrongAmount(transfer=transfer, expected=expected):
                effects.record(
                    "rejected_wrong_amount",
                    {
                        "transfer_id": transfer.transfer_id,
                        "from": transfer.from_address,
                        "amount": str(transfer.amount),
                        "expected": str(expected),
                    },
                )

    async def _refund(self, transfer: CandidateTransfer, amount: int) -> RefundReceipt | None:
        if self.refunds is None:
            log.warning("No refund issuer configured; %s is owed a refund", transfer.from_address)
            return None
        receipt = await self.refunds.issue(transfer.from_address, amount)
        self.effects.record(
            "refund_sent" if receipt.ok else "refund_failed",
            {
                "for_transfer": transfer.transfer_id,
                "to": receipt.to_address,
                "amount": str(receipt.amount),
                "refund_transfer": receipt.transfer_id,
                "error": receipt.error,
            },
        )
        return receipt

    def _require_scanning(self) -> tuple[LedgerScanner, str]:
        if self.scanner is None or self.refunds is None or self.receiving_address is None:
            raise ScanningUnavailableError(
                "Ledger scanning is not running; only manual verification is available"
            )
        return self.scanner, self.receiving_address

    # Scheduler ---------------------------------------------------------------

    def start(self) -> None:
        """Start the scan and sweep timers on the running event loop."""

        if self._timers:
            raise RuntimeError("Reconciliation loop already started")
        if self.scanning_enabled:
            self._timers.append(
                asyncio.create_task(self._every(self.scan_interval, self.run_scan_cycle))
            )
        else:
            log.warning("Scanning disabled; running in manual-verification-only mode")
        self._timers.append(
            asyncio.create_task(self._every(self.sweep_interval, self.sweep_expired))
        )

    async def stop(self) -> None:
        timers, self._timers = self._timers, []
        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def run_until(self, stop: asyncio.Event) -> None:
        self.start()
        try:
            await stop.wait()
        finally:
            await self.stop()

    async def _every(self, interval: float, action: Callable[[], Awaitable[object]]) -> None:
        while True:
            await asyncio.sleep(interval)
            task = asyncio.create_task(self._guarded(action()))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    @staticmethod
    async def _guarded(action: Awaitable[object]) -> None:
        try:
            await action
        except Exception:
            log.exception("Reconciliation task failed")


def _tally(report: CycleReport, outcome: TransferOutcome) -> None:
    if outcome.duplicate:
        report.skipped_duplicates += 1
        return
    if outcome.claim is not None and isinstance(outcome.result, Accepted):
        report.finalized.append(outcome.result.request.code)
    elif outcome.result is not None:
        report.rejected += 1
    if outcome.refund is not None:
        if outcome.refund.ok:
            report.refunds_issued += 1
        else:
            report.refunds_failed += 1
