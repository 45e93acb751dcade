"""Value types shared by the verification engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


class RequestState(StrEnum):
    CREATED = "created"
    FINALIZED = "finalized"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ClaimInfo:
    """Permanent binding of an address to the claimant who verified it."""

    claimant_id: str
    claimant_label: str
    claimed_at: datetime
    transfer_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class VerificationRequest:
    """An outstanding verification attempt awaiting an on-ledger payment."""

    code: str
    claimant_id: str
    claimant_label: str
    address: str
    origin_context: str | None
    created_at: datetime

    def expires_at(self, timeout: timedelta) -> datetime:
        return self.created_at + timeout

    def is_expired(self, now: datetime, timeout: timedelta) -> bool:
        return now - self.created_at > timeout

    def remaining(self, now: datetime, timeout: timedelta) -> timedelta:
        return max(timedelta(0), self.expires_at(timeout) - now)


@dataclass(frozen=True, slots=True, kw_only=True)
class CandidateTransfer:
    """An observed incoming payment, decoupled from any RPC reply shape."""

    transfer_id: str
    from_address: str
    to_address: str
    amount: int
    auxiliary_data: bytes = b""
    block_height: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class VerificationPolicy:
    """Engine-level knobs, amounts in integer base units."""

    verification_amount: int
    refund_amount: int
    request_timeout: timedelta = timedelta(minutes=10)
    scan_window_blocks: int = 20
    block_delay_seconds: float = 0.1


@dataclass(slots=True)
class CycleReport:
    """Summary of one reconciliation cycle."""

    observed: int = 0
    skipped_duplicates: int = 0
    finalized: list[str] = field(default_factory=list)
    refunds_issued: int = 0
    refunds_failed: int = 0
    rejected: int = 0
    errors: int = 0
