"""Verification reconciliation engine (pure, adapter-free)."""

from __future__ import annotations

from .addresses import normalize_address, validate_address
from .claims import ClaimLedger
from .context import EngineContext
from .dedup import ProcessedTransferCache
from .errors import (
    AlreadyClaimedError,
    AlreadyProcessedError,
    InputInvalidError,
    NotEligibleError,
    PendingRequestExistsError,
    RequestExpiredError,
    ScanningUnavailableError,
    UnknownTransferError,
    UpstreamUnavailableError,
    VerificationError,
)
from .matching import (
    Accepted,
    EmbeddedCodeStrategy,
    MatchEngine,
    MatchResult,
    RejectedAlreadyClaimed,
    RejectedNotEligible,
    RejectedUnmatched,
    RejectedWrongAmount,
    SenderAddressStrategy,
    build_strategy,
)
from .model import CandidateTransfer, ClaimInfo, VerificationPolicy, VerificationRequest
from .pending import PendingRequestStore
from .reconciliation import ReconciliationLoop, TransferOutcome
from .refunds import RefundIssuer, RefundReceipt
from .registry import EligibilityRegistry
from .scanner import LedgerScanner, ScanResult
from .service import AddressStatus, StatusKind, VerificationInstructions, VerificationService
from .side_effects import SideEffects

__all__ = [
    "Accepted",
    "AddressStatus",
    "AlreadyClaimedError",
    "AlreadyProcessedError",
    "CandidateTransfer",
    "ClaimInfo",
    "ClaimLedger",
    "EligibilityRegistry",
    "EmbeddedCodeStrategy",
    "EngineContext",
    "InputInvalidError",
    "LedgerScanner",
    "MatchEngine",
    "MatchResult",
    "NotEligibleError",
    "PendingRequestExistsError",
    "PendingRequestStore",
    "ProcessedTransferCache",
    "ReconciliationLoop",
    "RefundIssuer",
    "RefundReceipt",
    "RejectedAlreadyClaimed",
    "RejectedNotEligible",
    "RejectedUnmatched",
    "RejectedWrongAmount",
    "RequestExpiredError",
    "ScanResult",
    "ScanningUnavailableError",
    "SenderAddressStrategy",
    "SideEffects",
    "StatusKind",
    "TransferOutcome",
    "UnknownTransferError",
    "UpstreamUnavailableError",
    "VerificationError",
    "VerificationInstructions",
    "VerificationPolicy",
    "VerificationRequest",
    "VerificationService",
    "build_strategy",
    "normalize_address",
    "validate_address",
]
