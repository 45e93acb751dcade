"""Error taxonomy of the verification engine.

Every error the engine raises towards the command surface derives from
``VerificationError`` so callers can render a user-facing message with one
``except`` clause. Upstream failures (ledger RPC, refund submission) are
``UpstreamUnavailableError`` and are never fatal for a scan cycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import ClaimInfo


class VerificationError(RuntimeError):
    """Base class for engine errors."""


class InputInvalidError(VerificationError, ValueError):
    """Malformed address, request code or transfer id."""


class AlreadyClaimedError(VerificationError):
    """The address has already been claimed; terminal for that address."""

    def __init__(self, address: str, owner: ClaimInfo | None = None) -> None:
        label = owner.claimant_label if owner is not None else "another user"
        super().__init__(f"Address {address} has already been claimed by {label}")
        self.address = address
        self.owner = owner


class NotEligibleError(VerificationError):
    """The address is not on the eligibility list."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Address {address} is not eligible")
        self.address = address


class RequestExpiredError(VerificationError):
    """The pending request is gone (expired, cancelled or finalized)."""


class PendingRequestExistsError(VerificationError):
    """Another claimant already holds a live request for the address."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Address {address} already has a pending verification")
        self.address = address


class UpstreamUnavailableError(VerificationError):
    """The ledger node or the refund submission path failed."""


class AlreadyProcessedError(VerificationError):
    """The transfer was already handled by an earlier cycle."""

    def __init__(self, transfer_id: str) -> None:
        super().__init__(f"Transfer {transfer_id} was already processed")
        self.transfer_id = transfer_id


class ScanningUnavailableError(VerificationError):
    """The ledger subsystem is not running; only manual verification is possible."""


class UnknownTransferError(VerificationError):
    """The ledger has no transfer with the given id, or it is not addressed to us."""
