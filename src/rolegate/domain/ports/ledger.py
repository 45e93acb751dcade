"""Ports for reading from and submitting to the external ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rolegate.domain.model import CandidateTransfer


@runtime_checkable
class LedgerReader(Protocol):
    """Read access to chain height, blocks and single transfers.

    Implementations raise ``UpstreamUnavailableError`` for any transport or
    payload failure.
    """

    async def head_height(self) -> int: ...

    async def block_transfers(self, height: int) -> Sequence[CandidateTransfer]: ...

    async def get_transfer(self, transfer_id: str) -> CandidateTransfer | None: ...

    async def balance(self, address: str) -> int: ...


@runtime_checkable
class TransferSubmitter(Protocol):
    """Signs and submits outgoing transfers from the service address."""

    @property
    def address(self) -> str: ...

    async def submit_transfer(self, to_address: str, amount: int) -> str: ...
