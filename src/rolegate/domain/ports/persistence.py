"""Ports for persisting the eligibility list and the claim ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from rolegate.domain.model import ClaimInfo


@runtime_checkable
class AddressListStore(Protocol):
    """Durable set of normalized addresses."""

    def load(self) -> set[str]: ...

    def save(self, addresses: set[str]) -> None: ...


@runtime_checkable
class ClaimStore(Protocol):
    """Durable mapping of normalized address to claim information."""

    def load(self) -> dict[str, ClaimInfo]: ...

    def save(self, claims: Mapping[str, ClaimInfo]) -> None: ...
