"""Ports for effects that live outside the engine (chat platform, audit trail)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@runtime_checkable
class CredentialGranter(Protocol):
    """Grants the credential; repeated grants to the same claimant must succeed."""

    async def grant_credential(self, claimant_id: str, origin_context: str | None) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    """Best-effort delivery of a message to a claimant."""

    async def notify(self, claimant_id: str, message: str) -> None: ...


@runtime_checkable
class AuditLog(Protocol):
    """Append-only, best-effort event record."""

    def record_event(self, kind: str, details: Mapping[str, object]) -> None: ...
