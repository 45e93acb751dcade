"""Bundle of outward-facing collaborators the loop drives after a decision."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .ports.side_effects import AuditLog, CredentialGranter, Notifier

log = getLogger(__name__)


@dataclass(slots=True)
class SideEffects:
    granter: CredentialGranter
    notifier: Notifier
    audit: AuditLog

    async def grant(self, claimant_id: str, origin_context: str | None) -> bool:
        try:
            await self.granter.grant_credential(claimant_id, origin_context)
        except Exception:
            log.exception("Credential grant for %s failed", claimant_id)
            self.record("grant_failed", {"claimant_id": claimant_id, "origin": origin_context})
            return False
        return True

    async def notify(self, claimant_id: str, message: str) -> None:
        try:
            await self.notifier.notify(claimant_id, message)
        except Exception as exc:  # noqa: BLE001
            log.warning("Could not notify %s: %s", claimant_id, exc)

    def record(self, kind: str, details: Mapping[str, object]) -> None:
        try:
            self.audit.record_event(kind, details)
        except Exception as exc:  # noqa: BLE001
            log.warning("Could not record audit event %s: %s", kind, exc)
