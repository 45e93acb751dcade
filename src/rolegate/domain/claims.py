"""Claim ledger: permanent, first-claim-wins binding of address to claimant."""

from __future__ import annotations

from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from .addresses import normalize_address
from .errors import AlreadyClaimedError
from .model import ClaimInfo

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .ports.persistence import ClaimStore

log = getLogger(__name__)


class ClaimLedger:
    def __init__(self, store: ClaimStore) -> None:
        self._store = store
        self._claims: dict[str, ClaimInfo] = {}

    def load(self) -> int:
        self._claims = {
            normalize_address(address): info for address, info in self._store.load().items()
        }
        log.info("Loaded %s claimed addresses", len(self._claims))
        return len(self._claims)

    def __len__(self) -> int:
        return len(self._claims)

    def is_claimed(self, address: str) -> bool:
        return normalize_address(address) in self._claims

    def owner_of(self, address: str) -> ClaimInfo | None:
        return self._claims.get(normalize_address(address))

    def snapshot(self) -> Mapping[str, ClaimInfo]:
        return MappingProxyType(self._claims)

    def claim(
        self,
        address: str,
        claimant_id: str,
        claimant_label: str,
        timestamp: datetime,
        *,
        transfer_id: str | None = None,
    ) -> ClaimInfo:
        """Record the claim or raise ``AlreadyClaimedError``; entries are never overwritten."""

        normalized = normalize_address(address)
        existing = self._claims.get(normalized)
        if existing is not None:
            raise AlreadyClaimedError(normalized, existing)

        info = ClaimInfo(
            claimant_id=claimant_id,
            claimant_label=claimant_label,
            claimed_at=timestamp,
            transfer_id=transfer_id.lower() if transfer_id else None,
        )
        updated = {**self._claims, normalized: info}
        self._store.save(updated)
        self._claims = updated
        log.info("Address %s claimed by %s (%s)", normalized, claimant_label, claimant_id)
        return info
