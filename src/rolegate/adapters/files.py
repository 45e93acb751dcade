"""File-backed stores for the eligibility list and the claim ledger."""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from rolegate.config.errors import ConfigurationError
from rolegate.domain.addresses import normalize_address
from rolegate.domain.model import ClaimInfo

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

log = getLogger(__name__)


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class FileAddressListStore:
    """Newline-delimited address list; blank lines and ``#`` comments are ignored."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> set[str]:
        if not self.path.exists():
            log.info(f"No eligibility list at {self.path}; starting empty")
            return set()
        addresses: set[str] = set()
        for line in self.path.read_text(encoding="utf-8").splitlines():
            entry = line.strip()
            if not entry or entry.startswith("#"):
                continue
            addresses.add(normalize_address(entry))
        log.info(f"Loaded {len(addresses)} eligible addresses from {self.path}")
        return addresses

    def save(self, addresses: set[str]) -> None:
        lines = sorted(addresses)
        _atomic_write(self.path, "\n".join(lines) + ("\n" if lines else ""))


class ClaimRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    claimant_id: str = Field(alias="claimantId")
    claimant_label: str = Field(alias="claimantLabel")
    verified_at: datetime = Field(alias="verifiedAt")
    transfer_id: str | None = Field(default=None, alias="transferId")

    @classmethod
    def from_claim(cls, claim: ClaimInfo) -> ClaimRecord:
        return cls(
            claimant_id=claim.claimant_id,
            claimant_label=claim.claimant_label,
            verified_at=claim.claimed_at,
            transfer_id=claim.transfer_id,
        )

    def to_claim(self) -> ClaimInfo:
        verified_at = self.verified_at
        if verified_at.tzinfo is None:
            verified_at = verified_at.replace(tzinfo=UTC)
        return ClaimInfo(
            claimant_id=self.claimant_id,
            claimant_label=self.claimant_label,
            claimed_at=verified_at,
            transfer_id=self.transfer_id,
        )


_CLAIMS_DOCUMENT = TypeAdapter(dict[str, ClaimRecord])


class JsonClaimStore:
    """JSON document keyed by normalized address."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> dict[str, ClaimInfo]:
        if not self.path.exists():
            log.info(f"No claims file at {self.path}; starting empty")
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        try:
            document = _CLAIMS_DOCUMENT.validate_json(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Claims file {self.path} is malformed: {exc}") from exc
        claims = {
            normalize_address(address): record.to_claim() for address, record in document.items()
        }
        log.info(f"Loaded {len(claims)} claims from {self.path}")
        return claims

    def save(self, claims: Mapping[str, ClaimInfo]) -> None:
        document = {
            address: ClaimRecord.from_claim(claim) for address, claim in sorted(claims.items())
        }
        payload = _CLAIMS_DOCUMENT.dump_json(document, by_alias=True, exclude_none=True, indent=2)
        _atomic_write(self.path, payload.decode("utf-8") + "\n")
