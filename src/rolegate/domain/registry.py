"""Eligibility registry: the allow-list of pre-approved addresses."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .addresses import MIN_ADDRESS_LENGTH, normalize_address

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .ports.persistence import AddressListStore

log = getLogger(__name__)


class EligibilityRegistry:
    """Normalized address set, persisted after every mutation.

    Mutations write the new set to the store first and only swap the in-memory
    set once the store accepted it, so a failed save leaves both unchanged.
    """

    def __init__(self, store: AddressListStore) -> None:
        self._store = store
        self._addresses: frozenset[str] = frozenset()

    def load(self) -> int:
        loaded = {normalize_address(address) for address in self._store.load()}
        self._addresses = frozenset(address for address in loaded if address)
        log.info("Loaded %s eligible addresses", len(self._addresses))
        return len(self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.is_eligible(address)

    def is_eligible(self, address: str) -> bool:
        return normalize_address(address) in self._addresses

    def addresses(self) -> list[str]:
        return sorted(self._addresses)

    def add(self, address: str) -> bool:
        """Add ``address``; returns ``False`` when it was already present."""

        normalized = normalize_address(address)
        if normalized in self._addresses:
            return False
        self._commit(self._addresses | {normalized})
        return True

    def remove(self, address: str) -> bool:
        """Remove ``address``; returns ``False`` when it was not present."""

        normalized = normalize_address(address)
        if normalized not in self._addresses:
            return False
        self._commit(self._addresses - {normalized})
        return True

    def replace_all(self, addresses: Iterable[str]) -> int:
        normalized = {normalize_address(address) for address in addresses}
        normalized.discard("")
        self._commit(frozenset(normalized))
        return len(normalized)

    def _commit(self, addresses: frozenset[str]) -> None:
        self._store.save(set(addresses))
        self._addresses = addresses
        log.info("Eligible addresses saved: %s addresses", len(addresses))


def parse_address_list(content: str) -> list[str]:
    """Parse an uploaded newline-delimited list, dropping blanks and short entries."""

    parsed: list[str] = []
    seen: set[str] = set()
    for line in content.splitlines():
        address = normalize_address(line)
        if len(address) < MIN_ADDRESS_LENGTH or address in seen:
            continue
        seen.add(address)
        parsed.append(address)
    return parsed
