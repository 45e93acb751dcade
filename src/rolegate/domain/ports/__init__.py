"""Domain port definitions for adapters."""

from __future__ import annotations

from .ledger import LedgerReader, TransferSubmitter
from .persistence import AddressListStore, ClaimStore
from .side_effects import AuditLog, CredentialGranter, Notifier

__all__ = [
    "AddressListStore",
    "AuditLog",
    "ClaimStore",
    "CredentialGranter",
    "LedgerReader",
    "Notifier",
    "TransferSubmitter",
]
