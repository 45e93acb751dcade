"""JSON-RPC ledger adapter."""

from __future__ import annotations

from .client import JsonRpcLedgerClient, LedgerRpcError
from .signer import LocalKeySubmitter

__all__ = ["JsonRpcLedgerClient", "LedgerRpcError", "LocalKeySubmitter"]
