"""Refund submission signed locally with the service wallet key."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from eth_account import Account
from eth_utils import to_checksum_address

from rolegate.config.errors import ConfigurationError
from rolegate.domain.addresses import addresses_equal, normalize_address
from rolegate.domain.errors import UpstreamUnavailableError

from .client import LedgerRpcError

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from .client import JsonRpcLedgerClient

log = getLogger(__name__)

NATIVE_TRANSFER_GAS = 21_000


def _hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


class LocalKeySubmitter:
    """Signs plain value transfers and submits them through a non-retrying RPC client.

    Submission is never retried at the transport level: a resend after an
    ambiguous failure could pay the same refund twice.
    """

    def __init__(
        self,
        signing_key: str,
        rpc: JsonRpcLedgerClient,
        *,
        chain_id: int | None = None,
    ) -> None:
        try:
            self._account: LocalAccount = Account.from_key(signing_key)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError("ROLEGATE_SIGNING_KEY is not a valid private key") from exc
        self._rpc = rpc
        self._chain_id = chain_id
        self._last_nonce: int | None = None
        self._lock = asyncio.Lock()

    @property
    def address(self) -> str:
        return normalize_address(self._account.address)

    def ensure_controls(self, receiving_address: str) -> None:
        """Raise ``ConfigurationError`` when the key does not belong to ``receiving_address``."""

        if not addresses_equal(self.address, receiving_address):
            raise ConfigurationError(
                f"Signing key controls {self.address}, not the receiving address "
                f"{normalize_address(receiving_address)}"
            )

    async def aclose(self) -> None:
        await self._rpc.aclose()

    async def submit_transfer(self, to_address: str, amount: int) -> str:
        async with self._lock:
            try:
                transaction = await self._build_transaction(to_address, amount)
                signed = self._account.sign_transaction(transaction)
            except UpstreamUnavailableError:
                raise
            except (ValueError, TypeError) as exc:
                raise UpstreamUnavailableError(f"Could not sign refund: {exc}") from exc

            local_hash = _hex(signed.hash).lower()
            try:
                tx_hash = await self._rpc.send_raw_transaction(_hex(signed.raw_transaction))
            except LedgerRpcError as exc:
                if "already known" in str(exc):
                    log.info(f"Refund {local_hash} was already known to the node")
                    tx_hash = local_hash
                else:
                    raise

            self._last_nonce = int(transaction["nonce"])
            log.info(f"Submitted transfer {tx_hash} of {amount} to {to_address}")
            return tx_hash

    async def _build_transaction(self, to_address: str, amount: int) -> dict[str, int | str]:
        if self._chain_id is None:
            self._chain_id = await self._rpc.chain_id()
        nonce = await self._rpc.pending_nonce(self._account.address)
        if self._last_nonce is not None and nonce <= self._last_nonce:
            nonce = self._last_nonce + 1
        gas_price = await self._rpc.gas_price()
        return {
            "to": to_checksum_address(to_address),
            "value": amount,
            "gas": NATIVE_TRANSFER_GAS,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": self._chain_id,
        }
