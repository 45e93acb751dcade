"""JSON-RPC client for an Ethereum-compatible ledger node."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from rolegate.adapters.http_resilience import ResilientClient, default_client_factory
from rolegate.domain.errors import UpstreamUnavailableError

from .schema import BlockPayload, RpcResponse, TransactionPayload, parse_quantity
from .translator import parse_block_transfers, parse_transfer

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from rolegate.config.http_resilience import ResilienceConfig
    from rolegate.domain.model import CandidateTransfer

log = getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class LedgerRpcError(UpstreamUnavailableError):
    """Raised when the node answers with a JSON-RPC error object."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(slots=True)
class JsonRpcLedgerClient:
    """Implements the ``LedgerReader`` port over JSON-RPC.

    One ``ResilientClient`` is opened lazily and reused until ``aclose`` so the
    rate limiter applies across a whole scan cycle.
    """

    resilience: ResilienceConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)
    _ids: itertools.count[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    async def __aenter__(self) -> JsonRpcLedgerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # LedgerReader -------------------------------------------------------------

    async def head_height(self) -> int:
        return await self._quantity("eth_blockNumber")

    async def block_transfers(self, height: int) -> Sequence[CandidateTransfer]:
        result = await self.call("eth_getBlockByNumber", [hex(height), True])
        if result is None:
            raise UpstreamUnavailableError(f"Block {height} is not available yet")
        block = self._validate(BlockPayload, result)
        return parse_block_transfers(block)

    async def get_transfer(self, transfer_id: str) -> CandidateTransfer | None:
        result = await self.call("eth_getTransactionByHash", [transfer_id])
        if result is None:
            return None
        return parse_transfer(self._validate(TransactionPayload, result))

    async def balance(self, address: str) -> int:
        return await self._quantity("eth_getBalance", [address, "latest"])

    # Signing support -----------------------------------------------------------

    async def chain_id(self) -> int:
        return await self._quantity("eth_chainId")

    async def pending_nonce(self, address: str) -> int:
        return await self._quantity("eth_getTransactionCount", [address, "pending"])

    async def gas_price(self) -> int:
        return await self._quantity("eth_gasPrice")

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        result = await self.call("eth_sendRawTransaction", [raw_transaction])
        if not isinstance(result, str):
            raise UpstreamUnavailableError("Node did not return a transaction hash")
        return result.lower()

    # Transport -----------------------------------------------------------------

    async def call(self, method: str, params: list[object] | None = None) -> object:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        client = self._ensure_client()
        url = self.resilience.base_url or ""
        try:
            response = await client.post(url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            log.warning(f"Ledger RPC {method} failed: {exc}")
            raise UpstreamUnavailableError(f"Ledger RPC {method} failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailableError(f"Ledger RPC {method} returned invalid JSON") from exc

        envelope = self._validate(RpcResponse, payload)
        if envelope.error is not None:
            log.warning(
                f"Ledger RPC {method} error {envelope.error.code}: {envelope.error.message}"
            )
            raise LedgerRpcError(envelope.error.message, code=envelope.error.code)
        return envelope.result

    async def _quantity(self, method: str, params: list[object] | None = None) -> int:
        result = await self.call(method, params)
        try:
            return parse_quantity(result)
        except (TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(
                f"Ledger RPC {method} returned an invalid quantity: {result!r}"
            ) from exc

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.resilience)
        return self._client

    @staticmethod
    def _validate(model: type[M], payload: object) -> M:
        try:
            return model.model_validate(payload)
        except (ValidationError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(
                f"Unexpected ledger RPC payload for {model.__name__}"
            ) from exc
