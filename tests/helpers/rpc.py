"""JSON-RPC node stub served through ``httpx.MockTransport``."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from rolegate.adapters.http_resilience import ResilientClient
from rolegate.config.http_resilience import ResilienceConfig

RpcHandler = Callable[[list[object]], object]


@dataclass
class FakeNode:
    results: dict[str, object] = field(default_factory=dict)
    handlers: dict[str, RpcHandler] = field(default_factory=dict)
    errors: dict[str, tuple[int, str]] = field(default_factory=dict)
    calls: list[tuple[str, list[object]]] = field(default_factory=list)
    status_code: int = 200

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        params = body["params"]
        self.calls.append((method, params))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        if method in self.errors:
            code, message = self.errors[method]
            error = {"code": code, "message": message}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        if method in self.handlers:
            result = self.handlers[method](params)
        else:
            result = self.results.get(method)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


def make_client_factory(node: FakeNode) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return node.handle(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def tx_payload(  # noqa: PLR0913
    tx_hash: str,
    *,
    sender: str,
    to: str | None,
    value: int,
    block: int | None = 100,
    index: int = 0,
    data: str = "0x",
) -> dict[str, object]:
    return {
        "hash": tx_hash,
        "from": sender,
        "to": to,
        "value": hex(value),
        "input": data,
        "blockNumber": hex(block) if block is not None else None,
        "transactionIndex": hex(index),
        "gas": "0x5208",
        "nonce": "0x1",
    }
