from __future__ import annotations

import asyncio

import pytest

from rolegate.adapters.http_resilience import ResilientClient
from rolegate.adapters.jsonrpc import JsonRpcLedgerClient, LedgerRpcError
from rolegate.config.http_resilience import ResilienceConfig
from rolegate.domain import LedgerScanner, UpstreamUnavailableError
from tests.helpers.engine import RECEIVER, addr, shout, txid
from tests.helpers.rpc import FakeNode, make_client_factory, tx_payload

RESILIENCE = ResilienceConfig(name="test-rpc", base_url="https://rpc.test")


def _client(node: FakeNode) -> JsonRpcLedgerClient:
    return JsonRpcLedgerClient(resilience=RESILIENCE, client_factory=make_client_factory(node))


def test_head_height_decodes_hex_quantity() -> None:
    node = FakeNode(results={"eth_blockNumber": "0x1b4"})

    assert asyncio.run(_client(node).head_height()) == 436


def test_block_transfers_translates_transactions() -> None:
    sender = shout(addr(1)).strip()
    node = FakeNode(
        results={
            "eth_getBlockByNumber": {
                "number": "0x64",
                "hash": "0xblock",
                "transactions": [
                    tx_payload(txid(2), sender=sender, to=RECEIVER, value=5, index=1),
                    tx_payload(
                        shout(txid(1)).strip(),
                        sender=sender,
                        to=shout(RECEIVER).strip(),
                        value=10**15,
                        block=None,
                        data="0x414243313233",
                    ),
                    tx_payload(txid(3), sender=sender, to=None, value=0, index=2),
                ],
            }
        }
    )

    transfers = asyncio.run(_client(node).block_transfers(100))

    assert node.calls == [("eth_getBlockByNumber", ["0x64", True])]
    first = transfers[0]
    assert first.transfer_id == txid(1)
    assert first.from_address == addr(1)
    assert first.to_address == RECEIVER
    assert first.amount == 10**15
    assert first.auxiliary_data == b"ABC123"
    assert first.block_height == 100
    assert [t.transfer_id for t in transfers] == [txid(1), txid(2), txid(3)]
    assert transfers[2].to_address == ""


def test_missing_block_is_upstream_unavailable() -> None:
    node = FakeNode(results={"eth_getBlockByNumber": None})

    with pytest.raises(UpstreamUnavailableError):
        asyncio.run(_client(node).block_transfers(7))


def test_get_transfer_returns_none_when_unknown() -> None:
    node = FakeNode(results={"eth_getTransactionByHash": None})

    assert asyncio.run(_client(node).get_transfer(txid(1))) is None


def test_get_transfer_parses_payload() -> None:
    node = FakeNode(
        results={
            "eth_getTransactionByHash": tx_payload(txid(1), sender=addr(1), to=RECEIVER, value=7)
        }
    )

    transfer = asyncio.run(_client(node).get_transfer(txid(1)))

    assert transfer is not None
    assert transfer.amount == 7
    assert node.calls == [("eth_getTransactionByHash", [txid(1)])]


def test_balance_queries_latest() -> None:
    node = FakeNode(results={"eth_getBalance": hex(3 * 10**17)})

    assert asyncio.run(_client(node).balance(RECEIVER)) == 3 * 10**17
    assert node.calls == [("eth_getBalance", [RECEIVER, "latest"])]


def test_rpc_error_object_is_translated() -> None:
    node = FakeNode(errors={"eth_blockNumber": (-32000, "header not found")})

    with pytest.raises(LedgerRpcError, match="header not found") as excinfo:
        asyncio.run(_client(node).head_height())
    assert excinfo.value.code == -32000
    assert isinstance(excinfo.value, UpstreamUnavailableError)


def test_http_error_is_translated() -> None:
    node = FakeNode(status_code=404)

    with pytest.raises(UpstreamUnavailableError):
        asyncio.run(_client(node).head_height())


def test_malformed_payload_is_translated() -> None:
    node = FakeNode(
        results={"eth_getTransactionByHash": {"hash": txid(1), "value": "not-hex"}}
    )

    with pytest.raises(UpstreamUnavailableError):
        asyncio.run(_client(node).get_transfer(txid(1)))


def test_client_is_reused_until_closed() -> None:
    node = FakeNode(results={"eth_blockNumber": "0x1"})
    created: list[object] = []
    factory = make_client_factory(node)

    def counting_factory(resilience: ResilienceConfig) -> ResilientClient:
        client = factory(resilience)
        created.append(client)
        return client

    client = JsonRpcLedgerClient(resilience=RESILIENCE, client_factory=counting_factory)

    async def scenario() -> None:
        await client.head_height()
        await client.head_height()
        await client.aclose()
        await client.head_height()
        await client.aclose()

    asyncio.run(scenario())

    assert len(created) == 2


@pytest.mark.parametrize(
    ("method", "reply"),
    [("eth_blockNumber", None), ("eth_getBalance", "0xzz"), ("eth_gasPrice", {"wei": 1})],
)
def test_invalid_quantity_is_upstream_unavailable(method: str, reply: object) -> None:
    client = _client(FakeNode(results={method: reply}))
    calls = {
        "eth_blockNumber": client.head_height,
        "eth_getBalance": lambda: client.balance(RECEIVER),
        "eth_gasPrice": client.gas_price,
    }

    with pytest.raises(UpstreamUnavailableError, match="invalid quantity"):
        asyncio.run(calls[method]())


def test_scanner_over_null_head_returns_empty_result() -> None:
    node = FakeNode(results={"eth_blockNumber": None})
    scanner = LedgerScanner(_client(node), block_delay_seconds=0)

    result = asyncio.run(scanner.scan_recent_transfers(RECEIVER, 5))

    assert result.transfers == []
    assert node.methods() == ["eth_blockNumber"]
