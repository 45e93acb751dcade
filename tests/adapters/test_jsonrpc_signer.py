from __future__ import annotations

import asyncio

import pytest
from eth_account import Account

from rolegate.adapters.jsonrpc import JsonRpcLedgerClient, LedgerRpcError, LocalKeySubmitter
from rolegate.config import ConfigurationError
from rolegate.config.http_resilience import NO_RETRY, ResilienceConfig
from tests.helpers.engine import addr
from tests.helpers.rpc import FakeNode, make_client_factory

SIGNING_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SERVICE_ADDRESS = Account.from_key(SIGNING_KEY).address.lower()
RESILIENCE = ResilienceConfig(name="test-submit", base_url="https://rpc.test", retry=NO_RETRY)


def _node() -> FakeNode:
    sent: list[str] = []

    def send_raw(params: list[object]) -> object:
        raw = str(params[0])
        sent.append(raw)
        return "0x" + f"{len(sent):064x}"

    return FakeNode(
        results={
            "eth_chainId": "0x279f",
            "eth_getTransactionCount": "0x5",
            "eth_gasPrice": "0x3b9aca00",
        },
        handlers={"eth_sendRawTransaction": send_raw},
    )


def _submitter(node: FakeNode, *, chain_id: int | None = None) -> LocalKeySubmitter:
    rpc = JsonRpcLedgerClient(resilience=RESILIENCE, client_factory=make_client_factory(node))
    return LocalKeySubmitter(SIGNING_KEY, rpc, chain_id=chain_id)


def _raw_transactions(node: FakeNode) -> list[str]:
    return [str(params[0]) for method, params in node.calls if method == "eth_sendRawTransaction"]


def test_address_is_derived_from_key() -> None:
    submitter = _submitter(FakeNode())

    assert submitter.address == SERVICE_ADDRESS
    submitter.ensure_controls(SERVICE_ADDRESS.upper().replace("0X", "0x"))


def test_mismatched_receiving_address_is_a_configuration_error() -> None:
    submitter = _submitter(FakeNode())

    with pytest.raises(ConfigurationError, match="not the receiving address"):
        submitter.ensure_controls(addr(1))


def test_invalid_key_is_a_configuration_error() -> None:
    rpc = JsonRpcLedgerClient(resilience=RESILIENCE)

    with pytest.raises(ConfigurationError):
        LocalKeySubmitter("not-a-key", rpc)


def test_submit_signs_transfer_from_service_address() -> None:
    node = _node()
    submitter = _submitter(node)

    tx_hash = asyncio.run(submitter.submit_transfer(addr(1), 10**15))

    assert tx_hash == "0x" + f"{1:064x}"
    assert node.methods() == [
        "eth_chainId",
        "eth_getTransactionCount",
        "eth_gasPrice",
        "eth_sendRawTransaction",
    ]
    assert node.calls[1][1][1] == "pending"
    (raw,) = _raw_transactions(node)
    assert Account.recover_transaction(raw).lower() == SERVICE_ADDRESS


def test_configured_chain_id_skips_lookup() -> None:
    node = _node()
    submitter = _submitter(node, chain_id=10143)

    asyncio.run(submitter.submit_transfer(addr(1), 1))

    assert "eth_chainId" not in node.methods()


def test_consecutive_submissions_use_increasing_nonces() -> None:
    node = _node()
    submitter = _submitter(node)

    async def scenario() -> None:
        await submitter.submit_transfer(addr(1), 1)
        await submitter.submit_transfer(addr(1), 1)

    asyncio.run(scenario())

    first, second = _raw_transactions(node)
    assert first != second


def test_already_known_returns_local_hash() -> None:
    node = _node()
    node.errors["eth_sendRawTransaction"] = (-32000, "already known")
    submitter = _submitter(node)

    tx_hash = asyncio.run(submitter.submit_transfer(addr(1), 1))

    assert tx_hash.startswith("0x")
    assert len(tx_hash) == 66


def test_rejected_submission_propagates() -> None:
    node = _node()
    node.errors["eth_sendRawTransaction"] = (-32000, "insufficient funds for gas * price + value")
    submitter = _submitter(node)

    with pytest.raises(LedgerRpcError, match="insufficient funds"):
        asyncio.run(submitter.submit_transfer(addr(1), 1))
