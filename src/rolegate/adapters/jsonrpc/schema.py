"""Pydantic models describing the Ethereum-style JSON-RPC payloads we consume."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _hex_to_int(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith(("0x", "0X")):
            return int(stripped, 16) if len(stripped) > 2 else 0  # noqa: PLR2004
        return int(stripped)
    return value


def _hex_to_bytes(value: object) -> object:
    if value is None:
        return b""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith(("0x", "0X")):
            stripped = stripped[2:]
        if len(stripped) % 2:
            stripped = "0" + stripped
        return bytes.fromhex(stripped)
    return value


class RpcBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RpcErrorPayload(RpcBaseModel):
    code: int
    message: str
    data: object | None = None


class RpcResponse(RpcBaseModel):
    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: object | None = None
    error: RpcErrorPayload | None = None


class TransactionPayload(RpcBaseModel):
    hash: str
    sender: str = Field(alias="from")
    to: str | None = None
    value: int
    input: bytes = b""
    block_number: int | None = Field(default=None, alias="blockNumber")
    transaction_index: int | None = Field(default=None, alias="transactionIndex")

    _parse_ints = field_validator("value", "block_number", "transaction_index", mode="before")(
        _hex_to_int
    )
    _parse_input = field_validator("input", mode="before")(_hex_to_bytes)


class BlockPayload(RpcBaseModel):
    number: int
    hash: str | None = None
    transactions: list[TransactionPayload] = Field(default_factory=list)

    _parse_number = field_validator("number", mode="before")(_hex_to_int)


def parse_quantity(value: object) -> int:
    """Decode a JSON-RPC ``QUANTITY`` (hex string) into an int."""

    parsed = _hex_to_int(value)
    if not isinstance(parsed, int):
        raise TypeError(f"Expected hex quantity, got {value!r}")
    return parsed
