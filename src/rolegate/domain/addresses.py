"""Address normalization and validation."""

from __future__ import annotations

from typing import Final

from .errors import InputInvalidError

MIN_ADDRESS_LENGTH: Final[int] = 20
MAX_ADDRESS_LENGTH: Final[int] = 100


def normalize_address(value: str) -> str:
    """Return the canonical form used for every lookup (trimmed, lower-cased)."""

    return value.strip().lower()


def validate_address(value: str | None) -> str:
    """Normalize ``value`` and reject anything that cannot be a ledger address."""

    if value is None:
        raise InputInvalidError("Please provide an address")
    normalized = normalize_address(value)
    if not normalized:
        raise InputInvalidError("Please provide an address")
    if not MIN_ADDRESS_LENGTH <= len(normalized) <= MAX_ADDRESS_LENGTH:
        raise InputInvalidError(
            f"Address must be between {MIN_ADDRESS_LENGTH} and {MAX_ADDRESS_LENGTH} characters"
        )
    if any(ch.isspace() for ch in normalized):
        raise InputInvalidError("Address must not contain whitespace")
    return normalized


def addresses_equal(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    return normalize_address(left) == normalize_address(right)


def validate_transfer_id(value: str | None) -> str:
    if value is None or not value.strip():
        raise InputInvalidError("Please provide a transaction hash")
    normalized = value.strip().lower()
    if not normalized.startswith("0x") or len(normalized) != 66:  # noqa: PLR2004
        raise InputInvalidError(f"Invalid transaction hash: {value}")
    try:
        int(normalized, 16)
    except ValueError as exc:
        raise InputInvalidError(f"Invalid transaction hash: {value}") from exc
    return normalized
