"""Conversion between decimal native amounts and integer base units."""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Final

NATIVE_DECIMALS: Final[int] = 18
_SCALE: Final[Decimal] = Decimal(10) ** NATIVE_DECIMALS
# wide enough that scaling any configured amount is exact
_PRECISION: Final[int] = 100


def to_base_units(amount: Decimal | str) -> int:
    with localcontext() as context:
        context.prec = _PRECISION
        value = Decimal(amount) * _SCALE
        if value != value.to_integral_value():
            raise ValueError(f"Amount {amount} has more than {NATIVE_DECIMALS} decimals")
        return int(value)


def from_base_units(value: int) -> Decimal:
    with localcontext() as context:
        context.prec = _PRECISION
        return Decimal(value) / _SCALE


def format_amount(value: int) -> str:
    text = format(from_base_units(value), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
