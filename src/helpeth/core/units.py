"""
Denomination unit helpers.

Conversions scale by fixed powers of ten and stay in Decimal arithmetic so
that integral wei amounts survive any round trip exactly.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

from helpeth.core.constants import BASE_UNIT, DISPLAY_UNIT, UNIT_EXPONENTS
from helpeth.core.exceptions import DecodeError, UnknownUnitError

# Enough digits for tether-to-wei scaling of any 256-bit amount
_PRECISION = 120


def unit_exponent(unit: str) -> int:
    """Return the power of ten of one ``unit`` expressed in wei."""
    try:
        return UNIT_EXPONENTS[unit.strip().lower()]
    except KeyError:
        raise UnknownUnitError(f"Unknown unit: {unit}") from None


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            dec = Decimal(value.strip())
        except InvalidOperation as exc:
            raise DecodeError(f"Invalid amount value: {value}") from exc
        if not dec.is_finite():
            raise DecodeError(f"Invalid amount value: {value}")
        return dec
    raise DecodeError("Amount must be int, str, or Decimal")


def convert(value: Any, from_unit: str, to_unit: str) -> Decimal:
    """
    Convert an amount between two denominations.

    Args:
        value: Amount expressed in ``from_unit``
        from_unit: Source denomination name (case-insensitive)
        to_unit: Target denomination name (case-insensitive)

    Returns:
        Exact Decimal amount in ``to_unit``

    Raises:
        UnknownUnitError: If either denomination is not recognized
        DecodeError: If the amount is not a number
    """
    shift = unit_exponent(from_unit) - unit_exponent(to_unit)
    amount = _to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return amount.scaleb(shift)


def to_base_units(value: Any, unit: str) -> int:
    """Convert an amount in ``unit`` to an integer number of wei."""
    amount = convert(value, unit, BASE_UNIT)
    if amount != amount.to_integral_value():
        raise DecodeError(f"{value} {unit} is not a whole number of {BASE_UNIT}")
    return int(amount)


def format_amount(value: Decimal) -> str:
    """Render a Decimal without exponent notation or trailing zeros."""
    if value == 0:
        return "0"
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_ether(wei: int) -> str:
    """Format a wei amount as a plain ether string."""
    return format_amount(convert(wei, BASE_UNIT, DISPLAY_UNIT))
