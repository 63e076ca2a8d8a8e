"""
Best-effort ("shady") numeric input normalization.

Command-line values arrive as hex (``0xff``), plain decimals (``255``) or
quantities with a denomination (``1 eth``, ``20 gwei``). Everything is turned
into ``0x``-prefixed hex. Hex input is passed through untouched, so this is
not a validator: malformed hex only fails later, when it is converted.
"""

from __future__ import annotations

import logging
import re

from helpeth.core.exceptions import DecodeError
from helpeth.core.units import to_base_units

logger = logging.getLogger(__name__)

_UNIT_QUANTITY = re.compile(r"^\s*(\d+(?:\.\d+)?)\s+([A-Za-z]+)\s*$")


def _has_hex_prefix(text: str) -> bool:
    return text[:2].lower() == "0x"


def decimal_or_hex(text: str) -> str:
    """
    Pass hex through, re-encode a base-10 integer as hex.

    Raises:
        DecodeError: If the text is neither hex-prefixed nor a decimal integer
    """
    if _has_hex_prefix(text):
        return text
    try:
        return hex(int(text, 10))
    except ValueError as exc:
        raise DecodeError(f"Not a decimal or hex number: {text!r}") from exc


def normalize(text: str) -> str:
    """
    Normalize a numeric command-line value to ``0x``-prefixed hex.

    Args:
        text: Hex, decimal, or ``"<number> <unit>"`` input

    Returns:
        Hex string (hex input is returned unchanged)

    Raises:
        DecodeError: On input that is not a number
        UnknownUnitError: On an unrecognized denomination name

    Example:
        >>> normalize("100")
        '0x64'
        >>> normalize("1 gwei")
        '0x3b9aca00'
    """
    match = _UNIT_QUANTITY.match(text)
    if match:
        amount, unit = match.groups()
        wei = to_base_units(amount, unit)
        logger.debug(
            "Converted unit quantity",
            extra={"event": "normalizer.unit", "unit": unit.lower(), "wei": wei},
        )
        text = str(wei)
    return decimal_or_hex(text.strip())


def to_int(text: str) -> int:
    """Normalize ``text`` and parse the resulting hex as an integer."""
    normalized = normalize(text)
    digits = normalized[2:]
    if not digits:
        return 0
    try:
        return int(digits, 16)
    except ValueError as exc:
        raise DecodeError(f"Invalid hex number: {normalized}") from exc


def to_bytes(text: str) -> bytes:
    """Normalize ``text`` and decode the resulting hex into bytes."""
    digits = normalize(text)[2:]
    if len(digits) % 2:
        digits = "0" + digits
    try:
        return bytes.fromhex(digits)
    except ValueError as exc:
        raise DecodeError(f"Invalid hex data: {text!r}") from exc


def hex_to_bytes(text: str) -> bytes:
    """Decode strict hex (optional ``0x`` prefix) without decimal interpretation."""
    digits = text[2:] if _has_hex_prefix(text) else text
    if len(digits) % 2:
        digits = "0" + digits
    try:
        return bytes.fromhex(digits)
    except ValueError as exc:
        raise DecodeError(f"Invalid hex data: {text!r}") from exc
