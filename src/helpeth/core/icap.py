"""
ICAP (Inter exchange Client Address Protocol) encoding.

An ICAP is an IBAN with country code ``XE``. The BBAN part takes one of
three shapes:

- direct:   30 base-36 characters encoding the address (address < 36**30)
- basic:    31 base-36 characters encoding any address
- indirect: 16 characters ``<asset:3><institution:4><client:9>`` naming an
            account in a registry instead of an address

Check digits follow ISO 13616 (mod 97).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from helpeth.core.constants import (
    ADDRESS_LENGTH,
    ICAP_BASIC_LENGTH,
    ICAP_COUNTRY_CODE,
    ICAP_DIRECT_LENGTH,
    ICAP_GROUP_SIZE,
    ICAP_INDIRECT_LENGTH,
)

_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_ICAP_PATTERN = re.compile(r"^XE[0-9]{2}(?:[0-9A-Z]{16}|[0-9A-Z]{30,31})$")
_DIRECT_LIMIT = 36 ** ICAP_DIRECT_LENGTH
_ADDRESS_LIMIT = 1 << (8 * ADDRESS_LENGTH)


@dataclass(frozen=True)
class IndirectAccount:
    """Registry reference carried by an indirect ICAP."""

    asset: str
    institution: str
    client: str


def _prepare(text: str) -> str:
    return text.replace(" ", "").upper()


def looks_like_icap(text: str) -> bool:
    """Return True when ``text`` matches the ICAP grammar (checksum not verified)."""
    return bool(_ICAP_PATTERN.match(_prepare(text)))


def _iso13616_remainder(iban: str) -> int:
    rearranged = iban[4:] + iban[:4]
    digits = "".join(str(_ALPHABET.index(char)) for char in rearranged)
    return int(digits) % 97


def _check_digits(bban: str) -> str:
    remainder = _iso13616_remainder(ICAP_COUNTRY_CODE + "00" + bban)
    return f"{98 - remainder:02d}"


def is_valid(text: str) -> bool:
    """Return True for a well-formed ICAP with correct check digits."""
    iban = _prepare(text)
    return bool(_ICAP_PATTERN.match(iban)) and _iso13616_remainder(iban) == 1


def _base36(value: int, width: int) -> str:
    chars = []
    while value:
        value, digit = divmod(value, 36)
        chars.append(_ALPHABET[digit])
    return "".join(reversed(chars)).rjust(width, "0")


def print_format(iban: str) -> str:
    """Group an ICAP into blocks of four characters separated by spaces."""
    return " ".join(iban[i:i + ICAP_GROUP_SIZE] for i in range(0, len(iban), ICAP_GROUP_SIZE))


def _finish(bban: str, printable: bool) -> str:
    iban = ICAP_COUNTRY_CODE + _check_digits(bban) + bban
    return print_format(iban) if printable else iban


def is_direct_capable(address: bytes) -> bool:
    """Return True when the address fits the 30-character direct form."""
    return int.from_bytes(address, "big") < _DIRECT_LIMIT


def from_address(address: bytes, printable: bool = False, allow_basic: bool = True) -> str:
    """
    Encode a 20-byte address as ICAP.

    Args:
        address: Raw address bytes
        printable: Group the result into blocks of four characters
        allow_basic: Fall back to the 31-character basic form when the
            address is too large for the direct form

    Raises:
        ValueError: If the address has the wrong length, or needs the basic
            form and ``allow_basic`` is False
    """
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(address)}")
    if is_direct_capable(address):
        width = ICAP_DIRECT_LENGTH
    elif allow_basic:
        width = ICAP_BASIC_LENGTH
    else:
        raise ValueError("Address cannot be encoded as a direct ICAP")
    return _finish(_base36(int.from_bytes(address, "big"), width), printable)


def encode_indirect(asset: str, institution: str, client: str, printable: bool = False) -> str:
    """Encode a registry reference as an indirect ICAP."""
    parts = (asset.upper(), institution.upper(), client.upper())
    if tuple(len(part) for part in parts) != (3, 4, 9):
        raise ValueError("Indirect ICAP needs a 3-char asset, 4-char institution and 9-char client")
    bban = "".join(parts)
    if any(char not in _ALPHABET for char in bban):
        raise ValueError("Indirect ICAP fields must be alphanumeric")
    return _finish(bban, printable)


def decode(text: str) -> Union[bytes, IndirectAccount]:
    """
    Decode an ICAP into address bytes or an indirect registry reference.

    Raises:
        ValueError: If the ICAP is malformed or its check digits are wrong
    """
    if not is_valid(text):
        raise ValueError(f"Not a valid ICAP: {text}")
    bban = _prepare(text)[4:]
    if len(bban) == ICAP_INDIRECT_LENGTH:
        return IndirectAccount(asset=bban[:3], institution=bban[3:7], client=bban[7:])
    value = int(bban, 36)
    if value >= _ADDRESS_LIMIT:
        raise ValueError(f"ICAP does not encode a {ADDRESS_LENGTH}-byte address: {text}")
    return value.to_bytes(ADDRESS_LENGTH, "big")
