"""
Address resolution and representation.

Accepts plain hex, checksummed hex and ICAP input and produces a single
``Address`` value that renders in all three forms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

from helpeth.core import icap
from helpeth.core.address_checksum import is_hex_address, to_checksum_address
from helpeth.core.constants import ADDRESS_LENGTH
from helpeth.core.exceptions import IndirectAddressError, InvalidAddressError
from helpeth.core.hashing import keccak256

logger = logging.getLogger(__name__)

CHECKSUM_MISMATCH_WARNING = "The supplied address failed the checksum test. It might be invalid."


@dataclass(frozen=True)
class Address:
    """A 20-byte account address."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != ADDRESS_LENGTH:
            raise InvalidAddressError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.raw)}")

    @classmethod
    def from_public_key(cls, public_key: bytes) -> "Address":
        """Derive the address of a 64-byte uncompressed public key."""
        return cls(keccak256(public_key)[-ADDRESS_LENGTH:])

    @property
    def hex(self) -> str:
        return "0x" + self.raw.hex()

    @property
    def checksummed(self) -> str:
        return to_checksum_address(self.hex)

    @property
    def icap(self) -> str:
        return icap.from_address(self.raw, printable=True)

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving user input: the address plus non-fatal warnings."""

    address: Address
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def _resolve_icap(text: str) -> Address:
    try:
        decoded = icap.decode(text)
    except ValueError as exc:
        raise InvalidAddressError(str(exc)) from exc
    if isinstance(decoded, icap.IndirectAccount):
        raise IndirectAddressError(
            "Indirect ICAP addresses are not supported (registry lookup required)",
            details={
                "asset": decoded.asset,
                "institution": decoded.institution,
                "client": decoded.client,
            },
        )
    return Address(decoded)


def resolve(text: str) -> Resolution:
    """
    Resolve address input into an Address.

    ICAP input is decoded first. Hex input must be 40 hex digits; when it is
    not all lowercase and does not match its checksummed form, a warning is
    returned and the address is still accepted.

    Raises:
        IndirectAddressError: For an indirect ICAP
        InvalidAddressError: For anything that is not an address
    """
    text = text.strip()
    if icap.looks_like_icap(text):
        address = _resolve_icap(text)
        logger.debug("Resolved ICAP address", extra={"event": "address.icap", "address": address.hex})
        return Resolution(address)

    if not is_hex_address(text):
        raise InvalidAddressError(f"Invalid address: {text}")

    hex_part = text[2:] if text[:2].lower() == "0x" else text
    address = Address(bytes.fromhex(hex_part))
    warnings: Tuple[str, ...] = ()
    if hex_part != hex_part.lower() and "0x" + hex_part != address.checksummed:
        logger.info(
            "Address checksum mismatch",
            extra={"event": "address.checksum_mismatch", "address": address.hex},
        )
        warnings = (CHECKSUM_MISMATCH_WARNING,)
    return Resolution(address, warnings)


def describe(address: Address) -> Dict[str, str]:
    """Return the lowercase, checksummed and ICAP forms of an address."""
    return {
        "address": address.hex,
        "checksummed": address.checksummed,
        "icap": address.icap,
    }
