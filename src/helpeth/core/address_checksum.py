"""
Address Checksum - EIP-55 Mixed-Case Encoding

Provides error detection for hex addresses using keccak256-based
mixed-case checksumming.

Address Format:
- Raw:      0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed
- Checksum: 0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed
"""

from __future__ import annotations

import re

from helpeth.core.hashing import keccak256

_HEX_ADDRESS = re.compile(r"^(0[xX])?[0-9a-fA-F]{40}$")


def is_hex_address(address: str) -> bool:
    """Return True for 40 hex digits with an optional ``0x`` prefix."""
    return bool(_HEX_ADDRESS.match(address))


def _strip_prefix(address: str) -> str:
    return address[2:] if address[:2].lower() == "0x" else address


def to_checksum_address(address: str) -> str:
    """
    Convert a hex address to checksummed format (EIP-55).

    Args:
        address: Hex address (any case, prefix optional)

    Returns:
        ``0x``-prefixed checksummed address

    Raises:
        ValueError: If address format is invalid

    Example:
        >>> to_checksum_address("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
        '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
    """
    if not is_hex_address(address):
        raise ValueError(f"Invalid hex address: {address}")

    hex_lower = _strip_prefix(address).lower()
    address_hash = keccak256(hex_lower.encode("ascii")).hex()

    checksummed = []
    for i, char in enumerate(hex_lower):
        if int(address_hash[i], 16) >= 8:
            checksummed.append(char.upper())
        else:
            checksummed.append(char)

    return "0x" + "".join(checksummed)

