"""Keccak-256 hashing (the pre-NIST variant used for addresses and signatures)."""

from __future__ import annotations

from Crypto.Hash import keccak


def keccak256(data: bytes) -> bytes:
    """Compute the 32-byte keccak256 digest of ``data``."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()
