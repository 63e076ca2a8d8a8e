"""Utility helpers for secp256k1 signatures and public-key recovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Tuple

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError

from helpeth.core.address import Address
from helpeth.core.constants import (
    HASH_LENGTH,
    PERSONAL_MESSAGE_PREFIX,
    PRIVATE_KEY_LENGTH,
    SECP256K1_HALF_N,
    SECP256K1_N,
    SIGNATURE_LENGTH,
    V_OFFSET,
)
from helpeth.core.exceptions import DecodeError, InvalidKeyError, SignatureError
from helpeth.core.hashing import keccak256
from helpeth.core.normalizer import hex_to_bytes

if TYPE_CHECKING:
    from helpeth.core.wallet import Wallet

logger = logging.getLogger(__name__)

MALLEABILITY_WARNING = (
    "Invalid signature after Homestead (EIP-2): s is above half the curve order"
)


def _validate_private_value(private_key: bytes) -> None:
    if len(private_key) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyError(f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key)}")
    if not (1 <= int.from_bytes(private_key, "big") < SECP256K1_N):
        raise InvalidKeyError("Private key out of range for secp256k1")


def private_to_public(private_key: bytes) -> bytes:
    """Return the 64-byte uncompressed public key (no 0x04 prefix)."""
    _validate_private_value(private_key)
    return keys.PrivateKey(private_key).public_key.to_bytes()


def is_valid_private_key(private_key: bytes) -> bool:
    try:
        _validate_private_value(private_key)
    except InvalidKeyError:
        return False
    return True


@dataclass(frozen=True)
class Signature:
    """
    ECDSA signature with ``v`` held in the 27/28 form.

    Inputs in the 0/1 form are shifted on construction (``from_vrs``); the
    0/1 recovery id is only produced again at the eth-keys boundary.
    """

    r: int
    s: int
    v: int

    @classmethod
    def from_vrs(cls, v: int, r: int, s: int) -> "Signature":
        if v < V_OFFSET:
            v += V_OFFSET
        if v not in (V_OFFSET, V_OFFSET + 1):
            raise SignatureError(f"Invalid recovery identifier: {v}")
        if not (0 <= r < 2**256 and 0 <= s < 2**256):
            raise SignatureError("Signature components must fit in 32 bytes")
        return cls(r=r, s=s, v=v)

    @classmethod
    def from_rpc(cls, text: str) -> "Signature":
        """Parse the 65-byte ``r || s || v`` hex form."""
        raw = hex_to_bytes(text)
        if len(raw) != SIGNATURE_LENGTH:
            raise SignatureError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}")
        return cls.from_vrs(
            raw[64],
            int.from_bytes(raw[:32], "big"),
            int.from_bytes(raw[32:64], "big"),
        )

    @property
    def recovery_id(self) -> int:
        return self.v - V_OFFSET

    @property
    def is_malleable(self) -> bool:
        return self.s > SECP256K1_HALF_N

    def to_rpc(self) -> str:
        raw = self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])
        return "0x" + raw.hex()

    def to_eth_keys(self) -> keys.Signature:
        try:
            return keys.Signature(vrs=(self.recovery_id, self.r, self.s))
        except (BadSignature, KeyValidationError) as exc:
            raise SignatureError(f"Malformed signature: {exc}") from exc


@dataclass(frozen=True)
class Verification:
    """Recovered signer of a digest plus non-fatal findings."""

    address: Address
    public_key: bytes
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def hash_personal_message(message: bytes) -> bytes:
    """Keccak digest of a message with the personal-sign prefix and length."""
    return keccak256(PERSONAL_MESSAGE_PREFIX + str(len(message)).encode("ascii") + message)


def _require_digest(digest: bytes) -> None:
    if len(digest) != HASH_LENGTH:
        raise DecodeError(f"Hash must be {HASH_LENGTH} bytes, got {len(digest)}")


def sign(digest: bytes, wallet: "Wallet") -> Signature:
    """Sign a 32-byte digest with the wallet's private key."""
    _require_digest(digest)
    signature = keys.PrivateKey(wallet.private_key).sign_msg_hash(digest)
    logger.debug(
        "Signed digest",
        extra={"event": "signature.sign", "address": wallet.address.hex},
    )
    return Signature.from_vrs(signature.v, signature.r, signature.s)


def recover_public_key(digest: bytes, signature: Signature) -> bytes:
    """Recover the 64-byte public key that produced ``signature`` over ``digest``."""
    _require_digest(digest)
    try:
        public_key = signature.to_eth_keys().recover_public_key_from_msg_hash(digest)
    except (BadSignature, KeyValidationError) as exc:
        raise SignatureError(f"Unable to recover public key: {exc}") from exc
    return public_key.to_bytes()


def verify(digest: bytes, signature: Signature) -> Verification:
    """
    Recover the signer of a digest.

    A signature with ``s`` above half the curve order still verifies, but is
    reported with a malleability warning.

    Raises:
        SignatureError: If no public key can be recovered
    """
    public_key = recover_public_key(digest, signature)
    warnings: Tuple[str, ...] = ()
    if signature.is_malleable:
        logger.info("Malleable signature", extra={"event": "signature.malleable"})
        warnings = (MALLEABILITY_WARNING,)
    return Verification(Address.from_public_key(public_key), public_key, warnings)
