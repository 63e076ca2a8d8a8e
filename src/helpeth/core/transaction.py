"""
Legacy transaction assembly, signing and reconstruction.

Wire format is the RLP list
``[nonce, gasPrice, gasLimit, to, value, data, v, r, s]``. The signing hash
covers the first six fields, plus ``[chainId, 0, 0]`` when EIP-155 replay
protection is in use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

import rlp
from rlp.exceptions import RLPException
from rlp.sedes import Binary, List, big_endian_int, binary

from helpeth.core import address as address_resolver
from helpeth.core import crypto_utils
from helpeth.core.address import Address
from helpeth.core.constants import ADDRESS_LENGTH, EIP155_V_OFFSET, V_OFFSET
from helpeth.core.crypto_utils import Signature
from helpeth.core.exceptions import DecodeError
from helpeth.core.hashing import keccak256
from helpeth.core.normalizer import to_bytes, to_int
from helpeth.core.units import format_ether
from helpeth.core.wallet import Wallet

logger = logging.getLogger(__name__)

_TO_SEDES = Binary.fixed_length(ADDRESS_LENGTH, allow_empty=True)
_UNSIGNED_FIELDS = [big_endian_int, big_endian_int, big_endian_int, _TO_SEDES, big_endian_int, binary]

UNSIGNED_SEDES = List(_UNSIGNED_FIELDS)
EIP155_SEDES = List(_UNSIGNED_FIELDS + [big_endian_int, big_endian_int, big_endian_int])
SIGNED_SEDES = EIP155_SEDES


@dataclass(frozen=True)
class TransactionRecord:
    """Legacy transaction. Signed when ``v``, ``r`` and ``s`` are present."""

    nonce: int
    gas_price: int
    gas_limit: int
    to: bytes
    value: int
    data: bytes
    v: Optional[int] = None
    r: Optional[int] = None
    s: Optional[int] = None

    @property
    def is_signed(self) -> bool:
        return self.v is not None and self.r is not None and self.s is not None

    @property
    def chain_id(self) -> Optional[int]:
        """EIP-155 chain id encoded in ``v``, if any."""
        if self.v is None or self.v < EIP155_V_OFFSET:
            return None
        return (self.v - EIP155_V_OFFSET) // 2

    @property
    def signature(self) -> Optional[Signature]:
        if not self.is_signed:
            return None
        v = self.v
        if self.chain_id is not None:
            v = (self.v - EIP155_V_OFFSET) % 2
        return Signature.from_vrs(v, self.r, self.s)

    @property
    def recipient(self) -> Optional[Address]:
        return Address(self.to) if self.to else None

    def with_signature(self, v: int, r: int, s: int) -> "TransactionRecord":
        return replace(self, v=v, r=r, s=s)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "nonce": self.nonce,
            "gasPrice": self.gas_price,
            "gasLimit": self.gas_limit,
            "to": self.recipient.checksummed if self.recipient else None,
            "value": self.value,
            "data": "0x" + self.data.hex(),
        }
        if self.is_signed:
            payload.update({"v": self.v, "r": hex(self.r), "s": hex(self.s)})
        return payload


@dataclass(frozen=True)
class AssembledTransaction:
    """A freshly built record plus warnings raised while resolving its fields."""

    record: TransactionRecord
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ReconstructedTransaction:
    """A decoded record, its recovered sender and verification warnings."""

    record: TransactionRecord
    sender: Optional[Address] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CostEstimate:
    """Worst-case gas cost and the balance needed to cover value plus gas."""

    total_cost: int
    min_balance: int

    @property
    def total_cost_ether(self) -> str:
        return format_ether(self.total_cost)

    @property
    def min_balance_ether(self) -> str:
        return format_ether(self.min_balance)


def _unsigned_fields(record: TransactionRecord) -> list:
    return [record.nonce, record.gas_price, record.gas_limit, record.to, record.value, record.data]


def signing_hash(record: TransactionRecord, chain_id: Optional[int] = None) -> bytes:
    """Hash signed by the sender (EIP-155 form when ``chain_id`` is given)."""
    if chain_id is None:
        return keccak256(rlp.encode(_unsigned_fields(record), sedes=UNSIGNED_SEDES))
    fields = _unsigned_fields(record) + [chain_id, 0, 0]
    return keccak256(rlp.encode(fields, sedes=EIP155_SEDES))


def encode(record: TransactionRecord) -> bytes:
    """Serialize a record; unsigned records carry empty v, r and s."""
    if record.is_signed:
        signature_fields = [record.v, record.r, record.s]
    else:
        signature_fields = [0, 0, 0]
    return rlp.encode(_unsigned_fields(record) + signature_fields, sedes=SIGNED_SEDES)


def transaction_hash(record: TransactionRecord) -> bytes:
    """Keccak hash of the serialized transaction."""
    return keccak256(encode(record))


def _resolve_recipient(to: str) -> Tuple[bytes, Tuple[str, ...]]:
    if to.strip().lower() in ("", "0x"):
        return b"", ()
    resolution = address_resolver.resolve(to)
    return resolution.address.raw, resolution.warnings


def assemble(
    nonce: str,
    to: str,
    value: str,
    data: str,
    gas_limit: str,
    gas_price: str,
) -> AssembledTransaction:
    """
    Build an unsigned record from command-line values.

    Numeric fields go through the input normalizer, so decimal, hex and
    ``"<number> <unit>"`` forms are all accepted. An empty ``to`` creates a
    contract.

    Raises:
        DecodeError: On malformed numeric or hex input
        InvalidAddressError: On a malformed recipient
    """
    recipient, warnings = _resolve_recipient(to)
    record = TransactionRecord(
        nonce=to_int(nonce),
        gas_price=to_int(gas_price),
        gas_limit=to_int(gas_limit),
        to=recipient,
        value=to_int(value),
        data=to_bytes(data) if data.strip() else b"",
    )
    logger.debug("Transaction assembled", extra={"event": "tx.assembled", "nonce": record.nonce})
    return AssembledTransaction(record, warnings)


def sign(record: TransactionRecord, wallet: Wallet, chain_id: Optional[int] = None) -> TransactionRecord:
    """
    Sign a record with the wallet's key and return the signed copy.

    Without ``chain_id`` the legacy ``v`` of 27/28 is used; with it, EIP-155
    ``v = recovery_id + 35 + 2 * chain_id``.
    """
    signature = crypto_utils.sign(signing_hash(record, chain_id), wallet)
    if chain_id is None:
        v = signature.v
    else:
        v = signature.recovery_id + EIP155_V_OFFSET + 2 * chain_id
    logger.info(
        "Transaction signed",
        extra={"event": "tx.signed", "address": wallet.address.hex, "chain_id": chain_id},
    )
    return record.with_signature(v, signature.r, signature.s)


def recover_sender(record: TransactionRecord) -> Tuple[Optional[Address], Tuple[str, ...]]:
    """Recover the signer of a signed record (``None`` when unsigned)."""
    signature = record.signature
    if signature is None:
        return None, ()
    verification = crypto_utils.verify(signing_hash(record, record.chain_id), signature)
    return verification.address, verification.warnings


def reconstruct(raw: bytes) -> ReconstructedTransaction:
    """
    Decode a serialized transaction and recover its signer.

    Raises:
        DecodeError: If the payload is not a legacy transaction
        SignatureError: If the embedded signature is unusable
    """
    try:
        nonce, gas_price, gas_limit, to, value, data, v, r, s = rlp.decode(raw, sedes=SIGNED_SEDES)
    except (RLPException, ValueError) as exc:
        raise DecodeError(f"Malformed transaction payload: {exc}") from exc

    record = TransactionRecord(nonce, gas_price, gas_limit, to, value, data)
    if v or r or s:
        record = record.with_signature(v, r, s)

    sender, warnings = recover_sender(record)
    logger.debug(
        "Transaction reconstructed",
        extra={"event": "tx.reconstructed", "signed": record.is_signed},
    )
    return ReconstructedTransaction(record, sender, warnings)


def reconstruct_unsigned(
    nonce: str,
    to: str,
    value: str,
    data: str,
    gas_limit: str,
    gas_price: str,
    v: str,
    r: str,
    s: str,
) -> AssembledTransaction:
    """
    Build a signed record from known components, without a decode round trip.

    Used to reattach a signature produced out-of-band. A ``v`` given in the
    0/1 form is shifted to 27/28; EIP-155 values are kept as given.
    """
    assembled = assemble(nonce, to, value, data, gas_limit, gas_price)
    v_value = to_int(v)
    if v_value < V_OFFSET:
        v_value += V_OFFSET
    record = assembled.record.with_signature(v_value, to_int(r), to_int(s))
    return AssembledTransaction(record, assembled.warnings)


def max_cost(record: TransactionRecord) -> CostEstimate:
    """Worst-case cost: ``gas_price * gas_limit`` and that plus ``value``."""
    total_cost = record.gas_price * record.gas_limit
    return CostEstimate(total_cost=total_cost, min_balance=record.value + total_cost)
