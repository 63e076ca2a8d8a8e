"""
Command variants and their handlers.

Every command the CLI exposes is a frozen dataclass carrying its arguments.
``dispatch`` routes a command through the single handler table and returns a
``Report``; rendering it is left to the click front end. Handlers never print.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Type

from helpeth.core import crypto_utils, transaction
from helpeth.core.address import Address, describe, resolve
from helpeth.core.config import CliConfig
from helpeth.core.constants import DISPLAY_SYMBOL
from helpeth.core.crypto_utils import Signature, Verification, hash_personal_message
from helpeth.core.exceptions import ConfigurationError
from helpeth.core.hd_wallet import ExtendedKey
from helpeth.core.key_loader import load_extended_key, load_wallet
from helpeth.core.keystore import DEFAULT_KDF, resolve_password, save_keystore
from helpeth.core.normalizer import hex_to_bytes, to_int
from helpeth.core.transaction import TransactionRecord
from helpeth.core.units import convert, format_amount
from helpeth.core.wallet import Wallet, generate_wallet

logger = logging.getLogger(__name__)

KEY_FORMATS = ("raw", "json")

Line = Tuple[str, str]


@dataclass(frozen=True)
class Report:
    """Outcome of one command: ordered output lines, warnings and a JSON payload."""

    lines: Tuple[Line, ...] = ()
    warnings: Tuple[str, ...] = ()
    payload: Dict[str, Any] = field(default_factory=dict)


# ==================== COMMAND VARIANTS ====================


@dataclass(frozen=True)
class Command:
    """Base of all command variants."""

    name: ClassVar[str] = ""


@dataclass(frozen=True)
class SignMessage(Command):
    name: ClassVar[str] = "signMessage"
    message: str


@dataclass(frozen=True)
class VerifySig(Command):
    name: ClassVar[str] = "verifySig"
    hash: str
    sig: str


@dataclass(frozen=True)
class VerifySigParams(Command):
    name: ClassVar[str] = "verifySigParams"
    hash: str
    r: str
    s: str
    v: str


@dataclass(frozen=True)
class CreateTx(Command):
    name: ClassVar[str] = "createTx"
    nonce: str
    to: str
    value: str
    data: str
    gas_limit: str
    gas_price: str


@dataclass(frozen=True)
class AssembleTx(Command):
    name: ClassVar[str] = "assembleTx"
    nonce: str
    to: str
    value: str
    data: str
    gas_limit: str
    gas_price: str
    v: str
    r: str
    s: str


@dataclass(frozen=True)
class ParseTx(Command):
    name: ClassVar[str] = "parseTx"
    tx: str


@dataclass(frozen=True)
class KeyGenerate(Command):
    name: ClassVar[str] = "keyGenerate"
    format: str = "raw"
    icap_direct: bool = False
    kdf: str = DEFAULT_KDF
    iterations: Optional[int] = None


@dataclass(frozen=True)
class KeyConvert(Command):
    name: ClassVar[str] = "keyConvert"
    kdf: str = DEFAULT_KDF
    iterations: Optional[int] = None


@dataclass(frozen=True)
class KeyDetails(Command):
    name: ClassVar[str] = "keyDetails"


@dataclass(frozen=True)
class Bip32Details(Command):
    name: ClassVar[str] = "bip32Details"
    path: str


@dataclass(frozen=True)
class AddressDetails(Command):
    name: ClassVar[str] = "addressDetails"
    address: str


@dataclass(frozen=True)
class UnitConvert(Command):
    name: ClassVar[str] = "unitConvert"
    value: str
    from_unit: str
    to_unit: str


# ==================== REPORT HELPERS ====================


def _address_lines(address: Address, label: str = "Address") -> List[Line]:
    return [
        (label, address.hex),
        (f"{label} (checksum)", address.checksummed),
        (f"{label} (ICAP)", address.icap),
    ]


def _wallet_report(wallet: Wallet, show_private: bool) -> Report:
    lines = _address_lines(wallet.address)
    lines.append(("Public key", wallet.public_key_hex))
    payload: Dict[str, Any] = describe(wallet.address)
    payload["publicKey"] = wallet.public_key_hex
    if show_private:
        lines.append(("Private key", wallet.private_key_hex))
        payload["privateKey"] = wallet.private_key_hex
    return Report(tuple(lines), payload=payload)


def _amount(wei: int, ether: str) -> str:
    return f"{wei} wei ({ether} {DISPLAY_SYMBOL})"


def _transaction_lines(record: TransactionRecord) -> List[Line]:
    recipient = record.recipient
    lines = [
        ("Nonce", str(record.nonce)),
        ("To", recipient.checksummed if recipient else "(contract creation)"),
        ("Value", str(record.value)),
        ("Data", "0x" + record.data.hex()),
        ("Gas limit", str(record.gas_limit)),
        ("Gas price", str(record.gas_price)),
    ]
    if record.is_signed:
        lines.extend([("v", str(record.v)), ("r", hex(record.r)), ("s", hex(record.s))])
        if record.chain_id is not None:
            lines.append(("Chain id", str(record.chain_id)))
    return lines


def _signed_transaction_report(
    record: TransactionRecord,
    sender: Optional[Address],
    warnings: Tuple[str, ...],
) -> Report:
    raw = transaction.encode(record)
    tx_hash = "0x" + transaction.transaction_hash(record).hex()
    cost = transaction.max_cost(record)

    lines = _transaction_lines(record)
    if sender is not None:
        lines.extend(_address_lines(sender, label="Signer"))
    lines.extend([
        ("Serialized", "0x" + raw.hex()),
        ("Hash", tx_hash),
        ("Total cost", _amount(cost.total_cost, cost.total_cost_ether)),
        ("Minimum balance", _amount(cost.min_balance, cost.min_balance_ether)),
    ])
    payload = {
        "transaction": record.to_dict(),
        "signer": sender.checksummed if sender else None,
        "serialized": "0x" + raw.hex(),
        "hash": tx_hash,
        "totalCost": cost.total_cost,
        "minBalance": cost.min_balance,
    }
    return Report(tuple(lines), warnings, payload)


def _verification_report(verification: Verification, digest: bytes) -> Report:
    lines = [("Hash", "0x" + digest.hex())]
    lines.extend(_address_lines(verification.address, label="Signer"))
    lines.append(("Public key", "0x" + verification.public_key.hex()))
    payload = {
        "hash": "0x" + digest.hex(),
        "signer": verification.address.checksummed,
        "publicKey": "0x" + verification.public_key.hex(),
    }
    return Report(tuple(lines), verification.warnings, payload)


def _message_bytes(message: str) -> bytes:
    if message[:2].lower() == "0x":
        return hex_to_bytes(message)
    return message.encode("utf-8")


def _check_key_format(key_format: str) -> None:
    if key_format not in KEY_FORMATS:
        raise ConfigurationError(
            f"Unknown key format: {key_format} (expected one of {', '.join(KEY_FORMATS)})"
        )


# ==================== HANDLERS ====================


def _sign_message(command: SignMessage, config: CliConfig) -> Report:
    wallet = load_wallet(config)
    message = _message_bytes(command.message)
    digest = hash_personal_message(message)
    signature = crypto_utils.sign(digest, wallet)
    lines = (
        ("Input message", command.message),
        ("Message hash (Keccak)", "0x" + digest.hex()),
        ("Signer", wallet.address.checksummed),
        ("The signature", signature.to_rpc()),
    )
    payload = {
        "message": command.message,
        "hash": "0x" + digest.hex(),
        "signer": wallet.address.checksummed,
        "signature": signature.to_rpc(),
        "v": signature.v,
        "r": hex(signature.r),
        "s": hex(signature.s),
    }
    return Report(lines, payload=payload)


def _verify_sig(command: VerifySig, config: CliConfig) -> Report:
    digest = hex_to_bytes(command.hash)
    verification = crypto_utils.verify(digest, Signature.from_rpc(command.sig))
    return _verification_report(verification, digest)


def _verify_sig_params(command: VerifySigParams, config: CliConfig) -> Report:
    digest = hex_to_bytes(command.hash)
    signature = Signature.from_vrs(to_int(command.v), to_int(command.r), to_int(command.s))
    return _verification_report(crypto_utils.verify(digest, signature), digest)


def _create_tx(command: CreateTx, config: CliConfig) -> Report:
    wallet = load_wallet(config)
    assembled = transaction.assemble(
        command.nonce,
        command.to,
        command.value,
        command.data,
        command.gas_limit,
        command.gas_price,
    )
    signed = transaction.sign(assembled.record, wallet, chain_id=config.chain_id)
    return _signed_transaction_report(signed, wallet.address, assembled.warnings)


def _assemble_tx(command: AssembleTx, config: CliConfig) -> Report:
    assembled = transaction.reconstruct_unsigned(
        command.nonce,
        command.to,
        command.value,
        command.data,
        command.gas_limit,
        command.gas_price,
        command.v,
        command.r,
        command.s,
    )
    sender, warnings = transaction.recover_sender(assembled.record)
    return _signed_transaction_report(assembled.record, sender, assembled.warnings + warnings)


def _parse_tx(command: ParseTx, config: CliConfig) -> Report:
    reconstructed = transaction.reconstruct(hex_to_bytes(command.tx))
    return _signed_transaction_report(
        reconstructed.record,
        reconstructed.sender,
        reconstructed.warnings,
    )


def _keystore_report(wallet: Wallet, path: Any) -> Report:
    lines = _address_lines(wallet.address)
    lines.append(("Keystore", str(path)))
    payload = describe(wallet.address)
    payload["keystore"] = str(path)
    return Report(tuple(lines), payload=payload)


def _key_generate(command: KeyGenerate, config: CliConfig) -> Report:
    _check_key_format(command.format)
    if command.format == "raw":
        wallet = generate_wallet(icap_direct=command.icap_direct)
        return _wallet_report(wallet, show_private=True)

    # Password first, so a failed prompt leaves nothing behind
    password = resolve_password(config, confirm=True)
    wallet = generate_wallet(icap_direct=command.icap_direct)
    path = save_keystore(wallet, password, config.output_dir, command.kdf, command.iterations)
    return _keystore_report(wallet, path)


def _key_convert(command: KeyConvert, config: CliConfig) -> Report:
    wallet = load_wallet(config)
    password = resolve_password(config, confirm=True)
    path = save_keystore(wallet, password, config.output_dir, command.kdf, command.iterations)
    return _keystore_report(wallet, path)


def _key_details(command: KeyDetails, config: CliConfig) -> Report:
    return _wallet_report(load_wallet(config), config.show_private)


def _bip32_details(command: Bip32Details, config: CliConfig) -> Report:
    key: ExtendedKey = load_extended_key(config).derive(command.path)
    address = Address.from_public_key(key.public_key)

    lines = [
        ("Path", key.path),
        ("Extended public key", key.public_extended),
    ]
    payload: Dict[str, Any] = {
        "path": key.path,
        "xpub": key.public_extended,
        "chainCode": "0x" + key.chain_code.hex(),
        "depth": key.depth,
        "index": key.index,
    }
    if config.show_private and not key.is_public_only:
        wallet = key.to_wallet()
        lines.append(("Extended private key", key.private_extended))
        lines.append(("Private key", wallet.private_key_hex))
        payload["xprv"] = key.private_extended
        payload["privateKey"] = wallet.private_key_hex
    lines.extend([
        ("Chain code", "0x" + key.chain_code.hex()),
        ("Depth", str(key.depth)),
        ("Index", str(key.index)),
        ("Public key", "0x" + key.public_key.hex()),
    ])
    lines.extend(_address_lines(address))
    payload.update(describe(address))
    return Report(tuple(lines), payload=payload)


def _address_details(command: AddressDetails, config: CliConfig) -> Report:
    resolution = resolve(command.address)
    details = describe(resolution.address)
    return Report(tuple(_address_lines(resolution.address)), resolution.warnings, details)


def _unit_convert(command: UnitConvert, config: CliConfig) -> Report:
    result = format_amount(convert(command.value, command.from_unit, command.to_unit))
    lines = ((f"{command.value} {command.from_unit}", f"{result} {command.to_unit}"),)
    payload = {
        "value": command.value,
        "from": command.from_unit,
        "to": command.to_unit,
        "result": result,
    }
    return Report(lines, payload=payload)


Handler = Callable[[Any, CliConfig], Report]

_HANDLERS: Dict[Type[Command], Handler] = {
    SignMessage: _sign_message,
    VerifySig: _verify_sig,
    VerifySigParams: _verify_sig_params,
    CreateTx: _create_tx,
    AssembleTx: _assemble_tx,
    ParseTx: _parse_tx,
    KeyGenerate: _key_generate,
    KeyConvert: _key_convert,
    KeyDetails: _key_details,
    Bip32Details: _bip32_details,
    AddressDetails: _address_details,
    UnitConvert: _unit_convert,
}

COMMANDS: Tuple[Type[Command], ...] = tuple(Command.__subclasses__())

_unhandled = [variant.__name__ for variant in COMMANDS if variant not in _HANDLERS]
if _unhandled:
    raise RuntimeError(f"Commands without a handler: {', '.join(_unhandled)}")


def dispatch(command: Command, config: CliConfig) -> Report:
    """
    Run a command against the parsed configuration.

    Args:
        command: Command variant with its arguments
        config: Global options

    Returns:
        Report to render

    Raises:
        HelpethError: On the first fatal failure; nothing is written after it
    """
    handler = _HANDLERS[type(command)]
    logger.debug("Dispatching command", extra={"event": "command.dispatch", "command": command.name})
    report = handler(command, config)
    logger.info(
        "Command completed",
        extra={"event": "command.completed", "command": command.name, "warnings": len(report.warnings)},
    )
    return report
