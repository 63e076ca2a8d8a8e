"""
V3 keystore loading and saving.

The encrypted container itself is produced and opened by eth-account; this
module decides which password governs it, enforces that the recorded
address matches the key, and names and writes the file.
"""

from __future__ import annotations

import getpass
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from eth_account import Account

from helpeth.core.config import CliConfig
from helpeth.core.exceptions import (
    KeystoreDecryptError,
    KeystoreExistsError,
    KeystoreMismatchError,
    MissingPasswordError,
)
from helpeth.core.wallet import Wallet

logger = logging.getLogger(__name__)

DEFAULT_KDF = "scrypt"
KDF_CHOICES = ("scrypt", "pbkdf2")

PasswordPrompt = Callable[[str], str]


def resolve_password(
    config: CliConfig,
    confirm: bool = False,
    prompt: Optional[PasswordPrompt] = None,
) -> str:
    """
    Obtain the keystore password from the options or an interactive prompt.

    Args:
        config: Parsed command-line configuration
        confirm: Ask twice on the interactive path (used when writing)
        prompt: Masked input function (defaults to getpass)

    Returns:
        The password

    Raises:
        MissingPasswordError: If no password was given and prompting is off,
            or the two interactive entries differ
    """
    if config.password:
        return config.password
    if not config.password_prompt:
        raise MissingPasswordError()

    prompt = prompt or getpass.getpass
    password = prompt("Password: ")
    if confirm and prompt("Confirm password: ") != password:
        raise MissingPasswordError("Passwords do not match")
    if not password:
        raise MissingPasswordError("Empty password entered")
    return password


def _read_keystore(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise KeystoreDecryptError(f"Keystore file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise KeystoreDecryptError(f"Invalid keystore file format: {e}") from e
    except OSError as e:
        raise KeystoreDecryptError(f"Failed to read keystore file: {e}") from e
    if not isinstance(data, dict):
        raise KeystoreDecryptError("Invalid keystore data structure: expected a JSON object")
    return data


def load_keystore(path: Path, password: str, strict: bool = True) -> Wallet:
    """
    Decrypt a V3 keystore file into a Wallet.

    Args:
        path: Keystore file
        password: Keystore password
        strict: Require the recorded address to match the decrypted key

    Raises:
        KeystoreDecryptError: If the file is unreadable or the password is wrong
        KeystoreMismatchError: If the recorded address does not match (strict)
    """
    keystore = _read_keystore(path)
    try:
        private_key = bytes(Account.decrypt(keystore, password))
    except (ValueError, KeyError, TypeError) as e:
        raise KeystoreDecryptError(f"Unable to decrypt keystore: {e}") from e

    wallet = Wallet(private_key)
    if strict:
        recorded = str(keystore.get("address", "")).lower()
        if recorded.startswith("0x"):
            recorded = recorded[2:]
        if recorded != wallet.address.raw.hex():
            raise KeystoreMismatchError(
                "Keystore address does not match the decrypted key",
                details={"recorded": recorded, "derived": wallet.address.hex},
            )

    logger.debug("Keystore decrypted", extra={"event": "keystore.loaded", "path": str(path)})
    return wallet


def keystore_filename(wallet: Wallet) -> str:
    """File name of a wallet's keystore: the lowercase address without prefix."""
    return f"{wallet.address.raw.hex()}.json"


def save_keystore(
    wallet: Wallet,
    password: str,
    output_dir: Path,
    kdf: str = DEFAULT_KDF,
    iterations: Optional[int] = None,
) -> Path:
    """
    Encrypt a wallet into a V3 keystore file.

    Args:
        wallet: Wallet to store
        password: Encryption password
        output_dir: Directory receiving the file
        kdf: Key derivation function ('scrypt' or 'pbkdf2')
        iterations: KDF work factor override

    Returns:
        Path to created keystore file

    Raises:
        KeystoreExistsError: If the file already exists
    """
    keystore = Account.encrypt(wallet.private_key, password, kdf=kdf, iterations=iterations)

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / keystore_filename(wallet)
    try:
        with open(output_path, "x", encoding="utf-8") as f:
            json.dump(keystore, f, indent=2)
    except FileExistsError:
        raise KeystoreExistsError(f"Refusing to overwrite existing keystore: {output_path}") from None

    # Owner read/write only
    os.chmod(output_path, 0o600)

    logger.info(
        "Keystore written",
        extra={"event": "keystore.saved", "path": str(output_path), "kdf": kdf},
    )
    return output_path
