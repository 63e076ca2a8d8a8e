"""
Key source selection.

Exactly one of --private, --keyfile or --mnemonic feeds a command that needs
a key. This module turns whichever was given into a Wallet (or, for BIP-32
commands, an ExtendedKey).
"""

from __future__ import annotations

import logging
from typing import Optional

from helpeth.core.config import CliConfig
from helpeth.core.exceptions import InvalidKeyError, MissingKeyError
from helpeth.core.hd_wallet import ExtendedKey
from helpeth.core.keystore import PasswordPrompt, load_keystore, resolve_password
from helpeth.core.wallet import Wallet, wallet_from_raw_key

logger = logging.getLogger(__name__)


def load_wallet(config: CliConfig, prompt: Optional[PasswordPrompt] = None) -> Wallet:
    """
    Load the wallet named by the configuration.

    An extended key given with --private is derived at --hd-path when one
    was supplied; a mnemonic always is, defaulting to the first account.

    Raises:
        MissingKeyError: If no key source was given
        ConflictingKeyError: If more than one key source was given
        ConfigurationError: If --hd-path is combined with a keystore
        MissingPasswordError: If a keystore needs a password that is unavailable
        KeyLoadError: If the key material cannot be loaded
    """
    config.validate()

    if config.private_key:
        wallet = wallet_from_raw_key(config.private_key, path=config.hd_path)
        source = "private"
    elif config.keyfile:
        password = resolve_password(config, prompt=prompt)
        wallet = load_keystore(config.keyfile, password)
        source = "keyfile"
    elif config.mnemonic:
        wallet = ExtendedKey.from_mnemonic(config.mnemonic).derive(config.derivation_path).to_wallet()
        source = "mnemonic"
    else:
        raise MissingKeyError()

    logger.info(
        "Wallet loaded",
        extra={"event": "key_loader.wallet", "source": source, "address": wallet.address.hex},
    )
    return wallet


def load_extended_key(config: CliConfig) -> ExtendedKey:
    """
    Load the BIP-32 root named by the configuration (mnemonic or xprv/xpub).

    Raises:
        MissingKeyError: If neither --mnemonic nor --private was given
        InvalidKeyError: If the key material is not an extended key
    """
    config.validate()

    if config.mnemonic:
        return ExtendedKey.from_mnemonic(config.mnemonic)
    if config.private_key:
        return ExtendedKey.from_extended(config.private_key)
    if config.keyfile:
        raise InvalidKeyError("A keystore holds no chain code; use --mnemonic or an extended key")
    raise MissingKeyError("An extended key or mnemonic is required: use --private or --mnemonic")
