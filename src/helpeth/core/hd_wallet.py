"""
HD Wallet - BIP-32 extended keys and BIP-39 mnemonic seeds.

Wraps bip_utils so the rest of the code deals with one ``ExtendedKey`` type
regardless of whether it came from a mnemonic or a serialized xprv/xpub.
"""

from __future__ import annotations

import logging
from typing import Optional

from bip_utils import (
    Base58ChecksumError,
    Bip32KeyError,
    Bip32PathError,
    Bip32Slip10Secp256k1,
    Bip39SeedGenerator,
)
from mnemonic import Mnemonic

from helpeth.core.constants import MNEMONIC_LANGUAGE, PUBLIC_KEY_LENGTH
from helpeth.core.exceptions import InvalidKeyError
from helpeth.core.wallet import Wallet

logger = logging.getLogger(__name__)


class ExtendedKey:
    """
    BIP-32 key with chain code and derivation metadata.

    Derivation returns new instances; ``to_wallet`` drops the chain code and
    keeps only the private key.
    """

    def __init__(self, context: Bip32Slip10Secp256k1, path: str = "m") -> None:
        self._context = context
        self.path = path

    @classmethod
    def from_extended(cls, text: str) -> "ExtendedKey":
        """
        Load a serialized extended key (xprv or xpub).

        Raises:
            InvalidKeyError: If the text is not a valid extended key
        """
        try:
            context = Bip32Slip10Secp256k1.FromExtendedKey(text.strip())
        except (Bip32KeyError, Base58ChecksumError, ValueError) as exc:
            raise InvalidKeyError(f"Invalid extended key: {exc}") from exc
        return cls(context)

    @classmethod
    def from_seed(cls, seed: bytes) -> "ExtendedKey":
        """Create the master key for a BIP-39 seed."""
        try:
            context = Bip32Slip10Secp256k1.FromSeed(seed)
        except (Bip32KeyError, ValueError) as exc:
            raise InvalidKeyError(f"Unusable seed: {exc}") from exc
        return cls(context)

    @classmethod
    def from_mnemonic(cls, phrase: str, passphrase: str = "") -> "ExtendedKey":
        """
        Create the master key for a BIP-39 mnemonic phrase.

        Raises:
            InvalidKeyError: If the phrase fails BIP-39 validation
        """
        phrase = " ".join(phrase.split())
        if not Mnemonic(MNEMONIC_LANGUAGE).check(phrase):
            raise InvalidKeyError("Invalid BIP-39 mnemonic phrase")
        seed = Bip39SeedGenerator(phrase).Generate(passphrase)
        logger.debug("Master key derived from mnemonic", extra={"event": "hd.master_from_mnemonic"})
        return cls.from_seed(seed)

    def derive(self, path: str) -> "ExtendedKey":
        """
        Derive the child key at ``path`` (e.g. ``m/44'/60'/0'/0/0``).

        Raises:
            InvalidKeyError: If the path is malformed or needs a private parent
        """
        try:
            child = self._context.DerivePath(path.strip())
        except (Bip32PathError, Bip32KeyError, ValueError) as exc:
            raise InvalidKeyError(f"Cannot derive path {path}: {exc}") from exc
        logger.debug("Derived child key", extra={"event": "hd.derive", "path": path})
        return ExtendedKey(child, path.strip())

    @property
    def is_public_only(self) -> bool:
        return self._context.IsPublicOnly()

    @property
    def private_extended(self) -> Optional[str]:
        if self.is_public_only:
            return None
        return self._context.PrivateKey().ToExtended()

    @property
    def public_extended(self) -> str:
        return self._context.PublicKey().ToExtended()

    @property
    def public_key(self) -> bytes:
        """64-byte uncompressed public key, available for public-only keys too."""
        return self._context.PublicKey().RawUncompressed().ToBytes()[-PUBLIC_KEY_LENGTH:]

    @property
    def chain_code(self) -> bytes:
        return self._context.ChainCode().ToBytes()

    @property
    def depth(self) -> int:
        return self._context.Depth().ToInt()

    @property
    def index(self) -> int:
        return self._context.Index().ToInt()

    def to_wallet(self) -> Wallet:
        """
        Collapse to a plain Wallet, dropping the chain code.

        Raises:
            InvalidKeyError: If this is a public-only key
        """
        if self.is_public_only:
            raise InvalidKeyError("Extended public key carries no private key")
        return Wallet(self._context.PrivateKey().Raw().ToBytes())
