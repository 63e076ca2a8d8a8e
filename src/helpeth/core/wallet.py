"""
Wallet - secp256k1 account key with its derived public key and address.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Tuple

from helpeth.core import icap
from helpeth.core.address import Address
from helpeth.core.constants import ICAP_DIRECT_MAX_ATTEMPTS, PRIVATE_KEY_LENGTH
from helpeth.core.crypto_utils import is_valid_private_key, private_to_public
from helpeth.core.exceptions import InvalidKeyError

if TYPE_CHECKING:
    from helpeth.core.hd_wallet import ExtendedKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Wallet:
    """Account key pair.

    Security Notes:
    - The private key is excluded from repr() so it never reaches logs
    - Instances are immutable and live for a single command invocation
    """

    private_key: bytes = field(repr=False)
    public_key: bytes = field(init=False, repr=False)
    address: Address = field(init=False)

    def __post_init__(self) -> None:
        public_key = private_to_public(self.private_key)
        object.__setattr__(self, "public_key", public_key)
        object.__setattr__(self, "address", Address.from_public_key(public_key))

    @classmethod
    def from_hex(cls, private_hex: str) -> "Wallet":
        """
        Load a wallet from a hex private key (``0x`` prefix optional).

        Raises:
            InvalidKeyError: If the text is not 32 bytes of valid key material
        """
        digits = private_hex.strip()
        if digits[:2].lower() == "0x":
            digits = digits[2:]
        try:
            raw = bytes.fromhex(digits)
        except ValueError as exc:
            raise InvalidKeyError("Private key is not valid hex") from exc
        return cls(raw)

    @property
    def private_key_hex(self) -> str:
        return "0x" + self.private_key.hex()

    @property
    def public_key_hex(self) -> str:
        return "0x" + self.public_key.hex()


def generate_wallet(
    icap_direct: bool = False,
    entropy: Callable[[int], bytes] = secrets.token_bytes,
    max_attempts: int = ICAP_DIRECT_MAX_ATTEMPTS,
) -> Wallet:
    """
    Generate a new random wallet.

    Args:
        icap_direct: Keep generating until the address fits the direct ICAP form
        entropy: Source of random bytes
        max_attempts: Upper bound on generation attempts

    Returns:
        New Wallet instance

    Raises:
        InvalidKeyError: If no suitable key was found within ``max_attempts``
    """
    for attempt in range(1, max_attempts + 1):
        candidate = entropy(PRIVATE_KEY_LENGTH)
        if not is_valid_private_key(candidate):
            continue
        wallet = Wallet(candidate)
        if not icap_direct or icap.is_direct_capable(wallet.address.raw):
            logger.info(
                "New wallet generated",
                extra={"event": "wallet.created", "attempts": attempt, "icap_direct": icap_direct},
            )
            return wallet
    raise InvalidKeyError(f"No suitable key generated after {max_attempts} attempts")


# ===== RAW KEY FORMAT DETECTION =====


@dataclass(frozen=True)
class KeyParseResult:
    """Tagged outcome of one key-format parse attempt."""

    ok: bool
    kind: str
    wallet: Optional[Wallet] = None
    extended: Optional[ExtendedKey] = None
    error: Optional[str] = None


KeyParser = Callable[[str], KeyParseResult]


def parse_plain_key(text: str) -> KeyParseResult:
    """Interpret ``text`` as a 32-byte hex private key."""
    try:
        return KeyParseResult(ok=True, kind="plain", wallet=Wallet.from_hex(text))
    except InvalidKeyError as exc:
        return KeyParseResult(ok=False, kind="plain", error=str(exc))


def parse_extended_key(text: str) -> KeyParseResult:
    """Interpret ``text`` as a BIP-32 extended private key."""
    from helpeth.core.hd_wallet import ExtendedKey

    try:
        extended = ExtendedKey.from_extended(text)
        wallet = extended.to_wallet()
    except InvalidKeyError as exc:
        return KeyParseResult(ok=False, kind="extended", error=str(exc))
    return KeyParseResult(ok=True, kind="extended", wallet=wallet, extended=extended)


# The format is not self-describing, so the order of attempts decides ambiguity
RAW_KEY_PARSERS: Tuple[KeyParser, ...] = (parse_extended_key, parse_plain_key)


def parse_raw_key(text: str, parsers: Sequence[KeyParser] = RAW_KEY_PARSERS) -> KeyParseResult:
    """
    Try each parser in order and return the first success.

    Returns:
        The first successful result, or a failed result collecting every error
    """
    errors = []
    for parser in parsers:
        result = parser(text)
        if result.ok:
            logger.debug("Raw key parsed", extra={"event": "wallet.raw_key", "kind": result.kind})
            return result
        errors.append(f"{result.kind}: {result.error}")
    return KeyParseResult(ok=False, kind="unknown", error="; ".join(errors))


def wallet_from_raw_key(text: str, path: Optional[str] = None) -> Wallet:
    """
    Load a wallet from raw key material of any supported format.

    Args:
        text: Plain hex private key or extended private key
        path: Derivation path applied to an extended key (optional)

    Raises:
        InvalidKeyError: If no parser accepts the input, or a path is given
            for a key without a chain code
    """
    result = parse_raw_key(text)
    if not result.ok or result.wallet is None:
        raise InvalidKeyError(f"Unrecognized private key ({result.error})")
    if path is None:
        return result.wallet
    if result.extended is None:
        raise InvalidKeyError(f"A {result.kind} key has no chain code to derive {path} from")
    return result.extended.derive(path).to_wallet()
