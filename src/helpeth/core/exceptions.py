"""
helpeth exception hierarchy.

Provides typed exceptions for key loading, address resolution, decoding and
signature handling so the command layer can report a single message per
failure and exit with a non-zero status.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class HelpethError(Exception):
    """Base exception for all helpeth errors.

    Every error is operator-facing and fatal: inputs come from the command
    line, so retrying without a corrected invocation cannot succeed.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== Configuration Errors ====================


class ConfigurationError(HelpethError):
    """Raised when the command-line configuration is incomplete or contradictory."""
    pass


class MissingKeyError(ConfigurationError):
    """Raised when a command needs a key and no key source was supplied."""

    def __init__(self, message: str = "A key is required: use --private, --keyfile or --mnemonic") -> None:
        super().__init__(message)


class ConflictingKeyError(ConfigurationError):
    """Raised when more than one key source was supplied."""
    pass


class MissingPasswordError(ConfigurationError):
    """Raised when a keystore operation has no password available."""

    def __init__(self, message: str = "A password is required: use --password or --password-prompt") -> None:
        super().__init__(message)


PasswordRequiredError = MissingPasswordError


# ==================== Address Errors ====================


class AddressError(HelpethError):
    """Base class for address resolution failures."""
    pass


class InvalidAddressError(AddressError):
    """Raised when input is neither a 20-byte hex address nor a valid ICAP."""
    pass


class IndirectAddressError(AddressError):
    """Raised for indirect ICAP addresses, which need an external registry lookup."""
    pass


# ==================== Key Errors ====================


class KeyLoadError(HelpethError):
    """Base class for failures while turning key material into a wallet."""
    pass


class InvalidKeyError(KeyLoadError):
    """Raised when raw key material matches none of the supported formats."""
    pass


class KeystoreDecryptError(KeyLoadError):
    """Raised when a keystore cannot be parsed or the password is wrong."""
    pass


class KeystoreMismatchError(KeyLoadError):
    """Raised when a keystore's recorded address differs from the decrypted key."""
    pass


class KeystoreExistsError(KeyLoadError):
    """Raised instead of overwriting an existing keystore file."""
    pass


# ==================== Data Errors ====================


class UnknownUnitError(HelpethError):
    """Raised for denomination names missing from the unit table."""
    pass


class DecodeError(HelpethError):
    """Raised for malformed numeric input or a malformed binary payload."""
    pass


class SignatureError(HelpethError):
    """Raised when a signature is malformed or no public key can be recovered."""
    pass


# ==================== Utility Functions ====================


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, HelpethError) and exc.details:
        context["details"] = exc.details

    return context
