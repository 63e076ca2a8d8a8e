"""
helpeth Constants

Fixed numbers used throughout the codebase, organized by category.

NOTE: The curve and unit constants are protocol values. Changing them breaks
compatibility with every other client.
"""

from typing import Dict, Final

# =============================================================================
# CURVE CONSTANTS (secp256k1)
# =============================================================================

SECP256K1_N: Final[int] = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)
# Signatures with s above half the order are rejected after Homestead (EIP-2)
SECP256K1_HALF_N: Final[int] = 0x7FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF5D576E7357A4501DDFE92F46681B20A0

PRIVATE_KEY_LENGTH: Final[int] = 32
PUBLIC_KEY_LENGTH: Final[int] = 64
ADDRESS_LENGTH: Final[int] = 20
HASH_LENGTH: Final[int] = 32
SIGNATURE_LENGTH: Final[int] = 65  # r (32) + s (32) + v (1)

# =============================================================================
# SIGNATURE CONSTANTS
# =============================================================================

# Legacy recovery identifier offset: v is 27/28 on the wire, 0/1 internally
V_OFFSET: Final[int] = 27
# EIP-155 v = recovery_id + 35 + 2 * chain_id
EIP155_V_OFFSET: Final[int] = 35

PERSONAL_MESSAGE_PREFIX: Final[bytes] = b"\x19Ethereum Signed Message:\n"

# =============================================================================
# ICAP CONSTANTS
# =============================================================================

ICAP_COUNTRY_CODE: Final[str] = "XE"
ICAP_DIRECT_LENGTH: Final[int] = 30
ICAP_BASIC_LENGTH: Final[int] = 31
ICAP_INDIRECT_LENGTH: Final[int] = 16
ICAP_GROUP_SIZE: Final[int] = 4

# =============================================================================
# DENOMINATION UNITS (decimal exponent relative to wei)
# =============================================================================

BASE_UNIT: Final[str] = "wei"
DISPLAY_UNIT: Final[str] = "ether"
DISPLAY_SYMBOL: Final[str] = "ETH"

UNIT_EXPONENTS: Final[Dict[str, int]] = {
    "wei": 0,
    "kwei": 3,
    "babbage": 3,
    "femtoether": 3,
    "mwei": 6,
    "lovelace": 6,
    "picoether": 6,
    "gwei": 9,
    "shannon": 9,
    "nanoether": 9,
    "nano": 9,
    "szabo": 12,
    "microether": 12,
    "micro": 12,
    "finney": 15,
    "milliether": 15,
    "milli": 15,
    "ether": 18,
    "eth": 18,
    "kether": 21,
    "grand": 21,
    "mether": 24,
    "gether": 27,
    "tether": 30,
}

# =============================================================================
# KEY DERIVATION DEFAULTS
# =============================================================================

DEFAULT_HD_PATH: Final[str] = "m/44'/60'/0'/0/0"
MNEMONIC_LANGUAGE: Final[str] = "english"

# Upper bound on key generation attempts when an ICAP-direct address is requested
ICAP_DIRECT_MAX_ATTEMPTS: Final[int] = 10_000

__all__ = [
    'SECP256K1_N', 'SECP256K1_HALF_N', 'PRIVATE_KEY_LENGTH', 'PUBLIC_KEY_LENGTH',
    'ADDRESS_LENGTH', 'HASH_LENGTH', 'SIGNATURE_LENGTH',
    'V_OFFSET', 'EIP155_V_OFFSET', 'PERSONAL_MESSAGE_PREFIX',
    'ICAP_COUNTRY_CODE', 'ICAP_DIRECT_LENGTH', 'ICAP_BASIC_LENGTH',
    'ICAP_INDIRECT_LENGTH', 'ICAP_GROUP_SIZE',
    'BASE_UNIT', 'DISPLAY_UNIT', 'DISPLAY_SYMBOL', 'UNIT_EXPONENTS',
    'DEFAULT_HD_PATH', 'MNEMONIC_LANGUAGE', 'ICAP_DIRECT_MAX_ATTEMPTS',
]
