"""
helpeth - Account Key and Transaction Toolkit

Command-line helpers for Ethereum-style accounts:
- Key loading from raw keys, extended keys, mnemonics and V3 keystores
- Checksummed and ICAP address handling
- Legacy transaction assembly, signing and parsing
- Message signing, signature verification and malleability checks
- Denomination unit conversion

For the command reference, run: helpeth --help
"""

__version__ = "0.1.0"
__author__ = "helpeth Development Team"

__all__ = []
