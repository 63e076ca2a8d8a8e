"""
helpeth Core Module

Core functionality behind the helpeth commands including:
- Input normalization and denomination units
- Address resolution (checksum and ICAP)
- Key loading, HD derivation and keystores
- Transaction assembly and signature handling
"""

__all__ = []
