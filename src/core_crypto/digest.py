"""
SHA-256 Digest Service

Thin wrapper around the SHA-256 primitive from the `cryptography` package.
The ledger never calls the primitive directly; it receives a
``DigestFunction`` (bytes in, hex string out) so tests and embedders can swap
in their own implementation.

Output format:
- sha256()      -> 32 raw bytes
- sha256_hex()  -> 64 lowercase hexadecimal characters
"""

import string
from typing import Callable

from cryptography.hazmat.primitives import hashes


DIGEST_SIZE = 32                    # 256 bits
DIGEST_HEX_LENGTH = DIGEST_SIZE * 2  # 64 hex characters

# Signature of the digest capability injected into the ledger
DigestFunction = Callable[[bytes], str]

_HEX_DIGITS = frozenset(string.hexdigits.lower())


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of input data.

    Args:
        data: Input bytes to hash

    Returns:
        256-bit (32-byte) digest as bytes
    """
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("sha256 expects bytes")
    digest = hashes.Hash(hashes.SHA256())
    digest.update(bytes(data))
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    """
    Compute SHA-256 hash and return as hex string.

    Args:
        data: Input bytes to hash

    Returns:
        64-character hexadecimal string
    """
    return sha256(data).hex()


def is_hex_digest(value: str) -> bool:
    """Check that value looks like a sha256_hex() result."""
    return (
        isinstance(value, str) and
        len(value) == DIGEST_HEX_LENGTH and
        all(ch in _HEX_DIGITS for ch in value)
    )
