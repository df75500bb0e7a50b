"""
Canonical digest input for block content.

Field order is fixed: index, timestamp, data, prev_hash, nonce.

Two encodings are supported:
- CONCAT: the five fields rendered as text and joined with no separator.
  Compatible with existing chains, but ambiguous: (index=1, timestamp=23)
  and (index=12, timestamp=3) produce the same bytes.
- LENGTH_PREFIXED: every field is prefixed with its 8-byte big-endian
  length, so field boundaries can never shift.
"""

from enum import Enum


LENGTH_PREFIX_SIZE = 8


class HashEncoding(Enum):
    """How block fields are serialized before hashing."""

    CONCAT = "concat"
    LENGTH_PREFIXED = "length-prefixed"

    @classmethod
    def from_name(cls, name: str) -> 'HashEncoding':
        """Parse an encoding name such as 'concat' or 'length-prefixed'."""
        normalized = name.strip().lower().replace('_', '-')
        for member in cls:
            if member.value == normalized:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown hash encoding '{name}' (choose from: {choices})")


def _field_bytes(value) -> bytes:
    return str(value).encode('utf-8')


def encode_block_content(
    index: int,
    timestamp: int,
    data: str,
    prev_hash: str,
    nonce: int,
    encoding: HashEncoding = HashEncoding.CONCAT
) -> bytes:
    """
    Serialize block content into the bytes that get hashed.

    Args:
        index: Block position in the chain
        timestamp: Block timestamp (seconds)
        data: Block payload
        prev_hash: Hex digest of the previous block ('' for genesis)
        nonce: Proof-of-work nonce
        encoding: Serialization scheme

    Returns:
        Digest input bytes
    """
    if encoding is HashEncoding.CONCAT:
        return f"{index}{timestamp}{data}{prev_hash}{nonce}".encode('utf-8')

    if encoding is HashEncoding.LENGTH_PREFIXED:
        parts = []
        for value in (index, timestamp, data, prev_hash, nonce):
            raw = _field_bytes(value)
            parts.append(len(raw).to_bytes(LENGTH_PREFIX_SIZE, 'big'))
            parts.append(raw)
        return b''.join(parts)

    raise ValueError(f"Unsupported hash encoding: {encoding!r}")
