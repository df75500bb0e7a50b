"""
Block and Proof of Work

Implements:
- Immutable block structure (frozen dataclass)
- Proof of Work with difficulty measured in leading zero HEX characters
- Digest recomputation for verification

A block only exists once its nonce has been found: Block.mine() runs the
whole search and returns the finished, frozen block.

Author: powledger project
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

from ..core_crypto.digest import DigestFunction, DIGEST_HEX_LENGTH, sha256_hex
from .clock import Clock, system_clock
from .encoding import HashEncoding, encode_block_content


logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

DEFAULT_DIFFICULTY = 4              # Leading zero hex characters (~65536 tries)
MAX_DIFFICULTY = DIGEST_HEX_LENGTH
MAX_NONCE = 2 ** 64                 # Nonce is an unsigned 64-bit counter
GENESIS_DATA = "Genesis Block"
GENESIS_PREV_HASH = ""              # Genesis has no predecessor
PROGRESS_INTERVAL = 100000          # Nonces between progress log lines


class MiningError(RuntimeError):
    """Raised when no valid nonce exists below the nonce limit."""
    pass


# ============================================================================
# Block Structure (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Block:
    """
    Immutable block structure for the blockchain.

    frozen=True ensures blocks cannot be modified after mining; the
    only way to get a "changed" block is dataclasses.replace(), which
    leaves the stored hash stale and is caught by verification.
    """
    index: int
    timestamp: int
    data: str
    prev_hash: str
    hash: str
    nonce: int

    @classmethod
    def mine(
        cls,
        index: int,
        data: str,
        prev_hash: str,
        proof_of_work: Optional['ProofOfWork'] = None,
        timestamp: Optional[int] = None,
        clock: Clock = system_clock,
        max_nonce: int = MAX_NONCE
    ) -> 'Block':
        """
        Construct a block by mining it.

        Args:
            index: Position in the chain (not checked against the predecessor)
            data: Block payload
            prev_hash: Hex digest of the previous block ('' for genesis)
            proof_of_work: Proof of Work settings (default difficulty if omitted)
            timestamp: Fixed timestamp; taken from clock when None
            clock: Time source used when timestamp is None
            max_nonce: Upper bound on the nonce search

        Returns:
            Fully mined block satisfying the difficulty target

        Raises:
            ValueError: If index is negative
            MiningError: If the nonce space is exhausted
        """
        if index < 0:
            raise ValueError(f"Block index must be non-negative, got {index}")
        if proof_of_work is None:
            proof_of_work = ProofOfWork()
        if timestamp is None:
            timestamp = clock()

        nonce, block_hash = proof_of_work.mine(
            index=index,
            timestamp=timestamp,
            data=data,
            prev_hash=prev_hash,
            max_nonce=max_nonce
        )
        logger.info(f"Block mined: {block_hash}")

        return cls(
            index=index,
            timestamp=timestamp,
            data=data,
            prev_hash=prev_hash,
            hash=block_hash,
            nonce=nonce
        )

    @property
    def is_genesis(self) -> bool:
        """True for the predecessor-less first block."""
        return self.index == 0 and self.prev_hash == GENESIS_PREV_HASH

    def meets_difficulty(self, difficulty: int) -> bool:
        """Check the stored hash against a difficulty target."""
        return self.hash[:difficulty] == '0' * difficulty

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to dictionary for serialization."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'data': self.data,
            'prev_hash': self.prev_hash,
            'hash': self.hash,
            'nonce': self.nonce,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """Create block from dictionary."""
        return cls(
            index=data['index'],
            timestamp=data['timestamp'],
            data=data['data'],
            prev_hash=data['prev_hash'],
            hash=data['hash'],
            nonce=data['nonce'],
        )

    def __str__(self) -> str:
        prev = f"{self.prev_hash[:16]}..." if self.prev_hash else "(none)"
        return (
            f"Block #{self.index}\n"
            f"  Timestamp: {self.timestamp}\n"
            f"  Data: {self.data}\n"
            f"  Hash: {self.hash[:16]}...\n"
            f"  Prev: {prev}\n"
            f"  Nonce: {self.nonce}"
        )


# ============================================================================
# Proof of Work
# ============================================================================

class ProofOfWork:
    """
    Proof of Work with adjustable difficulty.

    Difficulty is the number of leading '0' characters required in the
    hex digest, so every extra level multiplies the expected work by 16.
    The digest function and field encoding are injected.
    """

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        digest: DigestFunction = sha256_hex,
        encoding: HashEncoding = HashEncoding.CONCAT
    ):
        """
        Initialize PoW with given difficulty.

        Args:
            difficulty: Leading zero hex characters required (0-64)
            digest: bytes -> hex digest function
            encoding: Digest input encoding
        """
        if not 0 <= difficulty <= MAX_DIFFICULTY:
            raise ValueError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}")
        self.difficulty = difficulty
        self.digest = digest
        self.encoding = encoding
        self._target = '0' * difficulty

    @property
    def target(self) -> str:
        """Required hash prefix."""
        return self._target

    @property
    def expected_attempts(self) -> int:
        """Average number of hashes needed to mine one block."""
        return 16 ** self.difficulty

    def hash_meets_target(self, hash_hex: str) -> bool:
        """Check if a hex hash starts with the required zeros."""
        return hash_hex[:self.difficulty] == self._target

    @staticmethod
    def count_leading_zeros(hash_hex: str) -> int:
        """Count leading zero hex characters in a hash."""
        return len(hash_hex) - len(hash_hex.lstrip('0'))

    def compute_hash(
        self,
        index: int,
        timestamp: int,
        data: str,
        prev_hash: str,
        nonce: int
    ) -> str:
        """Hash the five content fields of a block."""
        return self.digest(encode_block_content(
            index, timestamp, data, prev_hash, nonce, self.encoding
        ))

    def hash_block(self, block: Block) -> str:
        """Recompute a block's digest from its stored fields."""
        return self.compute_hash(
            block.index,
            block.timestamp,
            block.data,
            block.prev_hash,
            block.nonce
        )

    def mine(
        self,
        index: int,
        timestamp: int,
        data: str,
        prev_hash: str,
        max_nonce: int = MAX_NONCE
    ) -> Tuple[int, str]:
        """
        Search for a nonce whose block hash meets the target.

        Returns:
            Tuple of (nonce, hash)

        Raises:
            MiningError: If no valid nonce found within limit
        """
        started = time.perf_counter()
        for nonce in range(max_nonce):
            block_hash = self.compute_hash(index, timestamp, data, prev_hash, nonce)

            if self.hash_meets_target(block_hash):
                logger.debug(
                    f"Block #{index}: nonce {nonce} found in "
                    f"{time.perf_counter() - started:.2f} seconds "
                    f"(about {self.expected_attempts} expected)"
                )
                return nonce, block_hash

            if nonce and nonce % PROGRESS_INTERVAL == 0:
                logger.debug(f"Mining in progress... Current nonce: {nonce}")

        raise MiningError(
            f"Failed to find valid nonce after {max_nonce} attempts"
        )


# ============================================================================
# Convenience Functions
# ============================================================================

def compute_block_hash(
    index: int,
    timestamp: int,
    data: str,
    prev_hash: str,
    nonce: int,
    digest: DigestFunction = sha256_hex,
    encoding: HashEncoding = HashEncoding.CONCAT
) -> str:
    """Compute hash for a block (public function)."""
    return digest(encode_block_content(
        index, timestamp, data, prev_hash, nonce, encoding
    ))


def recompute_digest(
    block: Block,
    digest: DigestFunction = sha256_hex,
    encoding: HashEncoding = HashEncoding.CONCAT
) -> str:
    """Recompute a block's hash; equals block.hash unless tampered."""
    return compute_block_hash(
        block.index,
        block.timestamp,
        block.data,
        block.prev_hash,
        block.nonce,
        digest,
        encoding
    )


def mine_block(
    index: int,
    data: str,
    prev_hash: str,
    difficulty: int = DEFAULT_DIFFICULTY,
    digest: DigestFunction = sha256_hex,
    encoding: HashEncoding = HashEncoding.CONCAT,
    **kwargs
) -> Block:
    """Mine a standalone block at the given difficulty."""
    proof_of_work = ProofOfWork(difficulty, digest=digest, encoding=encoding)
    return Block.mine(index, data, prev_hash, proof_of_work=proof_of_work, **kwargs)
