"""
Blockchain Ledger Module

Implements a single-writer, append-only proof-of-work chain:
- Genesis block with a fixed timestamp (reproducible genesis hash)
- Append with automatic mining and prev_hash linkage
- Boolean integrity check (digest recomputation + linkage)
- Extended validation that reports the failing block and check
- JSON export/import (import re-validates)

Author: powledger project
"""

import json
import logging
import threading
from enum import Enum
from typing import Iterator, List, Optional

from ..core_crypto.digest import DigestFunction, is_hex_digest, sha256_hex
from .block import (
    Block, ProofOfWork, DEFAULT_DIFFICULTY, GENESIS_DATA, GENESIS_PREV_HASH,
    MAX_NONCE,
)
from .clock import Clock, GENESIS_TIMESTAMP, system_clock
from .encoding import HashEncoding


logger = logging.getLogger(__name__)


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationFailure(Enum):
    """Which check a block failed."""

    EMPTY_CHAIN = "empty_chain"
    GENESIS_INVALID = "genesis_invalid"
    INDEX_MISMATCH = "index_mismatch"
    HASH_MISMATCH = "hash_mismatch"
    LINK_BROKEN = "link_broken"
    DIFFICULTY_NOT_MET = "difficulty_not_met"
    MALFORMED = "malformed"


class ValidationError(Exception):
    """Raised when blockchain validation fails."""

    def __init__(
        self,
        reason: ValidationFailure,
        index: Optional[int] = None,
        message: str = ""
    ):
        self.reason = reason
        self.index = index
        where = f"block #{index}" if index is not None else "chain"
        super().__init__(f"{where}: {message or reason.value}")


# ============================================================================
# Blockchain
# ============================================================================

class Blockchain:
    """
    A minimal proof-of-work blockchain.

    The chain always holds at least the genesis block. Blocks are only
    added through append(), which mines them against the last block.
    """

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Clock = system_clock,
        digest: DigestFunction = sha256_hex,
        encoding: HashEncoding = HashEncoding.CONCAT,
        genesis_timestamp: int = GENESIS_TIMESTAMP
    ):
        """
        Initialize a new blockchain with a mined genesis block.

        Args:
            difficulty: Leading zero hex characters required per block
            clock: Time source for non-genesis blocks
            digest: bytes -> hex digest function
            encoding: Digest input encoding
            genesis_timestamp: Timestamp stamped on the genesis block
        """
        self._pow = ProofOfWork(difficulty, digest=digest, encoding=encoding)
        self._clock = clock
        self._lock = threading.Lock()
        self._chain: List[Block] = []

        self._create_genesis_block(genesis_timestamp)

    def _create_genesis_block(self, timestamp: int) -> None:
        """Create the genesis (first) block."""
        genesis = Block.mine(
            index=0,
            data=GENESIS_DATA,
            prev_hash=GENESIS_PREV_HASH,
            proof_of_work=self._pow,
            timestamp=timestamp
        )
        self._chain.append(genesis)
        logger.info(f"Genesis block created: {genesis.hash}")

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def chain(self) -> List[Block]:
        """Get the blockchain (read-only view)."""
        return list(self._chain)  # Return copy to prevent mutation

    @property
    def length(self) -> int:
        """Get blockchain length."""
        return len(self._chain)

    def __len__(self) -> int:
        return len(self._chain)

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._chain))

    def __getitem__(self, index: int) -> Block:
        return self._chain[index]

    @property
    def last_block(self) -> Block:
        """Get the latest block in the chain."""
        return self._chain[-1]

    @property
    def genesis_block(self) -> Block:
        return self._chain[0]

    @property
    def difficulty(self) -> int:
        """Get chain difficulty."""
        return self._pow.difficulty

    @property
    def encoding(self) -> HashEncoding:
        return self._pow.encoding

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    def append(self, data: str) -> Block:
        """
        Mine a new block holding data and add it to the chain.

        Args:
            data: Block payload

        Returns:
            The newly mined block

        Raises:
            TypeError: If data is not a string
        """
        if not isinstance(data, str):
            raise TypeError(f"Block data must be str, not {type(data).__name__}")

        # Read-latest, mine and push happen as one step
        with self._lock:
            prev_block = self.last_block
            new_block = Block.mine(
                index=prev_block.index + 1,
                data=data,
                prev_hash=prev_block.hash,
                proof_of_work=self._pow,
                clock=self._clock
            )
            self._chain.append(new_block)

        logger.debug(f"Block #{new_block.index} appended, chain length {self.length}")
        return new_block

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def is_valid(self, include_genesis: bool = False) -> bool:
        """
        Check chain integrity.

        Every block after genesis must hash to its stored hash and point at
        its predecessor's hash. Stops at the first failure.

        Args:
            include_genesis: Also recompute the genesis block's digest
        """
        if include_genesis and self._pow.hash_block(self._chain[0]) != self._chain[0].hash:
            return False

        for i in range(1, len(self._chain)):
            current = self._chain[i]
            previous = self._chain[i - 1]

            if current.hash != self._pow.hash_block(current):
                return False

            if current.prev_hash != previous.hash:
                return False

        return True

    def _validate_genesis(self, genesis: Block) -> None:
        if (
            genesis.index != 0 or
            genesis.prev_hash != GENESIS_PREV_HASH or
            genesis.data != GENESIS_DATA
        ):
            raise ValidationError(
                ValidationFailure.GENESIS_INVALID, 0, "Invalid genesis block"
            )
        if self._pow.hash_block(genesis) != genesis.hash:
            raise ValidationError(
                ValidationFailure.HASH_MISMATCH, 0, "Genesis hash mismatch"
            )
        if not self._pow.hash_meets_target(genesis.hash):
            raise ValidationError(
                ValidationFailure.DIFFICULTY_NOT_MET, 0,
                "Genesis does not meet difficulty target"
            )

    def _validate_block(self, block: Block, prev_block: Block, position: int) -> None:
        """
        Validate a block against the previous block.

        Args:
            block: Block to check
            prev_block: Block stored just before it
            position: Where block sits in the chain (reported on failure)

        Raises:
            ValidationError: If block is invalid
        """
        if block.index != prev_block.index + 1:
            raise ValidationError(
                ValidationFailure.INDEX_MISMATCH, position,
                f"Invalid index: expected {prev_block.index + 1}, got {block.index}"
            )

        if self._pow.hash_block(block) != block.hash:
            raise ValidationError(
                ValidationFailure.HASH_MISMATCH, position, "Block hash mismatch"
            )

        if block.prev_hash != prev_block.hash:
            raise ValidationError(
                ValidationFailure.LINK_BROKEN, position, "Previous hash mismatch"
            )

        if not self._pow.hash_meets_target(block.hash):
            raise ValidationError(
                ValidationFailure.DIFFICULTY_NOT_MET, position,
                f"Block hash has {self._pow.count_leading_zeros(block.hash)} leading "
                f"zeros, difficulty is {self.difficulty}"
            )

    def validate_chain(self) -> bool:
        """
        Validate the entire blockchain.

        Returns:
            True if chain is valid

        Raises:
            ValidationError: If chain is invalid
        """
        if not self._chain:
            raise ValidationError(ValidationFailure.EMPTY_CHAIN, None, "Chain is empty")

        try:
            self._validate_genesis(self._chain[0])
            for i in range(1, len(self._chain)):
                self._validate_block(self._chain[i], self._chain[i - 1], i)
        except ValidationError as exc:
            logger.warning(f"Chain validation failed: {exc}")
            raise

        return True

    def find_invalid_block(self) -> Optional[int]:
        """
        Position of the first block failing validation.

        Returns None when the chain is valid, and also when the failure is
        not tied to a block (an empty chain).
        """
        try:
            self.validate_chain()
        except ValidationError as exc:
            return exc.index
        return None

    # ------------------------------------------------------------------
    # Serialization / display
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        """Serialize blockchain to JSON."""
        return json.dumps({
            'difficulty': self.difficulty,
            'encoding': self.encoding.value,
            'chain': [block.to_dict() for block in self._chain],
        }, indent=2)

    @classmethod
    def from_json(
        cls,
        json_str: str,
        clock: Clock = system_clock,
        digest: DigestFunction = sha256_hex
    ) -> 'Blockchain':
        """
        Deserialize blockchain from JSON.

        Raises:
            ValidationError: If the document is malformed or the chain is invalid
        """
        try:
            data = json.loads(json_str)
            encoding = HashEncoding.from_name(data.get('encoding', HashEncoding.CONCAT.value))
            proof_of_work = ProofOfWork(data['difficulty'], digest=digest, encoding=encoding)
            block_list = data['chain']
            if not isinstance(block_list, list):
                raise TypeError("'chain' must be a list")
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise ValidationError(
                ValidationFailure.MALFORMED, None, f"Malformed chain document: {exc}"
            ) from exc

        # Bypass __init__ so the stored genesis is kept instead of re-mined
        blockchain = cls.__new__(cls)
        blockchain._pow = proof_of_work
        blockchain._clock = clock
        blockchain._lock = threading.Lock()
        blockchain._chain = [
            _parse_block(block_data, position)
            for position, block_data in enumerate(block_list)
        ]

        blockchain.validate_chain()

        return blockchain

    def format_chain(self) -> str:
        """Render the chain as text."""
        lines = [
            f"Blockchain (difficulty={self.difficulty}, length={self.length}, "
            f"encoding={self.encoding.value})",
            "=" * 60,
        ]
        for block in self._chain:
            lines.append(str(block))
            lines.append("-" * 40)
        return "\n".join(lines)

    def print_chain(self) -> None:
        """Print the blockchain."""
        print("\n" + self.format_chain())


# ============================================================================
# Block Parsing
# ============================================================================

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_block(block_data, position: int) -> Block:
    """
    Build a Block from one JSON chain entry, checking field types.

    Raises:
        ValidationError: MALFORMED, tagged with the entry's position
    """
    def malformed(message: str) -> ValidationError:
        return ValidationError(ValidationFailure.MALFORMED, position, message)

    if not isinstance(block_data, dict):
        raise malformed("Block entry must be an object")
    try:
        block = Block.from_dict(block_data)
    except KeyError as exc:
        raise malformed(f"Missing field {exc}") from exc

    if not _is_int(block.index) or block.index < 0:
        raise malformed(f"Invalid index: {block.index!r}")
    if not _is_int(block.timestamp):
        raise malformed(f"Invalid timestamp: {block.timestamp!r}")
    if not _is_int(block.nonce) or not 0 <= block.nonce < MAX_NONCE:
        raise malformed(f"Invalid nonce: {block.nonce!r}")
    if not isinstance(block.data, str):
        raise malformed(f"Block data must be str, not {type(block.data).__name__}")
    if not is_hex_digest(block.hash):
        raise malformed("Block hash is not a hex digest")
    if not (is_hex_digest(block.prev_hash) or
            (position == 0 and block.prev_hash == GENESIS_PREV_HASH)):
        raise malformed("Previous hash is not a hex digest")

    return block


# ============================================================================
# Convenience Functions
# ============================================================================

def create_blockchain(difficulty: int = DEFAULT_DIFFICULTY, **kwargs) -> Blockchain:
    """Create a new blockchain with given difficulty."""
    return Blockchain(difficulty, **kwargs)
