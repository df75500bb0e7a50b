"""
Security tests for the ledger.

Tests specifically for tampering scenarios:
- Payload tampering
- Broken linkage
- Forged hashes that skip proof of work
- Reordered / renumbered blocks
- Digest input ambiguity
"""

from dataclasses import replace

import pytest

from src.blockchain.block import ProofOfWork, recompute_digest
from src.blockchain.encoding import HashEncoding, encode_block_content
from src.blockchain.ledger import Blockchain, ValidationError, ValidationFailure


FAST_DIFFICULTY = 2


@pytest.fixture
def chain():
    bc = Blockchain(difficulty=FAST_DIFFICULTY)
    for data in ("Alice -> Bob: 10", "Bob -> Carol: 5", "Carol -> Dave: 1"):
        bc.append(data)
    return bc


def _forge(block, proof_of_work, prefix="Tampered"):
    """Change a block's data and refresh its hash without doing the work."""
    for attempt in range(1000):
        forged = replace(block, data=f"{prefix} {attempt}")
        forged = replace(forged, hash=proof_of_work.hash_block(forged))
        if not proof_of_work.hash_meets_target(forged.hash):
            return forged
    raise AssertionError("could not build a forged block")


class TestTamperDetection:
    """Chains with modified blocks must fail verification."""

    def test_tampered_data_detected(self, chain):
        """Changing block data breaks its digest."""
        chain._chain[1] = replace(chain._chain[1], data="Alice -> Bob: 10000")

        assert not chain.is_valid()
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.HASH_MISMATCH
        assert excinfo.value.index == 1
        assert chain.find_invalid_block() == 1

    def test_tampered_last_block_detected(self, chain):
        chain._chain[-1] = replace(chain._chain[-1], data="Carol -> Dave: 100")
        assert not chain.is_valid()

    def test_tampered_nonce_detected(self, chain):
        chain._chain[2] = replace(chain._chain[2], nonce=chain._chain[2].nonce + 1)
        assert not chain.is_valid()

    def test_tampered_timestamp_detected(self, chain):
        chain._chain[2] = replace(chain._chain[2], timestamp=chain._chain[2].timestamp + 1)
        assert not chain.is_valid()

    @pytest.mark.parametrize("field", ["nonce", "timestamp"])
    def test_negative_field_tamper_detected(self, chain, field):
        """A negative value is just another tampered field, not a crash."""
        chain._chain[1] = replace(chain._chain[1], **{field: -1})

        assert not chain.is_valid()
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.HASH_MISMATCH
        assert excinfo.value.index == 1
        assert chain.find_invalid_block() == 1

    def test_empty_chain_has_no_invalid_position(self, chain):
        chain._chain.clear()
        assert chain.find_invalid_block() is None
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.EMPTY_CHAIN
        assert excinfo.value.index is None

    def test_rehashed_block_breaks_link(self, chain):
        """Refreshing a tampered block's hash breaks the next block's link."""
        chain._chain[1] = _forge(chain._chain[1], chain._pow)

        assert not chain.is_valid()
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        # Block 1 now fails proof of work before block 2's link is checked
        assert excinfo.value.index == 1
        assert excinfo.value.reason is ValidationFailure.DIFFICULTY_NOT_MET

    def test_rehashed_tip_skipping_work_caught_by_validate(self, chain):
        """
        A rehashed tip keeps digest and link intact, so only the proof of
        work check catches it.
        """
        chain._chain[-1] = _forge(chain._chain[-1], chain._pow)

        assert chain.is_valid()
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.DIFFICULTY_NOT_MET
        assert excinfo.value.index == 3
        assert "leading zeros" in str(excinfo.value)

    def test_broken_link_detected(self, chain):
        forged_prev = "f" * 64
        block = replace(chain._chain[2], prev_hash=forged_prev)
        nonce, block_hash = chain._pow.mine(
            block.index, block.timestamp, block.data, forged_prev
        )
        chain._chain[2] = replace(block, nonce=nonce, hash=block_hash)

        assert not chain.is_valid()
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.LINK_BROKEN
        assert excinfo.value.index == 2

    def test_swapped_blocks_detected(self, chain):
        chain._chain[1], chain._chain[2] = chain._chain[2], chain._chain[1]
        assert not chain.is_valid()
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.INDEX_MISMATCH

    def test_removed_block_detected(self, chain):
        del chain._chain[2]
        assert not chain.is_valid()
        # Reported by position in the chain, not by the stored index
        assert chain.find_invalid_block() == 2

    def test_tampered_genesis_only_seen_when_included(self, chain):
        """Genesis is skipped by the default check."""
        chain._chain[0] = replace(chain._chain[0], timestamp=99)

        # Block 1 still links to the stored (stale) genesis hash
        assert chain.is_valid()
        assert not chain.is_valid(include_genesis=True)
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.index == 0
        assert excinfo.value.reason is ValidationFailure.HASH_MISMATCH

    def test_wrong_genesis_label_rejected(self, chain):
        chain._chain[0] = replace(chain._chain[0], data="Not Genesis")
        with pytest.raises(ValidationError) as excinfo:
            chain.validate_chain()
        assert excinfo.value.reason is ValidationFailure.GENESIS_INVALID

    def test_verification_does_not_mutate(self, chain):
        before = chain.chain
        chain._chain[1] = replace(chain._chain[1], data="x")
        tampered = chain.chain
        results = [chain.is_valid() for _ in range(5)]
        assert results == [False] * 5
        assert chain.chain == tampered
        assert chain.chain != before

    def test_error_message_names_block(self, chain):
        chain._chain[2] = replace(chain._chain[2], data="x")
        with pytest.raises(ValidationError, match="block #2"):
            chain.validate_chain()


class TestEncodingAmbiguity:
    """Naive concatenation lets field boundaries shift."""

    def test_concat_collision(self):
        a = encode_block_content(1, 23, "data", "", 0, HashEncoding.CONCAT)
        b = encode_block_content(12, 3, "data", "", 0, HashEncoding.CONCAT)
        assert a == b

    def test_length_prefixed_disambiguates(self):
        a = encode_block_content(1, 23, "data", "", 0, HashEncoding.LENGTH_PREFIXED)
        b = encode_block_content(12, 3, "data", "", 0, HashEncoding.LENGTH_PREFIXED)
        assert a != b

    def test_data_prev_hash_boundary(self):
        """Moving characters from data into prev_hash is invisible to CONCAT."""
        pow_concat = ProofOfWork(difficulty=0)
        pow_prefixed = ProofOfWork(difficulty=0, encoding=HashEncoding.LENGTH_PREFIXED)
        fields_a = (1, 5, "payloadab", "cdef", 0)
        fields_b = (1, 5, "payload", "abcdef", 0)
        assert pow_concat.compute_hash(*fields_a) == pow_concat.compute_hash(*fields_b)
        assert pow_prefixed.compute_hash(*fields_a) != pow_prefixed.compute_hash(*fields_b)

    def test_recompute_matches_chain_encoding(self):
        bc = Blockchain(difficulty=1, encoding=HashEncoding.LENGTH_PREFIXED)
        block = bc.append("x")
        assert recompute_digest(block, encoding=HashEncoding.LENGTH_PREFIXED) == block.hash
        assert recompute_digest(block) != block.hash
