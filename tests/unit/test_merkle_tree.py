"""
Module 04 - Merkle Tree Unit Tests
Tests for merklekit/merkle/merkle_tree.py

Covers:
1. Root determinism - same leaves give the same root across builds
2. Padding correctness - odd layers pair the last node with itself
3. Proof verification - a proof for every index verifies
4. Tamper detection - tampered sibling/leaf/root fails verification
5. Empty leaves - EmptyInputError
6. Single leaf - root equals leaf
"""
import pytest

from fixtures.common import flip_bit, leaf, make_leaves
from merklekit.config.runtime import TreeConfig
from merklekit.crypto.hashing import DEFAULT_ENGINE, HashEngine, sha256
from merklekit.merkle.merkle_proofs import MerkleProver, MerkleVerifier
from merklekit.merkle.merkle_tree import (
    MerkleProof,
    MerkleTree,
    build_merkle_proof,
    build_merkle_root,
    compute_proof_length,
    compute_tree_depth,
    empty_tree_root,
    merkle_parent,
    verify_merkle_proof,
)
from merklekit.proofs.path import Direction, ProofStep
from merklekit.schemas.errors import EmptyInputError, IndexOutOfRange


class TestEmptyTree:
    """Tests for empty tree behavior."""

    def test_build_empty_raises(self):
        with pytest.raises(EmptyInputError, match="empty"):
            MerkleTree.build([])

    def test_build_merkle_root_empty_raises(self):
        with pytest.raises(EmptyInputError):
            build_merkle_root([])

    def test_build_proof_empty_raises(self):
        """Cannot generate proof for empty tree."""
        with pytest.raises(ValueError, match="empty"):
            build_merkle_proof([], 0)

    def test_empty_tree_root_sentinel(self):
        """empty_tree_root() matches sha256(b"") and is never a leaf hash."""
        assert empty_tree_root() == sha256(b"")
        assert empty_tree_root() != DEFAULT_ENGINE.leaf_hash(b"")

    def test_empty_tree_root_follows_engine(self):
        engine = HashEngine(algorithm="blake2b")

        assert empty_tree_root(engine) == engine.empty_root != empty_tree_root()


class TestSingleLeaf:
    """Tests for single leaf tree behavior."""

    def test_single_leaf_root_equals_leaf(self):
        only = leaf("single leaf")

        assert build_merkle_root([only]) == only

    def test_single_leaf_proof_has_no_steps(self):
        tree = MerkleTree.build([leaf("only one")])
        proof = tree.proof(0)

        assert proof.leaf_index == 0
        assert proof.leaf_count == 1
        assert proof.steps == ()
        assert proof.siblings == []
        assert tree.verify(tree.leaf(0), proof)

    def test_single_leaf_depth(self):
        tree = MerkleTree.build([leaf("x")])

        assert tree.depth == 0
        assert compute_tree_depth(1) == 1


class TestScenarios:
    """Worked examples with four and three leaves."""

    def test_four_leaf_root(self, engine, abcd):
        ha, hb, hc, hd = abcd

        root = MerkleTree.build(abcd).root

        assert root == engine.combine(engine.combine(ha, hb), engine.combine(hc, hd))

    def test_four_leaf_proof_for_c(self, engine, abcd):
        ha, hb, hc, hd = abcd
        tree = MerkleTree.build(abcd)

        proof = tree.proof(2)

        assert proof.steps == (
            ProofStep(hd, Direction.RIGHT),
            ProofStep(engine.combine(ha, hb), Direction.LEFT),
        )
        assert MerkleTree.verify_proof(hc, proof, tree.root)

    def test_three_leaf_self_pairing(self, engine, abcd):
        ha, hb, hc, _ = abcd
        tree = MerkleTree.build([ha, hb, hc])

        layer1 = (engine.combine(ha, hb), engine.combine(hc, hc))

        assert tree.layers[1] == layer1
        assert tree.root == engine.combine(*layer1)

    def test_three_leaf_proof_for_unpaired_leaf(self, engine, abcd):
        """The unpaired leaf is its own sibling at the bottom level."""
        ha, hb, hc, _ = abcd
        tree = MerkleTree.build([ha, hb, hc])

        proof = tree.proof(2)

        assert proof.steps == (
            ProofStep(hc, Direction.RIGHT),
            ProofStep(engine.combine(ha, hb), Direction.LEFT),
        )
        assert tree.verify(hc, proof)


class TestRootDeterminism:
    """Tests for deterministic root computation."""

    def test_same_leaves_same_root(self):
        leaves = make_leaves(9)

        roots = [MerkleTree.build(leaves).root for _ in range(3)]

        assert roots[0] == roots[1] == roots[2]

    def test_leaf_order_matters(self):
        leaves = make_leaves(4)

        assert build_merkle_root(leaves) != build_merkle_root(list(reversed(leaves)))

    def test_engine_changes_root(self):
        leaves = make_leaves(4)
        other = HashEngine(algorithm="blake2b")

        assert build_merkle_root(leaves) != build_merkle_root(leaves, other)

    def test_leaf_of_wrong_width_rejected(self):
        with pytest.raises(ValueError, match="expected 32"):
            MerkleTree.build([b"short"])

    def test_merkle_parent_matches_engine(self, abcd):
        ha, hb, _, _ = abcd

        assert merkle_parent(ha, hb) == DEFAULT_ENGINE.combine(ha, hb)

    def test_from_items_hashes_raw_bytes_as_leaves(self, abcd):
        tree = MerkleTree.from_items([b"a", b"b", b"c", b"d"])

        assert tree.root == MerkleTree.build(abcd).root

    def test_from_items_rejects_non_bytes(self):
        with pytest.raises(TypeError):
            MerkleTree.from_items([{"x": 1}, {"z": 3}])


class TestParallelBuild:
    """Threaded layer hashing must not change the tree."""

    @pytest.mark.parametrize("count", [2, 3, 17, 64, 101])
    def test_parallel_layers_match_sequential(self, count):
        leaves = make_leaves(count)
        sequential = MerkleTree.build(leaves, config=TreeConfig(parallel_threshold=10**9))
        parallel = MerkleTree.build(leaves, config=TreeConfig(parallel_threshold=2, max_workers=4))

        assert parallel.layers == sequential.layers
        assert parallel.root == sequential.root


class TestProofVerification:
    """Tests for proof generation and verification."""

    @pytest.mark.parametrize("count", [1, 2, 3, 5, 7, 8, 13])
    def test_every_index_verifies(self, count):
        leaves = make_leaves(count)
        tree = MerkleTree.build(leaves)

        for i, leaf_hash in enumerate(leaves):
            proof = tree.proof(i)
            assert len(proof) == compute_proof_length(count)
            assert verify_merkle_proof(leaf_hash, proof, tree.root)

    def test_proof_length_is_ceil_log2(self):
        assert [compute_proof_length(n) for n in (1, 2, 3, 4, 5, 8, 9)] == [0, 1, 2, 2, 3, 3, 4]

    def test_index_out_of_range(self, seven_leaves):
        tree = MerkleTree.build(seven_leaves)

        with pytest.raises(IndexOutOfRange) as exc_info:
            tree.proof(7)

        assert exc_info.value.details == {"index": 7, "leaf_count": 7}

    def test_negative_index_out_of_range(self, seven_leaves):
        tree = MerkleTree.build(seven_leaves)

        with pytest.raises(IndexError):
            tree.proof(-1)

    def test_proof_for_other_leaf_fails(self, seven_leaves):
        tree = MerkleTree.build(seven_leaves)

        result = tree.check(seven_leaves[4], tree.proof(3))

        assert not result.ok


class TestTamperDetection:
    """Tampered inputs fail verification with a mismatch."""

    def test_tampered_leaf(self, seven_leaves):
        tree = MerkleTree.build(seven_leaves)
        proof = tree.proof(5)

        result = tree.check(flip_bit(seven_leaves[5]), proof)

        assert not result
        assert result.is_mismatch

    def test_tampered_sibling(self, seven_leaves):
        tree = MerkleTree.build(seven_leaves)
        proof = tree.proof(5)
        steps = list(proof.steps)
        steps[1] = ProofStep(flip_bit(steps[1].sibling, 200), steps[1].direction)
        tampered = MerkleProof(proof.leaf_index, proof.leaf_count, tuple(steps))

        assert tree.check(seven_leaves[5], tampered).is_mismatch

    def test_tampered_root(self, seven_leaves):
        tree = MerkleTree.build(seven_leaves)
        proof = tree.proof(0)

        assert not MerkleTree.verify_proof(seven_leaves[0], proof, flip_bit(tree.root, 7))

    def test_every_single_bit_flip_of_root_fails(self, abcd):
        tree = MerkleTree.build(abcd)
        proof = tree.proof(1)

        for bit in range(0, 256, 17):
            assert not tree.verify_proof(abcd[1], proof, flip_bit(tree.root, bit))


class TestProofShape:
    """Structurally invalid proofs are rejected before hashing."""

    def test_proof_with_extra_step(self, abcd):
        tree = MerkleTree.build(abcd)
        proof = tree.proof(2)
        longer = MerkleProof(2, 4, proof.steps + (ProofStep(abcd[0], Direction.RIGHT),))

        result = tree.check(abcd[2], longer)

        assert not result.ok
        assert result.is_shape_error

    def test_proof_with_missing_step(self, abcd):
        tree = MerkleTree.build(abcd)
        proof = tree.proof(2)
        shorter = MerkleProof(2, 4, proof.steps[:1])

        assert tree.check(abcd[2], shorter).is_shape_error

    def test_sides_must_match_index(self, abcd):
        tree = MerkleTree.build(abcd)
        proof = tree.proof(2)
        flipped = MerkleProof(
            2,
            4,
            tuple(
                ProofStep(step.sibling, Direction.LEFT if step.direction is Direction.RIGHT else Direction.RIGHT)
                for step in proof.steps
            ),
        )

        assert tree.check(abcd[2], flipped).is_shape_error

    def test_short_sibling_rejected(self, abcd):
        tree = MerkleTree.build(abcd)
        proof = tree.proof(0)
        bad = MerkleProof(0, 4, (ProofStep(b"\x00" * 31, Direction.RIGHT), proof.steps[1]))

        assert tree.check(abcd[0], bad).is_shape_error

    def test_index_beyond_leaf_count(self, abcd):
        tree = MerkleTree.build(abcd)
        proof = tree.proof(3)
        lying = MerkleProof(4, 4, proof.steps)

        assert tree.check(abcd[3], lying).is_shape_error

    def test_position_is_bound_only_by_trusted_leaf_count(self, engine, abcd):
        """[a,b,c] and [a,b,c,c] share a root; only the leaf count tells them apart."""
        ha, hb, hc, _ = abcd
        tree = MerkleTree.build([ha, hb, hc])
        padded = MerkleProof(
            3, 4, (ProofStep(hc, Direction.LEFT), ProofStep(engine.combine(ha, hb), Direction.LEFT))
        )

        assert MerkleTree.verify_proof(hc, padded, tree.root)
        assert MerkleTree.check_proof(hc, padded, tree.root, leaf_count=3).is_shape_error
        assert not verify_merkle_proof(hc, padded, tree.root, leaf_count=3)
        assert tree.check(hc, padded).is_shape_error
        assert tree.verify(hc, tree.proof(2))

    def test_not_a_proof(self, abcd):
        tree = MerkleTree.build(abcd)

        result = MerkleTree.check_proof(abcd[0], ["not", "a", "proof"], tree.root)

        assert result.is_shape_error

    def test_short_leaf_hash_rejected(self, abcd):
        tree = MerkleTree.build(abcd)

        assert tree.check(b"\x01\x02", tree.proof(0)).is_shape_error

    def test_raise_for_failure_shape(self, abcd):
        from merklekit.schemas.errors import InvalidProofShape, VerificationFailed

        tree = MerkleTree.build(abcd)
        proof = tree.proof(1)

        with pytest.raises(InvalidProofShape):
            tree.check(abcd[1], MerkleProof(1, 4, ())).raise_for_failure()
        with pytest.raises(VerificationFailed):
            tree.check(abcd[0], proof).raise_for_failure()


class TestMerkleProverVerifier:
    """Tests for convenience wrapper classes."""

    def test_prover_and_verifier(self):
        leaves = make_leaves(5)
        root = MerkleProver.compute_root(leaves)

        proof = MerkleProver.prove(leaves, 3)

        assert MerkleVerifier.verify(leaves[3], proof, root)
        assert MerkleVerifier.check(leaves[3], proof, root).ok

    def test_verify_leaf_in_root_from_bare_siblings(self):
        leaves = make_leaves(6)
        tree = MerkleTree.build(leaves)
        proof = tree.proof(5)

        assert MerkleVerifier.verify_leaf_in_root(leaves[5], 5, 6, proof.siblings, tree.root)
        assert not MerkleVerifier.verify_leaf_in_root(leaves[5], 4, 6, proof.siblings, tree.root)

    @pytest.mark.parametrize("index", ["1", None, 1.5, True, -1])
    def test_verify_leaf_in_root_malformed_index_is_false(self, index):
        leaves = make_leaves(4)
        tree = MerkleTree.build(leaves)
        siblings = tree.proof(1).siblings

        assert MerkleVerifier.verify_leaf_in_root(leaves[1], index, 4, siblings, tree.root) is False

    def test_verify_leaf_in_root_malformed_siblings_is_false(self):
        leaves = make_leaves(4)
        tree = MerkleTree.build(leaves)

        assert MerkleVerifier.verify_leaf_in_root(leaves[1], 1, 4, None, tree.root) is False
        assert MerkleVerifier.verify_leaf_in_root(leaves[1], 1, 4, b"\x00" * 64, tree.root) is False

    def test_data_proofs(self):
        items = [f"item-{i}".encode() for i in range(4)]
        root = MerkleProver.compute_root_from_data(items)

        proof = MerkleProver.prove_data(items, 2)

        assert MerkleVerifier.verify_data_in_root(items[2], proof, root)
        assert not MerkleVerifier.verify_data_in_root(items[1], proof, root)
        assert not MerkleVerifier.verify_data_in_root({"id": 2}, proof, root)
