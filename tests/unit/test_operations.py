"""
Module 07 - Library Operations Unit Tests
Tests for merklekit/operations.py, driven through the package-level API.
"""
import pytest

import merklekit
from fixtures.common import flip_bit, leaf, make_leaves, value
from merklekit import (
    EmptyInputError,
    HashEngine,
    IndexOutOfRange,
    KeyOutOfRange,
    MountainRangeProof,
    build_tree,
    generate_proof,
    mmr_append,
    mmr_new,
    mmr_prove,
    mmr_verify,
    smt_get,
    smt_insert,
    smt_new,
    smt_prove,
    smt_verify,
    verify_proof,
)
from merklekit.proofs.path import Direction, ProofStep


class TestTreeOperations:
    def test_build_prove_verify(self, engine, abcd):
        tree, root = build_tree(abcd)

        proof = generate_proof(tree, 2)

        assert root == engine.combine(engine.combine(abcd[0], abcd[1]), engine.combine(abcd[2], abcd[3]))
        assert verify_proof(root, abcd[2], proof)
        assert not verify_proof(root, abcd[3], proof)
        assert not verify_proof(flip_bit(root), abcd[2], proof)

    def test_build_empty(self):
        with pytest.raises(EmptyInputError):
            build_tree([])

    def test_generate_proof_out_of_range(self, abcd):
        tree, _ = build_tree(abcd)

        with pytest.raises(IndexOutOfRange):
            generate_proof(tree, 4)

    def test_verify_with_explicit_engine(self):
        engine = HashEngine(algorithm="sha3_256")
        leaves = make_leaves(5, engine=engine)
        tree, root = build_tree(leaves, engine)

        proof = generate_proof(tree, 4)

        assert verify_proof(root, leaves[4], proof, engine)
        assert not verify_proof(root, leaves[4], proof)

    def test_verify_never_raises_on_garbage(self, abcd):
        tree, root = build_tree(abcd)

        assert verify_proof(root, abcd[0], None) is False
        assert verify_proof(b"", abcd[0], generate_proof(tree, 0)) is False


class TestSparseOperations:
    def test_depth_four_example(self):
        smt, empty_root = smt_new(4)

        root = smt_insert(smt, 0b0101, value("v1"))

        assert root != empty_root
        assert smt_get(smt, 0b0101) == value("v1")
        assert smt_get(smt, 0b0110) == smt.default_value
        proof = smt_prove(smt, 0b0110)
        assert smt_verify(root, 0b0110, None, proof)
        assert not smt_verify(root, 0b0110, value("v1"), proof)

    def test_inclusion(self):
        smt, _ = smt_new(8)
        root = smt_insert(smt, "00010001", value("x"))

        assert smt_verify(root, 17, value("x"), smt_prove(smt, 17))

    def test_custom_default_value(self):
        smt, _ = smt_new(4, default_value=b"unset")
        root = smt_insert(smt, 1, value("x"))
        proof = smt_prove(smt, 2)

        assert smt_verify(root, 2, None, proof, default_value=b"unset")
        assert smt_verify(root, 2, b"unset", proof, default_value=b"unset")

    def test_key_out_of_range(self):
        smt, _ = smt_new(4)

        with pytest.raises(KeyOutOfRange):
            smt_insert(smt, 16, value("x"))
        with pytest.raises(KeyOutOfRange):
            smt_get(smt, "11111")
        with pytest.raises(KeyOutOfRange):
            smt_prove(smt, b"\x00")


class TestMountainRangeOperations:
    def test_append_prove_verify(self):
        mmr = mmr_new()
        leaves = make_leaves(6)
        for leaf_hash in leaves:
            root = mmr_append(mmr, leaf_hash)

        proof = mmr_prove(mmr, 3)

        assert mmr_verify(root, leaves[3], 3, 6, proof)
        assert not mmr_verify(root, leaves[3], 3, 7, proof)
        assert not mmr_verify(root, leaves[2], 3, 6, proof)

    def test_proof_at_issuance_survives_appends(self):
        mmr = mmr_new()
        mmr_append(mmr, leaf("a"))
        root = mmr_append(mmr, leaf("b"))
        proof = mmr_prove(mmr, 0)

        mmr_append(mmr, leaf("c"))

        assert mmr_verify(root, leaf("a"), 0, 2, proof)

    def test_explicit_engine(self):
        engine = HashEngine(algorithm="blake2b")
        mmr = mmr_new(engine)
        leaves = make_leaves(3, engine=engine)
        for leaf_hash in leaves:
            root = mmr_append(mmr, leaf_hash)

        assert mmr_verify(root, leaves[2], 2, 3, mmr_prove(mmr, 2), engine)

    def test_prove_out_of_range(self):
        with pytest.raises(IndexOutOfRange):
            mmr_prove(mmr_new(), 0)

    def test_claimed_smaller_range_does_not_verify(self, engine, abcd):
        mmr = mmr_new()
        for leaf_hash in abcd[:3]:
            root = mmr_append(mmr, leaf_hash)
        replayed = MountainRangeProof(
            leaf_index=1,
            leaf_count=2,
            steps=(ProofStep(engine.combine(abcd[0], abcd[1]), Direction.LEFT),),
            peaks=(),
        )

        assert not mmr_verify(root, abcd[2], 1, 2, replayed)
        assert mmr_verify(root, abcd[2], 2, 3, mmr_prove(mmr, 2))


def test_public_api_exports():
    for name in merklekit.__all__:
        assert hasattr(merklekit, name), name
