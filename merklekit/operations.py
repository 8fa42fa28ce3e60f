"""
Module 07 - Library Operations
Functional entry points over the three tree variants.

Usage:
    from merklekit import build_tree, generate_proof, verify_proof

    tree, root = build_tree(leaf_hashes)
    proof = generate_proof(tree, 2)
    assert verify_proof(root, leaf_hashes[2], proof)

Mutating operations (smt_insert, mmr_append) change the handle they are
given and return the new root; take a snapshot() first when readers need
the previous version.
"""
from __future__ import annotations

from typing import Optional, Sequence

from merklekit.config.runtime import get_default_engine
from merklekit.crypto.hashing import HashEngine
from merklekit.merkle.merkle_tree import MerkleProof, MerkleTree
from merklekit.mmr.mountain_range import (
    MerkleMountainRange,
    MountainRangeProof,
    verify_mountain_proof,
)
from merklekit.smt.sparse_merkle_tree import (
    ZERO_VALUE,
    SparseKey,
    SparseMerkleProof,
    SparseMerkleTree,
    verify_sparse_proof,
)


# =============================================================================
# Dense Merkle tree
# =============================================================================

def build_tree(
    leaves: Sequence[bytes],
    engine: Optional[HashEngine] = None,
) -> tuple[MerkleTree, bytes]:
    """Build a tree from ordered leaf hashes; returns (tree, root)."""
    tree = MerkleTree.build(leaves, engine)
    return tree, tree.root


def generate_proof(tree: MerkleTree, index: int) -> MerkleProof:
    return tree.proof(index)


def verify_proof(
    root: bytes,
    leaf_hash: bytes,
    proof: MerkleProof,
    engine: Optional[HashEngine] = None,
) -> bool:
    return MerkleTree.verify_proof(leaf_hash, proof, root, engine)


# =============================================================================
# Sparse Merkle tree
# =============================================================================

def smt_new(
    depth: int,
    default_value: bytes = ZERO_VALUE,
    engine: Optional[HashEngine] = None,
) -> tuple[SparseMerkleTree, bytes]:
    """Create an empty sparse tree; returns (tree, initial root)."""
    smt = SparseMerkleTree(depth, default_value, engine)
    return smt, smt.root


def smt_insert(smt: SparseMerkleTree, key: SparseKey, value: bytes) -> bytes:
    return smt.insert(key, value)


def smt_get(smt: SparseMerkleTree, key: SparseKey) -> bytes:
    return smt.get(key)


def smt_prove(smt: SparseMerkleTree, key: SparseKey) -> SparseMerkleProof:
    return smt.prove(key)


def smt_verify(
    root: bytes,
    key: SparseKey,
    value: Optional[bytes],
    proof: SparseMerkleProof,
    engine: Optional[HashEngine] = None,
    default_value: bytes = ZERO_VALUE,
) -> bool:
    """Verify an inclusion claim, or a non-inclusion claim when `value` is None."""
    return verify_sparse_proof(
        root, key, value, proof, engine=engine, default_value=default_value
    )


# =============================================================================
# Merkle mountain range
# =============================================================================

def mmr_new(engine: Optional[HashEngine] = None) -> MerkleMountainRange:
    return MerkleMountainRange(engine or get_default_engine())


def mmr_append(mmr: MerkleMountainRange, leaf_hash: bytes) -> bytes:
    return mmr.append(leaf_hash)


def mmr_prove(mmr: MerkleMountainRange, index: int) -> MountainRangeProof:
    return mmr.prove(index)


def mmr_verify(
    root: bytes,
    leaf_hash: bytes,
    index: int,
    leaf_count: int,
    proof: MountainRangeProof,
    engine: Optional[HashEngine] = None,
) -> bool:
    return verify_mountain_proof(root, leaf_hash, index, leaf_count, proof, engine)


__all__ = [
    "build_tree",
    "generate_proof",
    "verify_proof",
    "smt_new",
    "smt_insert",
    "smt_get",
    "smt_prove",
    "smt_verify",
    "mmr_new",
    "mmr_append",
    "mmr_prove",
    "mmr_verify",
]
