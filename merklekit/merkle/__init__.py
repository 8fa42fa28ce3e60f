"""
Module 04 - Dense Merkle Tree and Commitments
Deterministic Merkle tree construction + proof generation/verification.

This module provides:
- MerkleTree: immutable tree handle with root, proof and verify
- MerkleProof: inclusion proof with (sibling, side) steps
- build_merkle_root / build_merkle_proof / verify_merkle_proof helpers
- MerkleProver / MerkleVerifier convenience classes

Canonical Commitment Rules:
1. Leaf hashing: engine.leaf_hash(data) (domain tag 0x00)
2. Parent hashing: engine.combine(left, right) (domain tag 0x01)
3. Padding: pair the last node with itself if odd at any level
4. Empty tree: EmptyInputError
5. Single leaf: root = leaf

Usage:
    from merklekit.merkle import MerkleTree

    tree = MerkleTree.from_items([b"a", b"b", b"c"])
    proof = tree.proof(2)
    assert MerkleTree.verify_proof(tree.leaf(2), proof, tree.root)
"""
from .merkle_tree import (
    empty_tree_root,
    MerkleProof,
    MerkleTree,
    merkle_parent,
    build_merkle_root,
    build_merkle_proof,
    verify_merkle_proof,
    compute_proof_length,
    compute_tree_depth,
)

from .merkle_proofs import (
    MerkleProver,
    MerkleVerifier,
)


__all__ = [
    # Core types
    "MerkleProof",
    "MerkleTree",
    "empty_tree_root",
    # Core functions
    "merkle_parent",
    "build_merkle_root",
    "build_merkle_proof",
    "verify_merkle_proof",
    "compute_proof_length",
    "compute_tree_depth",
    # Convenience classes
    "MerkleProver",
    "MerkleVerifier",
]
