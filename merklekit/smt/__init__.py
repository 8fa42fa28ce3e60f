"""
Module 05 - Sparse Merkle Tree

Fixed-depth key/value commitment with inclusion and non-inclusion proofs.
"""
from .sparse_merkle_tree import (
    ZERO_VALUE,
    SparseKey,
    SparseMerkleProof,
    SparseMerkleTree,
    check_sparse_proof,
    empty_hashes,
    normalize_key,
    verify_sparse_proof,
)

__all__ = [
    "ZERO_VALUE",
    "SparseKey",
    "SparseMerkleProof",
    "SparseMerkleTree",
    "check_sparse_proof",
    "empty_hashes",
    "normalize_key",
    "verify_sparse_proof",
]
