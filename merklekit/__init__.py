"""
merklekit - hash-based authentication structures.

Three variants share one hash engine and one proof-path fold:
- MerkleTree: dense binary tree with inclusion proofs
- SparseMerkleTree: fixed-depth key space with inclusion and
  non-inclusion proofs
- MerkleMountainRange: append-only log with proofs bound to a log length
"""

__version__ = "0.1.0"

from merklekit.crypto.hashing import DEFAULT_ENGINE, HashAlgorithm, HashEngine, Leaf
from merklekit.merkle import MerkleProof, MerkleTree
from merklekit.mmr import MerkleMountainRange, MountainRangeProof
from merklekit.operations import (
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
from merklekit.proofs import Direction, ProofStep
from merklekit.schemas import (
    EmptyInputError,
    IndexOutOfRange,
    InvalidProofShape,
    KeyOutOfRange,
    MerkleKitException,
    VerificationFailed,
    VerificationResult,
)
from merklekit.smt import SparseMerkleProof, SparseMerkleTree


__all__ = [
    "__version__",
    # Hashing
    "DEFAULT_ENGINE",
    "HashAlgorithm",
    "HashEngine",
    "Leaf",
    # Variants
    "MerkleProof",
    "MerkleTree",
    "MerkleMountainRange",
    "MountainRangeProof",
    "SparseMerkleProof",
    "SparseMerkleTree",
    # Proof paths
    "Direction",
    "ProofStep",
    # Errors & results
    "EmptyInputError",
    "IndexOutOfRange",
    "InvalidProofShape",
    "KeyOutOfRange",
    "MerkleKitException",
    "VerificationFailed",
    "VerificationResult",
    # Operations
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
