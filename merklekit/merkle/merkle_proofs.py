"""
Module 04 - Merkle Proofs Convenience Wrappers
Thin wrappers around the dense tree for callers that hold raw item bytes
or bare sibling lists instead of leaf hashes and MerkleProof objects.

This module provides class-based interfaces:
- MerkleProver: Generate proofs for leaf hashes or raw item bytes
- MerkleVerifier: Verify proofs from raw components or raw item bytes
"""
from __future__ import annotations

from typing import Optional, Sequence

from merklekit.config.runtime import get_default_engine
from merklekit.crypto.hashing import HashEngine, hash_item
from merklekit.merkle.merkle_tree import MerkleProof, MerkleTree
from merklekit.proofs.path import ProofStep, path_directions
from merklekit.schemas.verification import VerificationResult


class MerkleProver:
    """
    Convenience class for generating Merkle proofs.

    Provides static methods for proof generation from:
    - Pre-hashed leaves (bytes of the engine's digest width)
    - Raw item bytes, leaf-hashed with the same engine

    Example:
        >>> proof = MerkleProver.prove(leaves, index=1)
        >>> proof.leaf_index
        1
    """

    @staticmethod
    def prove(
        leaves: Sequence[bytes],
        index: int,
        engine: Optional[HashEngine] = None,
    ) -> MerkleProof:
        """
        Generate a Merkle proof for the leaf at the given index.

        Raises:
            IndexOutOfRange: If index is out of range
            EmptyInputError: If leaves is empty
        """
        return MerkleTree.build(leaves, engine).proof(index)

    @staticmethod
    def prove_data(
        items: Sequence[bytes],
        index: int,
        engine: Optional[HashEngine] = None,
    ) -> MerkleProof:
        """Generate a proof for raw item bytes; items are leaf-hashed first."""
        return MerkleTree.from_items(items, engine).proof(index)

    @staticmethod
    def compute_root(leaves: Sequence[bytes], engine: Optional[HashEngine] = None) -> bytes:
        return MerkleTree.build(leaves, engine).root

    @staticmethod
    def compute_root_from_data(
        items: Sequence[bytes],
        engine: Optional[HashEngine] = None,
    ) -> bytes:
        return MerkleTree.from_items(items, engine).root


class MerkleVerifier:
    """
    Convenience class for verifying Merkle proofs.

    Example:
        >>> MerkleVerifier.verify(leaf, proof, root)
        True
    """

    @staticmethod
    def verify(
        leaf_hash: bytes,
        proof: MerkleProof,
        root: bytes,
        engine: Optional[HashEngine] = None,
    ) -> bool:
        return MerkleTree.verify_proof(leaf_hash, proof, root, engine)

    @staticmethod
    def check(
        leaf_hash: bytes,
        proof: MerkleProof,
        root: bytes,
        engine: Optional[HashEngine] = None,
    ) -> VerificationResult:
        return MerkleTree.check_proof(leaf_hash, proof, root, engine)

    @staticmethod
    def verify_leaf_in_root(
        leaf: bytes,
        index: int,
        leaf_count: int,
        siblings: Sequence[bytes],
        root: bytes,
        engine: Optional[HashEngine] = None,
    ) -> bool:
        """
        Verify a leaf is included in a Merkle root using raw components.

        Sibling sides are derived from `index`, so a bare sibling list
        (as produced by other tools that use the same padding rule) can
        be checked directly. `index` and `leaf_count` are trusted here and
        bind the position. Malformed components return False.
        """
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            return False
        if not isinstance(siblings, (list, tuple)):
            return False

        directions = path_directions(index, len(siblings))
        proof = MerkleProof(
            leaf_index=index,
            leaf_count=leaf_count,
            steps=tuple(
                ProofStep(sibling, direction)
                for sibling, direction in zip(siblings, directions)
            ),
        )
        return MerkleTree.verify_proof(leaf, proof, root, engine, leaf_count=leaf_count)

    @staticmethod
    def verify_data_in_root(
        data: bytes,
        proof: MerkleProof,
        root: bytes,
        engine: Optional[HashEngine] = None,
    ) -> bool:
        """Verify raw item bytes are included in a Merkle root."""
        engine = engine or get_default_engine()
        if not isinstance(data, (bytes, bytearray, memoryview)):
            return False
        return MerkleTree.verify_proof(hash_item(data, engine), proof, root, engine)


__all__ = [
    "MerkleProver",
    "MerkleVerifier",
]
