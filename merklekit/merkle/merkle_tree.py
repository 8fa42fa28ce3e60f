"""
Module 04 - Merkle Tree Implementation
Deterministic dense Merkle tree construction, proof generation, and verification.

Owner: Protocol/Crypto Engineer

This module provides:
- MerkleTree: immutable tree over an ordered sequence of leaf hashes
- Merkle proof generation for any leaf index
- Merkle proof verification through the shared proof-path fold
- Functional helpers for callers that only need a root or a single proof

Canonical Commitment Rules (Hard Contracts):
1. Leaves are hashes already produced by HashEngine.leaf_hash()
2. Parent hashing: parent = engine.combine(left, right)
3. Padding rule: an odd layer pairs its last node with itself,
   parent = combine(x, x), at every level
4. Empty leaves: EmptyInputError. empty_tree_root() is the reserved
   sentinel callers may store for "no leaves"; a tree never returns it
5. Single leaf: root = leaf (the leaf hash itself), proof has no steps

Because of rule 3 every proof for an n-leaf tree has exactly
ceil(log2(n)) steps, and the sibling sides spell out the bits of the
leaf index. Verification checks both before hashing.

Determinism Notes:
- This module never sorts leaves - it trusts input order
- Threaded layer hashing produces the same layers as the sequential build
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from merklekit.config.runtime import TreeConfig, get_default_config, get_default_engine
from merklekit.crypto.hashing import HashEngine, hash_item
from merklekit.proofs.path import (
    CombineFn,
    Direction,
    ProofStep,
    check_path,
    path_directions,
)
from merklekit.schemas.errors import EmptyInputError, IndexOutOfRange
from merklekit.schemas.verification import VerificationResult


logger = logging.getLogger(__name__)


def empty_tree_root(engine: Optional[HashEngine] = None) -> bytes:
    """
    Sentinel for "no leaves": H(b"") with no domain tag.

    Uses the configured default engine unless one is given.
    """
    return (engine or get_default_engine()).empty_root


@dataclass(frozen=True)
class MerkleProof:
    """
    An inclusion proof for a single leaf of a dense Merkle tree.

    Attributes:
        leaf_index: The 0-based index of the leaf in the original leaf list
        leaf_count: Number of leaves in the tree the proof was issued for
        steps: (sibling, side) pairs from bottom to top of tree
    """
    leaf_index: int
    leaf_count: int
    steps: tuple[ProofStep, ...]

    @property
    def siblings(self) -> list[bytes]:
        return [step.sibling for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)


def merkle_parent(left: bytes, right: bytes, engine: Optional[HashEngine] = None) -> bytes:
    """
    Compute the parent hash of two child nodes.

    Args:
        left: Left child hash
        right: Right child hash
        engine: Hash engine (default engine when omitted)

    Returns:
        Parent hash (32 bytes)
    """
    return (engine or get_default_engine()).combine(left, right)


def compute_proof_length(num_leaves: int) -> int:
    """
    Number of steps in any proof for a tree of `num_leaves` leaves.

    Equals ceil(log2(num_leaves)); 0 for a single leaf.
    """
    if num_leaves <= 1:
        return 0
    return (num_leaves - 1).bit_length()


def compute_tree_depth(num_leaves: int) -> int:
    """
    Compute the depth of a Merkle tree with given number of leaves.

    Depth is the number of levels from leaves to root (inclusive).
    A single leaf has depth 1, two leaves have depth 2, etc.

    Returns:
        Tree depth (0 for empty tree)
    """
    if num_leaves <= 0:
        return 0
    return compute_proof_length(num_leaves) + 1


def _hash_pairs(layer: Sequence[bytes], start: int, stop: int, combine: CombineFn) -> list[bytes]:
    parents: list[bytes] = []
    last = len(layer) - 1
    for i in range(start, stop, 2):
        right = layer[i + 1] if i < last else layer[i]
        parents.append(combine(layer[i], right))
    return parents


def _next_layer(
    layer: Sequence[bytes],
    combine: CombineFn,
    executor: Optional[ThreadPoolExecutor] = None,
    chunks: int = 1,
) -> tuple[bytes, ...]:
    if executor is None or chunks <= 1:
        return tuple(_hash_pairs(layer, 0, len(layer), combine))

    # Chunk boundaries stay even so no pair is split
    chunk_size = -(-len(layer) // chunks)
    chunk_size += chunk_size % 2
    starts = range(0, len(layer), chunk_size)
    results = executor.map(
        lambda start: _hash_pairs(layer, start, min(start + chunk_size, len(layer)), combine),
        starts,
    )
    next_layer: list[bytes] = []
    for parents in results:
        next_layer.extend(parents)
    return tuple(next_layer)


def _build_layers(
    leaves: tuple[bytes, ...],
    combine: CombineFn,
    config: TreeConfig,
) -> tuple[tuple[bytes, ...], ...]:
    layers = [leaves]
    current = leaves

    if len(leaves) < config.parallel_threshold:
        while len(current) > 1:
            current = _next_layer(current, combine)
            layers.append(current)
        return tuple(layers)

    workers = config.max_workers or min(32, (os.cpu_count() or 1) + 4)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        while len(current) > 1:
            if len(current) >= config.parallel_threshold:
                current = _next_layer(current, combine, executor, workers)
            else:
                current = _next_layer(current, combine)
            layers.append(current)
    return tuple(layers)


class MerkleTree:
    """
    Immutable dense binary Merkle tree.

    Layers are stored as flat tuples of hashes; the parent of node i is
    node i // 2 in the next layer. A built tree is read-only, so proofs
    can be generated and verified from any number of threads without
    locking.

    Example:
        >>> tree = MerkleTree.from_items([b"a", b"b", b"c", b"d"])
        >>> proof = tree.proof(2)
        >>> tree.verify(tree.leaf(2), proof)
        True
    """

    def __init__(self, layers: tuple[tuple[bytes, ...], ...], engine: HashEngine) -> None:
        self._layers = layers
        self._engine = engine

    @classmethod
    def build(
        cls,
        leaves: Sequence[bytes],
        engine: Optional[HashEngine] = None,
        config: Optional[TreeConfig] = None,
    ) -> "MerkleTree":
        """
        Build a tree from an ordered sequence of leaf hashes.

        Raises:
            EmptyInputError: If `leaves` is empty
            ValueError: If a leaf is not a hash of the engine's width
        """
        engine = engine or get_default_engine()
        config = config or get_default_config().tree

        if len(leaves) == 0:
            raise EmptyInputError()

        leaf_layer = tuple(bytes(leaf) for leaf in leaves)
        for i, leaf in enumerate(leaf_layer):
            if len(leaf) != engine.digest_size:
                raise ValueError(
                    f"Leaf {i} is {len(leaf)} bytes, expected {engine.digest_size}"
                )

        layers = _build_layers(leaf_layer, engine.combine, config)
        logger.debug(f"built merkle tree: {len(leaf_layer)} leaves, {len(layers)} layers")
        return cls(layers, engine)

    @classmethod
    def from_items(
        cls,
        items: Sequence[bytes],
        engine: Optional[HashEngine] = None,
        config: Optional[TreeConfig] = None,
    ) -> "MerkleTree":
        """
        Build a tree from raw item bytes, leaf-hashing each one.

        Raises:
            TypeError: If an item is not bytes-like
        """
        engine = engine or get_default_engine()
        return cls.build([hash_item(item, engine) for item in items], engine, config)

    @property
    def engine(self) -> HashEngine:
        return self._engine

    @property
    def root(self) -> bytes:
        return self._layers[-1][0]

    @property
    def leaf_count(self) -> int:
        return len(self._layers[0])

    @property
    def depth(self) -> int:
        """Number of pairing rounds between the leaves and the root."""
        return len(self._layers) - 1

    @property
    def layers(self) -> tuple[tuple[bytes, ...], ...]:
        return self._layers

    def leaf(self, index: int) -> bytes:
        self._check_index(index)
        return self._layers[0][index]

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.leaf_count:
            raise IndexOutOfRange(
                f"Leaf index {index} out of range for {self.leaf_count} leaves",
                index=index,
                leaf_count=self.leaf_count,
            )

    def proof(self, index: int) -> MerkleProof:
        """
        Generate an inclusion proof for the leaf at `index`.

        At each layer the sibling is index XOR 1, or the node itself when
        it is the unpaired last node of an odd layer.

        Raises:
            IndexOutOfRange: If index is out of range
        """
        self._check_index(index)

        steps: list[ProofStep] = []
        current_index = index
        for layer in self._layers[:-1]:
            if current_index % 2 == 0:
                sibling_index = min(current_index + 1, len(layer) - 1)
                steps.append(ProofStep(layer[sibling_index], Direction.RIGHT))
            else:
                steps.append(ProofStep(layer[current_index - 1], Direction.LEFT))
            current_index //= 2

        return MerkleProof(
            leaf_index=index,
            leaf_count=self.leaf_count,
            steps=tuple(steps),
        )

    def check(self, leaf_hash: bytes, proof: MerkleProof) -> VerificationResult:
        """Check a proof against this tree's root and leaf count."""
        return self.check_proof(
            leaf_hash, proof, self.root, self._engine, leaf_count=self.leaf_count
        )

    def verify(self, leaf_hash: bytes, proof: MerkleProof) -> bool:
        """Verify a proof against this tree's root and leaf count."""
        return self.check(leaf_hash, proof).ok

    @staticmethod
    def check_proof(
        leaf_hash: bytes,
        proof: MerkleProof,
        root: bytes,
        engine: Optional[HashEngine] = None,
        *,
        leaf_count: Optional[int] = None,
    ) -> VerificationResult:
        """
        Check an untrusted proof against a trusted root.

        The proof must have exactly compute_proof_length(leaf_count) steps
        and its sides must match the bits of leaf_index; otherwise the
        result is a shape error and nothing is hashed.

        The root authenticates membership only. proof.leaf_index and
        proof.leaf_count come from the prover and are not bound by the
        root: with self-pairing, [a, b, c] and [a, b, c, c] share a root,
        so c also verifies at index 3 of a claimed 4-leaf tree. Pass the
        trusted `leaf_count` (from the same source as the root) to bind
        the position; a proof issued for another size is then a shape
        error.
        """
        engine = engine or get_default_engine()

        if not isinstance(proof, MerkleProof):
            return VerificationResult.shape_error(
                "Expected a MerkleProof",
                details={"type": type(proof).__name__},
            )
        if isinstance(proof.leaf_count, bool) or not isinstance(proof.leaf_count, int) or proof.leaf_count < 1:
            return VerificationResult.shape_error(
                "Proof leaf_count must be a positive integer",
                details={"leaf_count": repr(proof.leaf_count)},
            )
        if leaf_count is not None and proof.leaf_count != leaf_count:
            return VerificationResult.shape_error(
                "Proof was issued for a tree of a different size",
                details={"leaf_count": leaf_count, "proof_leaf_count": proof.leaf_count},
            )
        if (
            isinstance(proof.leaf_index, bool)
            or not isinstance(proof.leaf_index, int)
            or not 0 <= proof.leaf_index < proof.leaf_count
        ):
            return VerificationResult.shape_error(
                "Proof leaf_index out of range for its leaf_count",
                details={"leaf_index": repr(proof.leaf_index), "leaf_count": proof.leaf_count},
            )

        expected = path_directions(proof.leaf_index, compute_proof_length(proof.leaf_count))
        return check_path(
            leaf_hash,
            proof.steps,
            root,
            engine.combine,
            digest_size=engine.digest_size,
            expected_directions=expected,
        )

    @staticmethod
    def verify_proof(
        leaf_hash: bytes,
        proof: MerkleProof,
        root: bytes,
        engine: Optional[HashEngine] = None,
        *,
        leaf_count: Optional[int] = None,
    ) -> bool:
        """Boolean form of check_proof()."""
        return MerkleTree.check_proof(
            leaf_hash, proof, root, engine, leaf_count=leaf_count
        ).ok

    def __len__(self) -> int:
        return self.leaf_count

    def __repr__(self) -> str:
        return f"MerkleTree(leaves={self.leaf_count}, root={self.root.hex()[:16]}...)"


def build_merkle_root(leaves: Sequence[bytes], engine: Optional[HashEngine] = None) -> bytes:
    """
    Build a Merkle root from a sequence of leaf hashes.

    Padding Rule: pair the last node with itself at each odd level.
    Example: [a, b, c] -> [combine(a, b), combine(c, c)] -> root

    Raises:
        EmptyInputError: If `leaves` is empty
    """
    return MerkleTree.build(leaves, engine).root


def build_merkle_proof(
    leaves: Sequence[bytes],
    index: int,
    engine: Optional[HashEngine] = None,
) -> MerkleProof:
    """
    Generate a Merkle proof for the leaf at the given index.

    Raises:
        EmptyInputError: If leaves is empty
        IndexOutOfRange: If index is out of range
    """
    return MerkleTree.build(leaves, engine).proof(index)


def verify_merkle_proof(
    leaf_hash: bytes,
    proof: MerkleProof,
    root: bytes,
    engine: Optional[HashEngine] = None,
    *,
    leaf_count: Optional[int] = None,
) -> bool:
    """
    Verify a Merkle proof.

    Recomputes the root from the leaf and the proof steps, checking it
    against the trusted root. Give `leaf_count` to also bind the claimed
    leaf position.

    Returns:
        True if proof is valid, False otherwise (never raises)
    """
    return MerkleTree.verify_proof(leaf_hash, proof, root, engine, leaf_count=leaf_count)


__all__ = [
    "empty_tree_root",
    "MerkleProof",
    "MerkleTree",
    "merkle_parent",
    "build_merkle_root",
    "build_merkle_proof",
    "verify_merkle_proof",
    "compute_proof_length",
    "compute_tree_depth",
]
