"""
Module 05 - Sparse Merkle Tree
Fixed-depth binary tree over a 2**depth key space with inclusion and
non-inclusion proofs.

Owner: Protocol/Crypto Engineer

Conceptually every one of the 2**depth leaves exists. A leaf that was never
written holds the default value, and a subtree with no written leaves has
a precomputed "empty hash" for its height:

    empty[0]     = leaf_hash(default_value)
    empty[h + 1] = combine(empty[h], empty[h])

Only nodes that differ from the empty hash of their level are stored, one
dict per level keyed by node index. The leaf index of a key is its integer
value; bit h of that index selects the child order at level h (bit 0 is
the bottom level).

Rules:
1. Root is a pure function of the populated (key, value) set
2. Writing the default value is a deletion
3. A proof is always `depth` sibling hashes, bottom to top. It proves
   inclusion when checked against a stored value and non-inclusion when
   checked against the default value - the proof shape is the same

Concurrency:
- insert/delete mutate in place and need a single writer
- snapshot() returns an independent read-only copy for concurrent readers
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional, Union

from merklekit.config.runtime import get_default_config, get_default_engine
from merklekit.crypto.hashing import HASH_SIZE, HashEngine
from merklekit.proofs.path import ProofStep, check_path, path_directions
from merklekit.schemas.errors import KeyOutOfRange
from merklekit.schemas.verification import VerificationResult


logger = logging.getLogger(__name__)

SparseKey = Union[int, str, bytes]

# Value of every leaf that was never written
ZERO_VALUE: bytes = b"\x00" * HASH_SIZE


# =============================================================================
# Process-wide empty-subtree tables
# =============================================================================

_EMPTY_HASHES: dict[tuple[HashEngine, bytes], tuple[bytes, ...]] = {}
_EMPTY_HASHES_LOCK = threading.Lock()


def empty_hashes(engine: HashEngine, default_value: bytes, depth: int) -> tuple[bytes, ...]:
    """
    Empty-subtree hashes for heights 0..depth.

    Tables are shared by every tree with the same engine and default value,
    built lazily, and only ever extended. A table computed for a deep tree
    already serves every shallower one.
    """
    cache_key = (engine, default_value)
    table = _EMPTY_HASHES.get(cache_key)
    if table is not None and len(table) > depth:
        return table[: depth + 1]

    with _EMPTY_HASHES_LOCK:
        table = _EMPTY_HASHES.get(cache_key) or (engine.leaf_hash(default_value),)
        if len(table) <= depth:
            extended = list(table)
            while len(extended) <= depth:
                extended.append(engine.combine(extended[-1], extended[-1]))
            table = tuple(extended)
            _EMPTY_HASHES[cache_key] = table
            logger.debug(f"extended empty-subtree table to depth {depth}")
    return table[: depth + 1]


# =============================================================================
# Keys
# =============================================================================

def normalize_key(key: SparseKey, depth: int) -> int:
    """
    Convert a key to its leaf index.

    Accepted forms:
    - int in [0, 2**depth)
    - str of exactly `depth` "0"/"1" characters, most significant bit first
      (an optional "0b" prefix is allowed)
    - bytes with len(key) * 8 == depth, big-endian

    Raises:
        KeyOutOfRange: If the key does not have exactly `depth` bits
    """
    if isinstance(key, bool):
        raise KeyOutOfRange("Boolean is not a valid key", depth=depth)

    if isinstance(key, int):
        if 0 <= key < (1 << depth):
            return key
        raise KeyOutOfRange(
            f"Integer key {key} does not fit in {depth} bits",
            depth=depth,
            details={"key": key},
        )

    if isinstance(key, str):
        bits = key[2:] if key.startswith("0b") else key
        if len(bits) == depth and bits and set(bits) <= {"0", "1"}:
            return int(bits, 2)
        raise KeyOutOfRange(
            f"Bit-string key must be exactly {depth} binary digits, got {len(bits)} characters",
            depth=depth,
            details={"key": key},
        )

    if isinstance(key, (bytes, bytearray)):
        if len(key) * 8 == depth:
            return int.from_bytes(key, "big")
        raise KeyOutOfRange(
            f"Byte key has {len(key) * 8} bits, expected {depth}",
            depth=depth,
            details={"key": bytes(key).hex()},
        )

    raise KeyOutOfRange(
        f"Unsupported key type {type(key).__name__}",
        depth=depth,
    )


# =============================================================================
# Proofs
# =============================================================================

@dataclass(frozen=True)
class SparseMerkleProof:
    """
    Inclusion / non-inclusion proof for one key.

    Attributes:
        key: Leaf index the proof was issued for
        depth: Depth of the tree (number of siblings)
        siblings: Sibling hashes from the leaf level up to just below the root
    """
    key: int
    depth: int
    siblings: tuple[bytes, ...]

    @property
    def steps(self) -> tuple[ProofStep, ...]:
        """Siblings paired with the sides derived from the key bits."""
        directions = path_directions(self.key, len(self.siblings))
        return tuple(
            ProofStep(sibling, direction)
            for sibling, direction in zip(self.siblings, directions)
        )


def check_sparse_proof(
    root: bytes,
    key: SparseKey,
    value: Optional[bytes],
    proof: SparseMerkleProof,
    *,
    engine: Optional[HashEngine] = None,
    default_value: bytes = ZERO_VALUE,
) -> VerificationResult:
    """
    Check a sparse proof against a trusted root.

    Args:
        root: Trusted root
        key: Key the claim is about
        value: Claimed value, or None to claim the key is empty
        proof: Proof issued for `key`
        engine: Hash engine of the tree
        default_value: Default value of the tree

    Never raises: malformed keys, values or proofs are shape errors.
    """
    engine = engine or get_default_engine()

    if not isinstance(proof, SparseMerkleProof):
        return VerificationResult.shape_error(
            "Expected a SparseMerkleProof",
            details={"type": type(proof).__name__},
        )
    if not isinstance(proof.depth, int) or proof.depth < 1:
        return VerificationResult.shape_error(
            "Proof depth must be a positive integer",
            details={"depth": repr(proof.depth)},
        )
    if not isinstance(proof.siblings, (list, tuple)) or len(proof.siblings) != proof.depth:
        return VerificationResult.shape_error(
            f"Proof must carry exactly {proof.depth} siblings",
            details={"depth": proof.depth},
        )

    try:
        index = normalize_key(key, proof.depth)
    except KeyOutOfRange as e:
        return VerificationResult.shape_error(e.message, details=e.details)
    if index != proof.key:
        return VerificationResult.shape_error(
            "Proof was issued for a different key",
            details={"key": index, "proof_key": repr(proof.key)},
        )

    claimed = default_value if value is None else value
    if not isinstance(claimed, (bytes, bytearray)):
        return VerificationResult.shape_error(
            "Claimed value must be bytes",
            details={"type": type(claimed).__name__},
        )

    return check_path(
        engine.leaf_hash(bytes(claimed)),
        proof.steps,
        root,
        engine.combine,
        digest_size=engine.digest_size,
        expected_length=proof.depth,
    )


def verify_sparse_proof(
    root: bytes,
    key: SparseKey,
    value: Optional[bytes],
    proof: SparseMerkleProof,
    *,
    engine: Optional[HashEngine] = None,
    default_value: bytes = ZERO_VALUE,
) -> bool:
    """Boolean form of check_sparse_proof()."""
    return check_sparse_proof(
        root, key, value, proof, engine=engine, default_value=default_value
    ).ok


# =============================================================================
# Tree
# =============================================================================

class SparseMerkleTree:
    """
    Sparse Merkle tree of fixed depth.

    Example:
        >>> smt = SparseMerkleTree(depth=4)
        >>> root = smt.insert("0101", v1)
        >>> smt.get(0b0101) == v1
        True
        >>> smt.verify(0b0110, None, smt.prove(0b0110))
        True
    """

    def __init__(
        self,
        depth: Optional[int] = None,
        default_value: bytes = ZERO_VALUE,
        engine: Optional[HashEngine] = None,
    ) -> None:
        if depth is None:
            depth = get_default_config().smt.default_depth
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
            raise ValueError(f"Sparse tree depth must be a positive integer, got {depth!r}")

        self._depth = depth
        self._default_value = bytes(default_value)
        self._engine = engine or get_default_engine()
        self._empty = empty_hashes(self._engine, self._default_value, depth)
        # _levels[h] maps node index -> hash for non-empty nodes at height h
        self._levels: list[dict[int, bytes]] = [{} for _ in range(depth + 1)]
        self._values: dict[int, bytes] = {}
        self._frozen = False

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def default_value(self) -> bytes:
        return self._default_value

    @property
    def engine(self) -> HashEngine:
        return self._engine

    @property
    def empty_hashes(self) -> tuple[bytes, ...]:
        return self._empty

    @property
    def root(self) -> bytes:
        return self._node(self._depth, 0)

    @property
    def is_snapshot(self) -> bool:
        return self._frozen

    def key_index(self, key: SparseKey) -> int:
        return normalize_key(key, self._depth)

    def _node(self, level: int, index: int) -> bytes:
        return self._levels[level].get(index, self._empty[level])

    def _store(self, level: int, index: int, node: bytes) -> None:
        if node == self._empty[level]:
            self._levels[level].pop(index, None)
        else:
            self._levels[level][index] = node

    def _ensure_writable(self) -> None:
        if self._frozen:
            raise TypeError("Sparse Merkle tree snapshot is read-only")

    def _set_leaf(self, index: int, value: bytes) -> None:
        if value == self._default_value:
            self._values.pop(index, None)
            node = self._empty[0]
        else:
            self._values[index] = value
            node = self._engine.leaf_hash(value)
        self._store(0, index, node)

        combine = self._engine.combine
        for level in range(self._depth):
            sibling = self._node(level, index ^ 1)
            if index % 2 == 0:
                node = combine(node, sibling)
            else:
                node = combine(sibling, node)
            index >>= 1
            self._store(level + 1, index, node)

    def insert(self, key: SparseKey, value: bytes) -> bytes:
        """
        Set the value at `key` and return the new root.

        Raises:
            KeyOutOfRange: If the key does not have exactly `depth` bits
            TypeError: If called on a snapshot, or value is not bytes
        """
        self._ensure_writable()
        index = self.key_index(key)
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"Value must be bytes, got {type(value).__name__}")
        self._set_leaf(index, bytes(value))
        logger.debug(f"smt insert: key={index} populated={len(self._values)}")
        return self.root

    def delete(self, key: SparseKey) -> bytes:
        """Reset `key` to the default value and return the new root."""
        return self.insert(key, self._default_value)

    def update_many(
        self,
        updates: Union[Mapping[SparseKey, bytes], Iterable[tuple[SparseKey, bytes]]],
    ) -> bytes:
        """
        Apply several inserts and return the final root.

        All keys are validated before any write, so a bad key leaves the
        tree unchanged.
        """
        self._ensure_writable()
        pairs = updates.items() if isinstance(updates, Mapping) else updates
        resolved: list[tuple[int, bytes]] = []
        for key, value in pairs:
            if not isinstance(value, (bytes, bytearray)):
                raise TypeError(f"Value must be bytes, got {type(value).__name__}")
            resolved.append((self.key_index(key), bytes(value)))
        for index, value in resolved:
            self._set_leaf(index, value)
        logger.debug(f"smt batch update: {len(resolved)} keys, populated={len(self._values)}")
        return self.root

    def get(self, key: SparseKey) -> bytes:
        """Stored value at `key`, or the default value if it was never written."""
        return self._values.get(self.key_index(key), self._default_value)

    def contains(self, key: SparseKey) -> bool:
        return self.key_index(key) in self._values

    def __contains__(self, key: object) -> bool:
        try:
            return self.contains(key)  # type: ignore[arg-type]
        except KeyOutOfRange:
            return False

    def __len__(self) -> int:
        return len(self._values)

    def items(self) -> Iterator[tuple[int, bytes]]:
        """Populated (leaf index, value) pairs in key order."""
        for index in sorted(self._values):
            yield index, self._values[index]

    def prove(self, key: SparseKey) -> SparseMerkleProof:
        """
        Proof for `key`, valid for inclusion and non-inclusion claims alike.

        Raises:
            KeyOutOfRange: If the key does not have exactly `depth` bits
        """
        index = self.key_index(key)
        siblings: list[bytes] = []
        current = index
        for level in range(self._depth):
            siblings.append(self._node(level, current ^ 1))
            current >>= 1
        return SparseMerkleProof(key=index, depth=self._depth, siblings=tuple(siblings))

    def check(
        self,
        key: SparseKey,
        value: Optional[bytes],
        proof: SparseMerkleProof,
    ) -> VerificationResult:
        """Check a proof against this tree's current root."""
        return check_sparse_proof(
            self.root,
            key,
            value,
            proof,
            engine=self._engine,
            default_value=self._default_value,
        )

    def verify(
        self,
        key: SparseKey,
        value: Optional[bytes],
        proof: SparseMerkleProof,
    ) -> bool:
        return self.check(key, value, proof).ok

    def snapshot(self) -> "SparseMerkleTree":
        """
        Independent read-only copy of the current version.

        Later writes to this tree are not visible through the snapshot,
        and the snapshot rejects writes.
        """
        view = SparseMerkleTree.__new__(SparseMerkleTree)
        view._depth = self._depth
        view._default_value = self._default_value
        view._engine = self._engine
        view._empty = self._empty
        view._levels = [dict(level) for level in self._levels]
        view._values = dict(self._values)
        view._frozen = True
        return view

    def __repr__(self) -> str:
        return (
            f"SparseMerkleTree(depth={self._depth}, populated={len(self._values)}, "
            f"root={self.root.hex()[:16]}...)"
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
