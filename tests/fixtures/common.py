"""
Common test fixtures shared by all modules.

Provides factory functions for:
- leaf hashes from short labels
- populated sparse trees and mountain ranges
- tampered hashes (single bit flips)
"""

from typing import Optional, Sequence

from merklekit.config.runtime import get_default_engine
from merklekit.crypto.hashing import HashEngine
from merklekit.mmr.mountain_range import MerkleMountainRange
from merklekit.smt.sparse_merkle_tree import SparseMerkleTree


def leaf(label: str, engine: Optional[HashEngine] = None) -> bytes:
    """Leaf hash of a short label, e.g. leaf("a") is h(a)."""
    return (engine or get_default_engine()).leaf_hash(label.encode("utf-8"))


def make_leaves(count: int, prefix: str = "leaf", engine: Optional[HashEngine] = None) -> list[bytes]:
    """`count` distinct leaf hashes: leaf0, leaf1, ..."""
    return [leaf(f"{prefix}{i}", engine) for i in range(count)]


def flip_bit(data: bytes, bit: int = 0) -> bytes:
    """Copy of `data` with one bit flipped."""
    tampered = bytearray(data)
    tampered[bit // 8] ^= 1 << (bit % 8)
    return bytes(tampered)


def value(label: str) -> bytes:
    """32-byte value for sparse tree entries."""
    return get_default_engine().digest(label.encode("utf-8"))


def make_sparse_tree(
    entries: Sequence[tuple[int, bytes]] = (),
    depth: int = 8,
) -> SparseMerkleTree:
    smt = SparseMerkleTree(depth=depth)
    for key, val in entries:
        smt.insert(key, val)
    return smt


def make_mountain_range(count: int, prefix: str = "entry") -> MerkleMountainRange:
    return MerkleMountainRange.from_leaves(make_leaves(count, prefix))
