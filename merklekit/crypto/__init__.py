"""
Core cryptographic utilities.

Module 02 provides the domain-separated hash engine every tree is built on.
"""
from .hashing import (
    DEFAULT_ENGINE,
    HASH_SIZE,
    LEAF_PREFIX,
    NODE_PREFIX,
    HashAlgorithm,
    HashEngine,
    Leaf,
    from_hex,
    hash_bytes,
    hash_item,
    sha256,
    to_hex,
)

__all__ = [
    "DEFAULT_ENGINE",
    "HASH_SIZE",
    "LEAF_PREFIX",
    "NODE_PREFIX",
    "HashAlgorithm",
    "HashEngine",
    "Leaf",
    "from_hex",
    "hash_bytes",
    "hash_item",
    "sha256",
    "to_hex",
]
