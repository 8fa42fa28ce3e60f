"""
Module 02 - Hashing
Domain-separated hashing primitive shared by every tree variant.

Owner: Protocol/Crypto Engineer

This module provides:
- SHA-256 hashing for raw bytes and hex helpers with 0x prefix
- HashEngine: leaf_hash / combine with distinct domain tags
- Leaf helpers that follow the configured default engine

Domain Separation Rules (Hard Contracts):
1. Leaf hashing:   leaf = H(leaf_prefix || data)          (default prefix 0x00)
2. Node hashing:   node = H(node_prefix || left || right) (default prefix 0x01)
3. Child order is significant: combine(a, b) != combine(b, a)
4. Empty sentinel: H(b"") with no prefix, never produced by 1 or 2

Security/Determinism Notes:
- Every function here is pure; an engine carries no mutable state and is
  safe to share between threads
- All supported algorithms produce 32-byte digests
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


HASH_SIZE = 32

LEAF_PREFIX: bytes = b"\x00"
NODE_PREFIX: bytes = b"\x01"


class HashAlgorithm(str, Enum):
    SHA256 = "sha256"
    SHA3_256 = "sha3_256"
    BLAKE2B = "blake2b"
    BLAKE2S = "blake2s"


def _hash_factory(algorithm: HashAlgorithm) -> Callable[[bytes], Any]:
    if algorithm is HashAlgorithm.SHA256:
        return hashlib.sha256
    if algorithm is HashAlgorithm.SHA3_256:
        return hashlib.sha3_256
    if algorithm is HashAlgorithm.BLAKE2B:
        return lambda data: hashlib.blake2b(data, digest_size=HASH_SIZE)
    if algorithm is HashAlgorithm.BLAKE2S:
        return hashlib.blake2s
    raise ValueError(f"Unsupported hash algorithm: {algorithm}")


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def hash_bytes(data: bytes) -> bytes:
    """Alias for sha256()."""
    return sha256(data)


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert hexadecimal string (with 0x prefix) to bytes.

    Raises:
        ValueError: If string doesn't start with 0x, has odd length,
                   or contains invalid hex characters
    """
    if not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {hex_string[:10]}..."
        )

    hex_content = hex_string[2:]

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


@dataclass(frozen=True)
class HashEngine:
    """
    Deterministic, domain-separated hashing primitive.

    The engine is the single external configuration point of the library:
    every tree, proof and verifier takes one, and two structures only
    interoperate when they share an engine.

    Attributes:
        algorithm: Underlying hash function (32-byte output)
        leaf_prefix: Domain tag prepended to raw leaf data
        node_prefix: Domain tag prepended to concatenated child hashes
    """
    algorithm: HashAlgorithm = HashAlgorithm.SHA256
    leaf_prefix: bytes = LEAF_PREFIX
    node_prefix: bytes = NODE_PREFIX
    _hasher: Callable[[bytes], Any] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        algorithm = HashAlgorithm(self.algorithm)
        if self.leaf_prefix == self.node_prefix:
            raise ValueError("Leaf and node domain prefixes must differ")
        object.__setattr__(self, "algorithm", algorithm)
        object.__setattr__(self, "_hasher", _hash_factory(algorithm))

    @property
    def digest_size(self) -> int:
        return HASH_SIZE

    @property
    def empty_root(self) -> bytes:
        """Reserved sentinel for a structure that holds no leaves."""
        return self.digest(b"")

    def digest(self, data: bytes) -> bytes:
        """Hash raw bytes with no domain tag."""
        return self._hasher(data).digest()

    def leaf_hash(self, data: bytes) -> bytes:
        """Hash raw item bytes as a leaf."""
        return self._hasher(self.leaf_prefix + data).digest()

    def combine(self, left: bytes, right: bytes) -> bytes:
        """
        Hash two child hashes into their parent.

        Order is significant: the left child is always hashed first.
        """
        return self._hasher(self.node_prefix + left + right).digest()


DEFAULT_ENGINE = HashEngine()


def _resolve(engine: Optional[HashEngine]) -> HashEngine:
    if engine is not None:
        return engine
    # Deferred: config.runtime builds engines from this module
    from merklekit.config.runtime import get_default_engine
    return get_default_engine()


@dataclass(frozen=True)
class Leaf:
    """A raw input item together with its domain-separated leaf hash."""
    data: bytes
    hash: bytes

    @classmethod
    def from_data(cls, data: bytes, engine: Optional[HashEngine] = None) -> "Leaf":
        """Hash `data` with `engine`, or the configured default engine."""
        return cls(data=bytes(data), hash=_resolve(engine).leaf_hash(bytes(data)))


def hash_item(item: bytes, engine: Optional[HashEngine] = None) -> bytes:
    """
    Leaf hash of one raw item under the configured default engine.

    Raises:
        TypeError: If item is not bytes-like
    """
    if not isinstance(item, (bytes, bytearray, memoryview)):
        raise TypeError(f"Leaf items must be bytes, got {type(item).__name__}")
    return _resolve(engine).leaf_hash(bytes(item))


__all__ = [
    "HASH_SIZE",
    "LEAF_PREFIX",
    "NODE_PREFIX",
    "HashAlgorithm",
    "HashEngine",
    "DEFAULT_ENGINE",
    "Leaf",
    "sha256",
    "hash_bytes",
    "to_hex",
    "from_hex",
    "hash_item",
]
