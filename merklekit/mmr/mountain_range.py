"""
Module 06 - Merkle Mountain Range
Append-only commitment to a growing log of leaf hashes.

Owner: Protocol/Crypto Engineer

A mountain range over n leaves is a forest of perfect binary trees
("peaks"), one for every set bit of n, ordered left to right from the
highest to the lowest:

    n = 7 (0b111)            [6]            [9]        [10]
                            /   \\          /   \\
                          [2]   [5]      [7]   [8]
                          / \\   / \\
                        [0] [1][3] [4]

Appending a leaf adds a height-0 peak and then, while the two right-most
peaks have equal height, merges them with combine(left, right). This is
binary increment with carry, so the peak heights always match the set
bits of the leaf count.

Storage:
- levels[h][i] is the root of the i-th perfect subtree of height h
- nodes are only ever appended, so a handle bound to an older leaf count
  keeps reading exactly the nodes it saw

Bagging (Hard Contract):
- right to left: acc = lowest peak, then acc = combine(peak, acc) for
  each peak moving left towards the highest
- the root is combine(count_hash(n), bagged peaks), where count_hash(n)
  is the leaf hash of n as 8 big-endian bytes
- an empty range has root empty_range_root() (H(b"") with no domain tag)

Concurrency:
- append() mutates the handle and needs a single writer
- with_leaf() returns a new version and leaves the receiver untouched
- snapshot() / at_size() are O(1) read-only views; a handle that appends
  while it is not the tip of its storage forks a private copy first
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from merklekit.config.runtime import get_default_engine
from merklekit.crypto.hashing import HashEngine
from merklekit.proofs.path import (
    Direction,
    ProofStep,
    check_path,
    fold_path,
    path_directions,
)
from merklekit.schemas.errors import IndexOutOfRange
from merklekit.schemas.verification import VerificationResult


logger = logging.getLogger(__name__)

# count_hash encodes the leaf count in 8 bytes
MAX_LEAF_COUNT = 1 << 64


def peak_layout(leaf_count: int) -> list[tuple[int, int]]:
    """
    (height, first leaf index) of every peak, left to right.

    Example:
        >>> peak_layout(5)
        [(2, 0), (0, 4)]
    """
    layout: list[tuple[int, int]] = []
    first = 0
    for height in range(leaf_count.bit_length() - 1, -1, -1):
        if (leaf_count >> height) & 1:
            layout.append((height, first))
            first += 1 << height
    return layout


def bag_peaks(peaks: Sequence[bytes], engine: Optional[HashEngine] = None) -> bytes:
    """Bag peak hashes (ordered highest first) into a single root."""
    engine = engine or get_default_engine()
    if not peaks:
        return engine.empty_root
    steps = [ProofStep(peak, Direction.LEFT) for peak in reversed(peaks[:-1])]
    return fold_path(peaks[-1], steps, engine.combine)


def empty_range_root(engine: Optional[HashEngine] = None) -> bytes:
    """Root of a range with no leaves. Uses the configured default engine unless one is given."""
    return (engine or get_default_engine()).empty_root


def count_hash(leaf_count: int, engine: Optional[HashEngine] = None) -> bytes:
    """Leaf-domain hash of the leaf count as an 8-byte big-endian integer."""
    engine = engine or get_default_engine()
    return engine.leaf_hash(leaf_count.to_bytes(8, "big"))


def mountain_root(
    peaks: Sequence[bytes],
    leaf_count: int,
    engine: Optional[HashEngine] = None,
) -> bytes:
    """
    Root committing to both the bagged peaks and the leaf count.

    root = combine(count_hash(leaf_count), bag_peaks(peaks)). Different
    leaf counts give different peak layouts, so binding the count also
    binds which peak a proof path may end in.
    """
    engine = engine or get_default_engine()
    if leaf_count == 0:
        return engine.empty_root
    return engine.combine(count_hash(leaf_count, engine), bag_peaks(peaks, engine))


@dataclass(frozen=True)
class MountainRangeProof:
    """
    Membership proof for one leaf of a mountain range.

    Attributes:
        leaf_index: Index of the leaf (0-indexed)
        leaf_count: Number of leaves when the proof was issued
        steps: Path from the leaf up to the peak that owns it
        peaks: The other peaks at issuance, left to right, owning peak omitted
    """
    leaf_index: int
    leaf_count: int
    steps: tuple[ProofStep, ...]
    peaks: tuple[bytes, ...]


def _owning_peak(index: int, leaf_count: int) -> tuple[int, int]:
    """(position in peak list, height) of the peak covering leaf `index`."""
    for position, (height, first) in enumerate(peak_layout(leaf_count)):
        if index < first + (1 << height):
            return position, height
    raise IndexOutOfRange(
        f"Leaf index {index} out of range for {leaf_count} leaves",
        index=index,
        leaf_count=leaf_count,
    )


def check_mountain_proof(
    root: bytes,
    leaf_hash: bytes,
    index: int,
    leaf_count: int,
    proof: MountainRangeProof,
    engine: Optional[HashEngine] = None,
) -> VerificationResult:
    """
    Check a mountain range proof against the root captured at `leaf_count`.

    The intra-peak path and the bagging of the remaining peaks are checked
    as one proof path: after reaching the owning peak, the bag of the
    peaks to its right is a RIGHT sibling and each peak to its left is a
    LEFT sibling. The final LEFT sibling is count_hash(leaf_count), so a
    path lifted from a smaller range cannot be replayed under a claimed
    count that the root was not built with.

    Never raises on untrusted input.
    """
    engine = engine or get_default_engine()

    if not isinstance(proof, MountainRangeProof):
        return VerificationResult.shape_error(
            "Expected a MountainRangeProof",
            details={"type": type(proof).__name__},
        )
    if (
        isinstance(leaf_count, bool)
        or not isinstance(leaf_count, int)
        or not 1 <= leaf_count < MAX_LEAF_COUNT
    ):
        return VerificationResult.shape_error(
            "Leaf count must be a positive integer below 2**64",
            details={"leaf_count": repr(leaf_count)},
        )
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < leaf_count:
        return VerificationResult.shape_error(
            "Leaf index out of range for leaf count",
            details={"index": repr(index), "leaf_count": leaf_count},
        )
    if proof.leaf_count != leaf_count or proof.leaf_index != index:
        return VerificationResult.shape_error(
            "Proof was issued for a different leaf or log length",
            details={
                "index": index,
                "leaf_count": leaf_count,
                "proof_leaf_index": repr(proof.leaf_index),
                "proof_leaf_count": repr(proof.leaf_count),
            },
        )

    position, height = _owning_peak(index, leaf_count)
    peak_count = bin(leaf_count).count("1")

    if not isinstance(proof.peaks, (list, tuple)) or len(proof.peaks) != peak_count - 1:
        return VerificationResult.shape_error(
            f"Proof must carry {peak_count - 1} other peaks",
            details={"expected_peaks": peak_count - 1},
        )
    for i, peak in enumerate(proof.peaks):
        if not isinstance(peak, (bytes, bytearray)) or len(peak) != engine.digest_size:
            return VerificationResult.shape_error(
                f"Peak {i} must be {engine.digest_size} bytes",
                details={"peak": i},
            )
    if not isinstance(proof.steps, (list, tuple)):
        return VerificationResult.shape_error("Proof steps must be a sequence")

    left_peaks = [bytes(peak) for peak in proof.peaks[:position]]
    right_peaks = [bytes(peak) for peak in proof.peaks[position:]]

    bagging: list[ProofStep] = []
    if right_peaks:
        bagging.append(ProofStep(bag_peaks(right_peaks, engine), Direction.RIGHT))
    bagging.extend(ProofStep(peak, Direction.LEFT) for peak in reversed(left_peaks))
    bagging.append(ProofStep(count_hash(leaf_count, engine), Direction.LEFT))

    expected = path_directions(index, height) + [step.direction for step in bagging]
    return check_path(
        leaf_hash,
        tuple(proof.steps) + tuple(bagging),
        root,
        engine.combine,
        digest_size=engine.digest_size,
        expected_directions=expected,
    )


def verify_mountain_proof(
    root: bytes,
    leaf_hash: bytes,
    index: int,
    leaf_count: int,
    proof: MountainRangeProof,
    engine: Optional[HashEngine] = None,
) -> bool:
    """Boolean form of check_mountain_proof()."""
    return check_mountain_proof(root, leaf_hash, index, leaf_count, proof, engine).ok


class MerkleMountainRange:
    """
    Merkle Mountain Range: append-only authenticated log.

    Example:
        >>> mmr = MerkleMountainRange()
        >>> for data in (b"a", b"b", b"c"):
        ...     root = mmr.append_data(data)
        >>> proof = mmr.prove(1)
        >>> verify_mountain_proof(mmr.root, mmr.leaf(1), 1, 3, proof, mmr.engine)
        True
    """

    def __init__(self, engine: Optional[HashEngine] = None) -> None:
        self._engine = engine or get_default_engine()
        self._levels: list[list[bytes]] = []
        self._leaf_count = 0
        self._frozen = False

    @classmethod
    def _view(
        cls,
        levels: list[list[bytes]],
        leaf_count: int,
        engine: HashEngine,
        frozen: bool,
    ) -> "MerkleMountainRange":
        view = cls.__new__(cls)
        view._engine = engine
        view._levels = levels
        view._leaf_count = leaf_count
        view._frozen = frozen
        return view

    @classmethod
    def from_leaves(
        cls,
        leaves: Iterable[bytes],
        engine: Optional[HashEngine] = None,
    ) -> "MerkleMountainRange":
        mmr = cls(engine)
        for leaf in leaves:
            mmr.append(leaf)
        return mmr

    @property
    def engine(self) -> HashEngine:
        return self._engine

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    @property
    def is_snapshot(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return self._leaf_count

    def _is_tip(self) -> bool:
        stored = len(self._levels[0]) if self._levels else 0
        return stored == self._leaf_count

    def _fork(self) -> None:
        # Copy only the nodes this version can see
        levels: list[list[bytes]] = []
        for height, level in enumerate(self._levels):
            visible = self._leaf_count >> height
            if visible == 0:
                break
            levels.append(level[:visible])
        self._levels = levels
        logger.debug(f"mmr forked private storage at {self._leaf_count} leaves")

    def append(self, leaf_hash: bytes) -> bytes:
        """
        Append a leaf hash and return the new root.

        Complexity: O(log n) hash operations.

        Raises:
            TypeError: If called on a read-only view
            ValueError: If the leaf is not a hash of the engine's width
        """
        if self._frozen:
            raise TypeError("Mountain range snapshot is read-only")
        if not isinstance(leaf_hash, (bytes, bytearray)) or len(leaf_hash) != self._engine.digest_size:
            raise ValueError(f"Leaf must be a {self._engine.digest_size}-byte hash")
        if not self._is_tip():
            self._fork()

        levels = self._levels
        node = bytes(leaf_hash)
        if not levels:
            levels.append([])
        levels[0].append(node)

        # Merge equal-height peaks: one merge per trailing 1-bit of the old count
        index = self._leaf_count
        height = 0
        while index & 1:
            node = self._engine.combine(levels[height][index - 1], node)
            height += 1
            index >>= 1
            if len(levels) == height:
                levels.append([])
            levels[height].append(node)

        self._leaf_count += 1
        logger.debug(f"mmr append: leaves={self._leaf_count} merges={height}")
        return self.root

    def append_data(self, data: bytes) -> bytes:
        """Leaf-hash raw bytes, append them, and return the new root."""
        return self.append(self._engine.leaf_hash(data))

    def with_leaf(self, leaf_hash: bytes) -> "MerkleMountainRange":
        """New version with `leaf_hash` appended; this handle is unchanged."""
        version = self._view(self._levels, self._leaf_count, self._engine, frozen=False)
        version.append(leaf_hash)
        return version

    def snapshot(self) -> "MerkleMountainRange":
        """Read-only view of the current version."""
        return self._view(self._levels, self._leaf_count, self._engine, frozen=True)

    def at_size(self, leaf_count: int) -> "MerkleMountainRange":
        """
        Read-only view of the range as it was after `leaf_count` appends.

        Raises:
            IndexOutOfRange: If leaf_count is negative or beyond this version
        """
        if leaf_count < 0 or leaf_count > self._leaf_count:
            raise IndexOutOfRange(
                f"Cannot view {leaf_count} leaves of a range holding {self._leaf_count}",
                index=leaf_count,
                leaf_count=self._leaf_count,
            )
        return self._view(self._levels, leaf_count, self._engine, frozen=True)

    def leaf(self, index: int) -> bytes:
        self._check_index(index)
        return self._levels[0][index]

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self._leaf_count:
            raise IndexOutOfRange(
                f"Leaf index {index} out of range for {self._leaf_count} leaves",
                index=index,
                leaf_count=self._leaf_count,
            )

    def peaks(self) -> list[tuple[int, bytes]]:
        """(height, hash) of every peak, left to right (highest first)."""
        return [
            (height, self._levels[height][first >> height])
            for height, first in peak_layout(self._leaf_count)
        ]

    def peak_heights(self) -> list[int]:
        return [height for height, _ in peak_layout(self._leaf_count)]

    @property
    def root(self) -> bytes:
        return mountain_root(
            [peak for _, peak in self.peaks()], self._leaf_count, self._engine
        )

    def prove(self, index: int) -> MountainRangeProof:
        """
        Membership proof for the leaf at `index`, bound to the current leaf count.

        Raises:
            IndexOutOfRange: If index is out of range
        """
        self._check_index(index)
        position, height = _owning_peak(index, self._leaf_count)

        steps: list[ProofStep] = []
        node_index = index
        for level in range(height):
            if node_index & 1:
                steps.append(ProofStep(self._levels[level][node_index - 1], Direction.LEFT))
            else:
                steps.append(ProofStep(self._levels[level][node_index + 1], Direction.RIGHT))
            node_index >>= 1

        other_peaks = tuple(
            peak for i, (_, peak) in enumerate(self.peaks()) if i != position
        )
        return MountainRangeProof(
            leaf_index=index,
            leaf_count=self._leaf_count,
            steps=tuple(steps),
            peaks=other_peaks,
        )

    def check(self, leaf_hash: bytes, proof: MountainRangeProof) -> VerificationResult:
        """Check a proof against this version's root and leaf count."""
        return check_mountain_proof(
            self.root,
            leaf_hash,
            proof.leaf_index if isinstance(proof, MountainRangeProof) else -1,
            self._leaf_count,
            proof,
            self._engine,
        )

    def verify(self, leaf_hash: bytes, proof: MountainRangeProof) -> bool:
        return self.check(leaf_hash, proof).ok

    def __repr__(self) -> str:
        return (
            f"MerkleMountainRange(leaves={self._leaf_count}, "
            f"peaks={self.peak_heights()}, root={self.root.hex()[:16]}...)"
        )


__all__ = [
    "MerkleMountainRange",
    "MountainRangeProof",
    "bag_peaks",
    "check_mountain_proof",
    "count_hash",
    "empty_range_root",
    "mountain_root",
    "peak_layout",
    "verify_mountain_proof",
]
