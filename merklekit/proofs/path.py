"""
Module 03 - Proof Paths
The single recompute-and-compare loop behind every proof in merklekit.

Owner: Protocol/Crypto Engineer

A proof path is an ordered list of steps from a leaf (or subtree root) up
to a root. Each step names a sibling hash and the side the sibling sits
on. Verification folds the path with `combine`:

    sibling on the RIGHT:  current = combine(current, sibling)
    sibling on the LEFT:   current = combine(sibling, current)

The dense tree, the sparse tree and the mountain range differ only in how
they derive the path; all of them verify through check_path().

Sides derived from an index use the least-significant bit at the bottom:
bit i of the index is 1 when the node is a right child at level i, in
which case its sibling sits on the LEFT.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from merklekit.schemas.verification import VerificationResult


logger = logging.getLogger(__name__)

CombineFn = Callable[[bytes, bytes], bytes]


class Direction(str, Enum):
    """Side on which a sibling hash sits relative to the running hash."""
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class ProofStep:
    """
    One level of a proof path.

    Attributes:
        sibling: Hash of the sibling node at this level
        direction: Side the sibling sits on
    """
    sibling: bytes
    direction: Direction

    @property
    def is_left_sibling(self) -> bool:
        return self.direction is Direction.LEFT


def fold_path(start: bytes, steps: Sequence[ProofStep], combine: CombineFn) -> bytes:
    """
    Recompute a root from a starting hash and an ordered list of steps.

    Args:
        start: Leaf hash (or subtree root) the path starts from
        steps: Steps ordered bottom to top
        combine: Parent hash function, e.g. HashEngine.combine

    Returns:
        The recomputed root
    """
    current = start
    for step in steps:
        if step.direction is Direction.LEFT:
            current = combine(step.sibling, current)
        else:
            current = combine(current, step.sibling)
    return current


def path_directions(index: int, length: int) -> list[Direction]:
    """
    Sibling sides for the node at `index`, one per level, bottom to top.

    Example:
        >>> path_directions(2, 2)
        [<Direction.RIGHT: 'right'>, <Direction.LEFT: 'left'>]
    """
    return [
        Direction.LEFT if (index >> level) & 1 else Direction.RIGHT
        for level in range(length)
    ]


def _is_hash(value: object, digest_size: int) -> bool:
    return isinstance(value, (bytes, bytearray)) and len(value) == digest_size


def check_path_shape(
    start: object,
    steps: object,
    *,
    digest_size: int,
    expected_length: int | None = None,
    expected_directions: Sequence[Direction] | None = None,
) -> VerificationResult | None:
    """
    Validate a path structurally without hashing anything.

    Returns:
        A failed VerificationResult describing the first problem found,
        or None when the path is well formed.
    """
    if expected_directions is not None:
        expected_length = len(expected_directions)
    if not _is_hash(start, digest_size):
        return VerificationResult.shape_error(
            f"Starting hash must be {digest_size} bytes",
        )
    if not isinstance(steps, (list, tuple)):
        return VerificationResult.shape_error(
            "Proof steps must be a sequence",
            details={"type": type(steps).__name__},
        )
    if expected_length is not None and len(steps) != expected_length:
        return VerificationResult.shape_error(
            f"Proof has {len(steps)} steps, expected {expected_length}",
            details={"length": len(steps), "expected_length": expected_length},
        )
    for level, step in enumerate(steps):
        if not isinstance(step, ProofStep):
            return VerificationResult.shape_error(
                f"Step {level} is not a ProofStep",
                details={"level": level, "type": type(step).__name__},
            )
        if not _is_hash(step.sibling, digest_size):
            return VerificationResult.shape_error(
                f"Sibling at level {level} must be {digest_size} bytes",
                details={"level": level},
            )
        if not isinstance(step.direction, Direction):
            return VerificationResult.shape_error(
                f"Step {level} has no valid direction",
                details={"level": level},
            )
        if expected_directions is not None and step.direction is not expected_directions[level]:
            return VerificationResult.shape_error(
                f"Sibling side at level {level} does not match the claimed position",
                details={
                    "level": level,
                    "direction": step.direction.value,
                    "expected": expected_directions[level].value,
                },
            )
    return None


def check_path(
    start: bytes,
    steps: Sequence[ProofStep],
    root: bytes,
    combine: CombineFn,
    *,
    digest_size: int,
    expected_length: int | None = None,
    expected_directions: Sequence[Direction] | None = None,
) -> VerificationResult:
    """
    Check a proof path against a trusted root.

    Shape is validated first (no hashing on malformed input); a well-formed
    path is then folded and compared byte-exactly to `root`. Never raises
    on untrusted input.
    """
    if not _is_hash(root, digest_size):
        return VerificationResult.shape_error(f"Root must be {digest_size} bytes")

    shape_failure = check_path_shape(
        start,
        steps,
        digest_size=digest_size,
        expected_length=expected_length,
        expected_directions=expected_directions,
    )
    if shape_failure is not None:
        logger.debug(f"proof rejected: {shape_failure.message}")
        return shape_failure

    computed = fold_path(bytes(start), steps, combine)
    if computed != bytes(root):
        logger.debug("proof rejected: recomputed root mismatch")
        return VerificationResult.mismatch(
            details={"computed_root": computed.hex(), "root": bytes(root).hex()},
        )
    return VerificationResult.passed()


def verify_path(
    start: bytes,
    steps: Sequence[ProofStep],
    root: bytes,
    combine: CombineFn,
    *,
    digest_size: int,
    expected_length: int | None = None,
    expected_directions: Sequence[Direction] | None = None,
) -> bool:
    """Boolean form of check_path()."""
    return check_path(
        start,
        steps,
        root,
        combine,
        digest_size=digest_size,
        expected_length=expected_length,
        expected_directions=expected_directions,
    ).ok


__all__ = [
    "CombineFn",
    "Direction",
    "ProofStep",
    "fold_path",
    "path_directions",
    "check_path_shape",
    "check_path",
    "verify_path",
]
