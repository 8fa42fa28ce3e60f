"""
Module 06 - Merkle Mountain Range

Append-only log commitment with proofs bound to the log length at issuance.
"""
from .mountain_range import (
    MerkleMountainRange,
    MountainRangeProof,
    bag_peaks,
    check_mountain_proof,
    count_hash,
    empty_range_root,
    mountain_root,
    peak_layout,
    verify_mountain_proof,
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
