"""
Module 03 - Proof Paths

Shared proof-step types and the fold every verifier uses.
"""
from .path import (
    CombineFn,
    Direction,
    ProofStep,
    check_path,
    check_path_shape,
    fold_path,
    path_directions,
    verify_path,
)

__all__ = [
    "CombineFn",
    "Direction",
    "ProofStep",
    "check_path",
    "check_path_shape",
    "fold_path",
    "path_directions",
    "verify_path",
]
