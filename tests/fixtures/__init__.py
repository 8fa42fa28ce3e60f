"""
Test fixtures package for merklekit tests.

Usage:
    from fixtures import make_leaves, flip_bit

    def test_something():
        leaves = make_leaves(5)
"""

from .common import (
    flip_bit,
    leaf,
    make_leaves,
    make_mountain_range,
    make_sparse_tree,
    value,
)

__all__ = [
    "flip_bit",
    "leaf",
    "make_leaves",
    "make_mountain_range",
    "make_sparse_tree",
    "value",
]
