"""
Module 01 - Schemas & Errors
File: __init__.py

Purpose: Export the error taxonomy and verification results used by every
tree variant.
"""

# Error models and exceptions
from .errors import (
    ConfigurationError,
    EmptyInputError,
    ErrorCodes,
    IndexOutOfRange,
    InvalidProofShape,
    KeyOutOfRange,
    MerkleError,
    MerkleKitException,
    VerificationFailed,
)

# Verification results
from .verification import VerificationResult


__all__ = [
    # Errors
    "ConfigurationError",
    "EmptyInputError",
    "ErrorCodes",
    "IndexOutOfRange",
    "InvalidProofShape",
    "KeyOutOfRange",
    "MerkleError",
    "MerkleKitException",
    "VerificationFailed",
    # Verification
    "VerificationResult",
]
