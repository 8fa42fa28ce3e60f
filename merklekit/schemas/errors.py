"""
Module 01 - Schemas & Errors
File: errors.py

Purpose: Standard error taxonomy for tree construction, proof generation
and proof verification. Defines both Pydantic models for structured error
communication and Python exceptions for control flow.

Construction-time and shape errors are raised immediately to the caller.
Verification of untrusted proofs never raises: it reports a
VerificationResult (see verification.py) that can be turned into one of
the exceptions below on demand.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across merklekit."""

    # Construction Errors
    EMPTY_INPUT = "EMPTY_INPUT"
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
    KEY_OUT_OF_RANGE = "KEY_OUT_OF_RANGE"

    # Verification Errors
    INVALID_PROOF_SHAPE = "INVALID_PROOF_SHAPE"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class MerkleError(BaseModel):
    """
    Base error model for structured error communication.

    Used to pass errors around without raising, e.g. when a batch of
    proofs is checked and the caller wants every failure reported.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.INVALID_PROOF_SHAPE],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )

    def to_exception(self) -> "MerkleKitException":
        """Convert this error model to the matching exception."""
        exc_type = _EXCEPTIONS_BY_CODE.get(self.code)
        if exc_type is None:
            return MerkleKitException(
                message=self.message,
                code=self.code,
                details=self.details,
            )
        return exc_type(message=self.message, details=self.details)


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class MerkleKitException(Exception):
    """
    Base exception for all merklekit errors.

    Carries structured error information and converts to/from
    MerkleError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "MERKLEKIT_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_error_model(self) -> MerkleError:
        """Convert this exception to a MerkleError model."""
        return MerkleError(
            code=self.code,
            message=self.message,
            details=self.details,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class EmptyInputError(MerkleKitException, ValueError):
    """Raised when a tree is built from zero leaves."""

    def __init__(
        self,
        message: str = "Cannot build a Merkle tree from an empty leaf sequence",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.EMPTY_INPUT,
            details=details,
        )


class IndexOutOfRange(MerkleKitException, IndexError):
    """Raised when a proof is requested for a leaf that does not exist."""

    def __init__(
        self,
        message: str,
        index: int | None = None,
        leaf_count: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if index is not None:
            full_details["index"] = index
        if leaf_count is not None:
            full_details["leaf_count"] = leaf_count
        super().__init__(
            message=message,
            code=ErrorCodes.INDEX_OUT_OF_RANGE,
            details=full_details,
        )


class KeyOutOfRange(MerkleKitException, ValueError):
    """Raised when a sparse tree key does not have exactly `depth` bits."""

    def __init__(
        self,
        message: str,
        depth: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if depth is not None:
            full_details["depth"] = depth
        super().__init__(
            message=message,
            code=ErrorCodes.KEY_OUT_OF_RANGE,
            details=full_details,
        )


class InvalidProofShape(MerkleKitException, ValueError):
    """Raised when a proof is structurally wrong for the tree it claims."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_PROOF_SHAPE,
            details=details,
        )


class VerificationFailed(MerkleKitException):
    """Raised when a recomputed root differs from the trusted root."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.VERIFICATION_FAILED,
            details=details,
        )


class ConfigurationError(MerkleKitException):
    """Exception raised when runtime configuration is invalid."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if setting:
            full_details["setting"] = setting
        super().__init__(
            message=message,
            code=ErrorCodes.CONFIGURATION_ERROR,
            details=full_details,
        )


_EXCEPTIONS_BY_CODE: dict[str, type[MerkleKitException]] = {
    ErrorCodes.EMPTY_INPUT: EmptyInputError,
    ErrorCodes.INDEX_OUT_OF_RANGE: IndexOutOfRange,
    ErrorCodes.KEY_OUT_OF_RANGE: KeyOutOfRange,
    ErrorCodes.INVALID_PROOF_SHAPE: InvalidProofShape,
    ErrorCodes.VERIFICATION_FAILED: VerificationFailed,
    ErrorCodes.CONFIGURATION_ERROR: ConfigurationError,
}
