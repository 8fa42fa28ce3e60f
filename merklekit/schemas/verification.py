"""
Module 01 - Schemas & Errors
File: verification.py

Purpose: Standard result format for proof verification.

Verifying an untrusted proof has two distinct failure modes:
- the proof is structurally wrong (INVALID_PROOF_SHAPE), detected before
  any hashing, and
- the proof is well formed but recomputes to a different root
  (VERIFICATION_FAILED).

Both are "not verified". Neither is raised; callers that prefer
exceptions call raise_for_failure().
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorCodes, MerkleError


class VerificationResult(BaseModel):
    """Outcome of checking one proof against a trusted root."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ok: bool = Field(
        ...,
        description="Whether the proof verified",
    )
    code: str | None = Field(
        default=None,
        description="Error code when the proof did not verify",
    )
    message: str = Field(
        default="",
        description="Human-readable message describing the result",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional details about the result",
    )

    def __bool__(self) -> bool:
        return self.ok

    @property
    def is_shape_error(self) -> bool:
        """True if the proof was rejected before any hashing."""
        return self.code == ErrorCodes.INVALID_PROOF_SHAPE

    @property
    def is_mismatch(self) -> bool:
        """True if the recomputed root differed from the trusted root."""
        return self.code == ErrorCodes.VERIFICATION_FAILED

    @classmethod
    def passed(
        cls,
        message: str = "Proof verified",
        details: dict[str, Any] | None = None,
    ) -> "VerificationResult":
        """Create a passed result."""
        return cls(ok=True, message=message, details=details or {})

    @classmethod
    def shape_error(
        cls,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "VerificationResult":
        """Create a result for a structurally invalid proof."""
        return cls(
            ok=False,
            code=ErrorCodes.INVALID_PROOF_SHAPE,
            message=message,
            details=details or {},
        )

    @classmethod
    def mismatch(
        cls,
        message: str = "Recomputed root does not match trusted root",
        details: dict[str, Any] | None = None,
    ) -> "VerificationResult":
        """Create a result for a well-formed proof that recomputes a different root."""
        return cls(
            ok=False,
            code=ErrorCodes.VERIFICATION_FAILED,
            message=message,
            details=details or {},
        )

    def to_error_model(self) -> MerkleError | None:
        """Convert a failed result to a MerkleError model (None when passed)."""
        if self.ok:
            return None
        return MerkleError(
            code=self.code or ErrorCodes.VERIFICATION_FAILED,
            message=self.message,
            details=self.details,
        )

    def raise_for_failure(self) -> None:
        """
        Raise InvalidProofShape or VerificationFailed if the proof did not verify.

        Does nothing for a passed result.
        """
        error = self.to_error_model()
        if error is not None:
            raise error.to_exception()
