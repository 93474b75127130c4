"""
Operation and Validation Result Models

Refused edits are ordinary outcomes, not faults. Every public mutation
returns an OperationResult; callers branch on `success` / `failure`.
"""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why a mutation was refused."""
    DUPLICATE_NAME = "duplicate_name"
    HAS_CHILDREN = "has_children"
    CATEGORY_NOT_FOUND = "category_not_found"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    BUDGET_NOT_FOUND = "budget_not_found"
    PROTECTED = "protected"
    INVALID = "invalid"
    IO_ERROR = "io_error"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating a transaction entry."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")


class OperationResult(BaseModel, Generic[T]):
    """
    Outcome of a mutating operation.

    On success `value` holds the affected entity as it is after the change.
    On failure the store is exactly as it was before the call.
    """

    success: bool
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    message: str = ""
    blocking_children: list[str] = Field(
        default_factory=list,
        description="Names of children that block a reparent/delete"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, value: Optional[T] = None, message: str = "", issues: Optional[list[ValidationIssue]] = None) -> "OperationResult[T]":
        return cls(success=True, value=value, message=message, issues=issues or [])

    @classmethod
    def fail(
        cls,
        failure: FailureKind,
        message: str,
        blocking_children: Optional[list[str]] = None,
        issues: Optional[list[ValidationIssue]] = None,
    ) -> "OperationResult[T]":
        return cls(
            success=False,
            failure=failure,
            message=message,
            blocking_children=blocking_children or [],
            issues=issues or [],
        )
