"""
Ledger Exceptions

Stores raise these internally and convert them into OperationResult
failures at their public boundary. None of them is fatal.
"""

from typing import Optional

from ledger_core.models.results import FailureKind, OperationResult, ValidationIssue


class LedgerError(Exception):
    """Base exception for refused ledger operations."""

    failure = FailureKind.INVALID

    def to_result(self) -> OperationResult:
        return OperationResult.fail(self.failure, str(self))


class DuplicateNameError(LedgerError):
    """A category or subcategory with this name already exists."""

    failure = FailureKind.DUPLICATE_NAME

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A category or subcategory named '{name}' already exists")


class HasChildrenError(LedgerError):
    """The category still owns subcategories or child categories."""

    failure = FailureKind.HAS_CHILDREN

    def __init__(self, category_name: str, children: list[str], action: str):
        self.category_name = category_name
        self.children = children
        super().__init__(
            f"Cannot {action} '{category_name}': it still has subcategories or "
            f"child categories ({', '.join(children)})"
        )

    def to_result(self) -> OperationResult:
        return OperationResult.fail(self.failure, str(self), blocking_children=self.children)


class CategoryNotFoundError(LedgerError):
    """No category or subcategory matches the reference."""

    failure = FailureKind.CATEGORY_NOT_FOUND

    def __init__(self, reference: object):
        self.reference = reference
        super().__init__(f"Category not found: {reference}")


class ProtectedCategoryError(LedgerError):
    """Reserved categories cannot be edited or deleted."""

    failure = FailureKind.PROTECTED


class InvalidOperationError(LedgerError):
    """The request is structurally invalid (empty name, depth, bad entry)."""

    failure = FailureKind.INVALID

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)

    def to_result(self) -> OperationResult:
        return OperationResult.fail(self.failure, str(self), issues=self.issues)


class TransactionNotFoundError(LedgerError):
    failure = FailureKind.TRANSACTION_NOT_FOUND


class BudgetNotFoundError(LedgerError):
    failure = FailureKind.BUDGET_NOT_FOUND


class UnsupportedCurrencyError(LedgerError):
    """No exchange rate is known for the currency."""

    failure = FailureKind.INVALID


class PersistenceError(LedgerError):
    """The storage collaborator failed; the in-memory change was rolled back."""

    failure = FailureKind.IO_ERROR
