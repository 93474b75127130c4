"""
Data Models Package

This package contains all Pydantic models used by the ledger core.
All data flowing between the stores must conform to these schemas.
"""

from ledger_core.models.budget import (
    Budget,
    BudgetPeriod,
    BudgetState,
    BudgetStatus,
    PeriodRange,
)
from ledger_core.models.category import (
    CONTAINER_IDS,
    NO_CATEGORY_EXPENSE_ID,
    NO_CATEGORY_INCOME_ID,
    NO_PARENT_EXPENSE_ID,
    NO_PARENT_INCOME_ID,
    RESERVED_IDS,
    SENTINEL_IDS,
    Category,
    CategoryGroup,
    CategoryLookup,
    CategoryType,
    Subcategory,
)
from ledger_core.models.currency import Currency
from ledger_core.models.events import (
    ChangeEvent,
    ChangeEventBuilder,
    ChangeEventType,
)
from ledger_core.models.results import (
    FailureKind,
    OperationResult,
    ValidationIssue,
    ValidationResult,
)
from ledger_core.models.transaction import (
    ReceiptAnalysis,
    ReceiptItem,
    Transaction,
    TransactionSource,
)

__all__ = [
    # Budget models
    "Budget",
    "BudgetPeriod",
    "BudgetState",
    "BudgetStatus",
    "PeriodRange",
    # Category models
    "CONTAINER_IDS",
    "NO_CATEGORY_EXPENSE_ID",
    "NO_CATEGORY_INCOME_ID",
    "NO_PARENT_EXPENSE_ID",
    "NO_PARENT_INCOME_ID",
    "RESERVED_IDS",
    "SENTINEL_IDS",
    "Category",
    "CategoryGroup",
    "CategoryLookup",
    "CategoryType",
    "Subcategory",
    # Currency
    "Currency",
    # Change events
    "ChangeEvent",
    "ChangeEventBuilder",
    "ChangeEventType",
    # Results
    "FailureKind",
    "OperationResult",
    "ValidationIssue",
    "ValidationResult",
    # Transaction models
    "ReceiptAnalysis",
    "ReceiptItem",
    "Transaction",
    "TransactionSource",
]
