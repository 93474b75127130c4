"""
Tests for Ledger Core models

Test strategy:
1. Unit tests for individual components (models, validators, stores)
2. Integration tests for cross-store reactions (in-memory collaborators)
3. No real API calls in tests
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from ledger_core.models.budget import Budget, BudgetPeriod, PeriodRange
from ledger_core.models.category import (
    NO_CATEGORY_EXPENSE_ID,
    NO_CATEGORY_INCOME_ID,
    NO_PARENT_EXPENSE_ID,
    NO_PARENT_INCOME_ID,
    Category,
    CategoryLookup,
    CategoryType,
    Subcategory,
    reserved_categories,
)
from ledger_core.models.currency import Currency
from ledger_core.models.events import ChangeEventBuilder, ChangeEventType
from ledger_core.models.results import FailureKind, OperationResult, ValidationIssue, ValidationResult
from ledger_core.models.transaction import ReceiptAnalysis, Transaction


class TestCategoryModels:
    """Tests for category-related Pydantic models."""

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        category = Category(name="  Coffee  ", parent_id=NO_PARENT_EXPENSE_ID)
        assert category.name == "Coffee"

    def test_category_rejects_empty_name(self):
        with pytest.raises(ValueError):
            Category(name="   ")

    def test_category_type_sign(self):
        assert CategoryType.INCOME.sign == 1
        assert CategoryType.EXPENSE.sign == -1

    def test_type_for_amount_treats_zero_as_income(self):
        assert CategoryType.for_amount(0.0) == CategoryType.INCOME
        assert CategoryType.for_amount(-0.01) == CategoryType.EXPENSE

    def test_reserved_rows(self):
        """Containers are roots; sentinels hang off the container of their type."""
        rows = {row.id: row for row in reserved_categories()}

        assert rows[NO_PARENT_INCOME_ID].parent_id is None
        assert rows[NO_PARENT_INCOME_ID].is_container
        assert rows[NO_CATEGORY_INCOME_ID].parent_id == NO_PARENT_INCOME_ID
        assert rows[NO_CATEGORY_EXPENSE_ID].parent_id == NO_PARENT_EXPENSE_ID
        assert rows[NO_CATEGORY_EXPENSE_ID].is_sentinel
        assert all(row.is_reserved and row.is_built_in for row in rows.values())

    def test_top_level_means_parented_to_container(self):
        top = Category(name="Food", parent_id=NO_PARENT_EXPENSE_ID)
        child = Category(name="Groceries", parent_id=top.id)
        assert top.is_top_level
        assert not child.is_top_level

    def test_lookup_subcategory_type_wins(self):
        """A subcategory's own type decides the sign, not its parent's."""
        parent = Category(name="Refunds", type=CategoryType.INCOME, parent_id=NO_PARENT_INCOME_ID)
        sub = Subcategory(name="Chargebacks", type=CategoryType.EXPENSE)
        lookup = CategoryLookup(subcategory=sub, parent=parent)

        assert lookup.found
        assert lookup.is_subcategory
        assert lookup.type == CategoryType.EXPENSE
        assert lookup.id == sub.id
        assert lookup.name == "Chargebacks"

    def test_empty_lookup(self):
        lookup = CategoryLookup()
        assert not lookup.found
        assert lookup.id is None
        assert lookup.type is None


class TestTransactionModels:
    """Tests for transaction models."""

    def test_original_amount_must_not_be_negative(self):
        with pytest.raises(ValueError):
            Transaction(
                wallet_id=uuid4(),
                category_id=uuid4(),
                date=datetime(2026, 10, 1),
                original_amount=-5,
                original_currency=Currency.PHP,
                amount=-5,
                primary_currency=Currency.PHP,
            )

    def test_income_expense_flags(self):
        txn = Transaction(
            wallet_id=uuid4(),
            category_id=uuid4(),
            date=datetime(2026, 10, 1),
            original_amount=5,
            original_currency=Currency.PHP,
            amount=-5,
            primary_currency=Currency.PHP,
        )
        assert txn.is_expense
        assert not txn.is_income
        assert txn.exchange_rate == 1.0

    def test_aware_date_stored_as_local_naive(self):
        moment = datetime(2026, 10, 14, 12, 0, tzinfo=timezone(timedelta(hours=8)))
        txn = Transaction(
            wallet_id=uuid4(),
            category_id=uuid4(),
            date=moment,
            original_amount=5,
            original_currency=Currency.PHP,
            amount=-5,
            primary_currency=Currency.PHP,
        )
        assert txn.date.tzinfo is None
        assert txn.date == moment.astimezone().replace(tzinfo=None)

    def test_receipt_date_normalized(self):
        analysis = ReceiptAnalysis(amount=10, currency=Currency.USD, date=datetime(2026, 10, 1, tzinfo=timezone.utc))
        assert analysis.date.tzinfo is None

    def test_receipt_confidence_bounds(self):
        with pytest.raises(ValueError):
            ReceiptAnalysis(amount=10, currency=Currency.USD, date=datetime(2026, 10, 1), confidence=1.5)


class TestBudgetModels:
    """Tests for budget models."""

    def test_budget_defaults(self):
        budget = Budget(wallet_id=uuid4(), category_id=uuid4(), amount=5000, currency=Currency.PHP)
        assert budget.period == BudgetPeriod.MONTHLY
        assert budget.apply_to_all_periods
        assert budget.is_active

    def test_period_range_is_half_open(self):
        start = datetime(2026, 10, 1)
        span = PeriodRange(start=start, end=start + timedelta(days=1))
        assert start in span
        assert start + timedelta(hours=23, minutes=59) in span
        assert start + timedelta(days=1) not in span

    def test_period_range_rejects_inverted_bounds(self):
        with pytest.raises(ValueError):
            PeriodRange(start=datetime(2026, 10, 2), end=datetime(2026, 10, 1))


class TestResultModels:
    """Tests for operation and validation results."""

    def test_operation_result_truthiness(self):
        assert OperationResult.ok("value")
        assert not OperationResult.fail(FailureKind.HAS_CHILDREN, "blocked", blocking_children=["A"])

    def test_failure_carries_children(self):
        result = OperationResult.fail(FailureKind.HAS_CHILDREN, "blocked", blocking_children=["A", "B"])
        assert result.failure == FailureKind.HAS_CHILDREN
        assert result.blocking_children == ["A", "B"]
        assert result.value is None

    def test_validation_issue_severity_pattern(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")

    def test_validation_result_error_count(self):
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(field="a", issue_type="missing", message="m", severity="error"),
                ValidationIssue(field="b", issue_type="odd", message="m", severity="warning"),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1


class TestChangeEvents:
    """Tests for change event models."""

    def test_category_updated_flags(self):
        event = ChangeEventBuilder.category_updated(uuid4(), "Cafe", "Coffee", "expense", "income")
        assert event.event_type == ChangeEventType.CATEGORY_UPDATED
        assert event.details["renamed"] is True
        assert event.details["type_changed"] is True
        assert event.details["promoted_from_subcategory"] is False

    def test_to_log_dict(self):
        category_id = uuid4()
        event = ChangeEventBuilder.category_added(category_id, "Coffee", "expense")
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "category_added"
        assert log_dict["entity_id"] == str(category_id)
        assert log_dict["details"] == {"name": "Coffee", "type": "expense"}

    def test_secondary_currency_cleared(self):
        event = ChangeEventBuilder.secondary_currency_changed("USD", None)
        assert "none" in event.description


class TestCurrency:

    def test_symbols(self):
        assert Currency.PHP.symbol == "₱"
        assert Currency.EUR.symbol == "€"
        assert Currency.USD.display_name == "$ - USD"

    def test_every_currency_has_a_symbol(self):
        assert all(currency.symbol for currency in Currency)


class TestStorageErrors:

    def test_error_family(self):
        from ledger_core.services import storage

        assert issubclass(storage.NotFoundError, storage.StorageError)
        # The builtin ConnectionError is not shadowed
        assert not hasattr(storage, "ConnectionError")
