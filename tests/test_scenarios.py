"""
End-to-end tests against a fully wired LedgerCore
"""

import pytest
from datetime import datetime
from uuid import uuid4

from ledger_core.models.budget import BudgetPeriod
from ledger_core.models.category import (
    NO_CATEGORY_EXPENSE_ID,
    NO_CATEGORY_INCOME_ID,
    NO_PARENT_EXPENSE_ID,
    CategoryType,
)
from ledger_core.models.currency import Currency
from ledger_core.models.results import FailureKind
from ledger_core.models.transaction import Transaction
from ledger_core.orchestrator import LedgerCore, create_ledger_core

from tests.conftest import FailingStorage


@pytest.fixture
def core():
    core = LedgerCore(storage=FailingStorage())
    core.load()
    return core


@pytest.fixture
def now():
    return datetime.now().replace(microsecond=0)


class TestScenarios:

    def test_a_category_without_parent_lands_in_expense_container(self, core):
        core.categories.add_category("Coffee", "☕")

        coffee = core.categories.find_category("Coffee")

        assert coffee.type == CategoryType.EXPENSE
        assert coffee.parent_id == NO_PARENT_EXPENSE_ID
        assert "Coffee" in [c.name for c in core.categories.top_level(CategoryType.EXPENSE)]

    def test_b_expense_in_primary_currency(self, core, now):
        core.categories.add_category("Coffee", "☕")

        txn = core.ledger.create_transaction(uuid4(), "Coffee", 500, Currency.PHP, now).value

        assert txn.amount == -500.0
        assert txn.exchange_rate == 1.0

    def test_c_monthly_budget_projected_to_week(self, core):
        core.categories.add_category("Coffee", "☕")
        budget = core.budgets.add_budget(uuid4(), "Coffee", 5000, Currency.PHP, BudgetPeriod.MONTHLY).value

        weekly = core.budgets.period_estimates(budget)[BudgetPeriod.WEEKLY]

        assert weekly == pytest.approx(1150.46, abs=0.01)

    def test_d_spent_this_month(self, core, now):
        wallet = uuid4()
        core.categories.add_category("Coffee", "☕")
        budget = core.budgets.add_budget(wallet, "Coffee", 5000, Currency.PHP, BudgetPeriod.MONTHLY).value

        core.ledger.create_transaction(wallet, "Coffee", 300, Currency.PHP, now)
        core.ledger.create_transaction(wallet, "Coffee", 200, Currency.PHP, now)

        assert core.budgets.spent_amount(budget, BudgetPeriod.MONTHLY) == 500


class TestProperties:

    @pytest.mark.parametrize("parent, expected", [
        (None, CategoryType.EXPENSE),
        ("No Parent (Income)", CategoryType.INCOME),
        ("Salary", CategoryType.INCOME),
        ("Food", CategoryType.EXPENSE),
    ])
    def test_type_follows_attachment(self, core, parent, expected):
        core.categories.add_category("Fresh", "🆕", parent_category=parent)
        assert core.categories.find_category("Fresh").type == expected

    def test_name_clash_with_subcategory_is_case_insensitive(self, core):
        result = core.categories.add_category("GROCERIES")
        assert result.failure == FailureKind.DUPLICATE_NAME

    def test_children_block_delete_and_move_until_removed(self, core):
        core.categories.add_category("Hobbies", "🎨")
        core.categories.add_subcategory("Hobbies", "Paint", "🖌️")

        assert core.categories.delete_category("Hobbies").failure == FailureKind.HAS_CHILDREN
        moved = core.categories.update_category("Hobbies", "Hobbies", "🎨", parent_category="Food")
        assert moved.failure == FailureKind.HAS_CHILDREN
        assert moved.blocking_children == ["Paint"]

        core.categories.delete_subcategory("Paint")

        assert core.categories.update_category("Hobbies", "Hobbies", "🎨", parent_category="Food")
        assert core.categories.delete_category("Hobbies")

    def test_deleted_category_splits_by_sign(self, now):
        storage = FailingStorage()
        first = LedgerCore(storage=storage)
        first.load()
        wallet = uuid4()
        odd_jobs = first.categories.add_category("Odd Jobs", "🧰").value
        spent = first.ledger.create_transaction(wallet, "Odd Jobs", 40, Currency.PHP, now).value
        # A positive row under an expense category, as left behind by history
        refund = Transaction(
            wallet_id=wallet,
            category_id=odd_jobs.id,
            category_name=odd_jobs.name,
            date=now,
            original_amount=15,
            original_currency=Currency.PHP,
            amount=15,
            primary_currency=Currency.PHP,
        )
        storage.save_transaction(refund)

        core = LedgerCore(storage=storage)
        core.load()
        core.categories.delete_category("Odd Jobs")

        assert core.ledger.get_transaction(spent.id).category_id == NO_CATEGORY_EXPENSE_ID
        assert core.ledger.get_transaction(refund.id).category_id == NO_CATEGORY_INCOME_ID

    def test_edit_in_primary_currency_has_unit_rate(self, core, now):
        core.categories.add_category("Coffee", "☕")
        txn = core.ledger.create_transaction(uuid4(), "Coffee", 5, Currency.USD, now).value

        edited = core.ledger.edit_transaction(txn.id, original_amount=250, original_currency=Currency.PHP).value

        assert edited.amount == -250
        assert edited.exchange_rate == 1.0

    def test_new_primary_applies_to_new_entries_only(self, core, now):
        core.categories.add_category("Coffee", "☕")
        wallet = uuid4()
        before = core.ledger.create_transaction(wallet, "Coffee", 100, Currency.PHP, now).value

        core.converter.set_primary_currency(Currency.USD)
        after = core.ledger.create_transaction(wallet, "Coffee", 100, Currency.PHP, now).value

        assert core.ledger.get_transaction(before.id).primary_currency == Currency.PHP
        assert after.primary_currency == Currency.USD
        assert after.amount == pytest.approx(-100 / core.converter.get_exchange_rate(Currency.USD, Currency.PHP))


class TestLoading:

    def test_first_load_seeds_defaults(self, core):
        assert core.categories.find_category("Salary").type == CategoryType.INCOME
        assert core.categories.find_category("Food").type == CategoryType.EXPENSE
        assert core.categories.find_category_or_subcategory("Groceries").is_subcategory

    def test_load_reports_each_component(self):
        results = LedgerCore(storage=FailingStorage()).load()
        assert list(results) == ["categories", "transactions", "budgets"]
        assert all(results.values())

    def test_load_stops_at_first_failure(self):
        storage = FailingStorage()
        storage.fail_categories = True

        results = LedgerCore(storage=storage).load()

        assert list(results) == ["categories"]
        assert results["categories"].failure == FailureKind.IO_ERROR

    def test_state_survives_restart(self, now):
        storage = FailingStorage()
        first = create_ledger_core(storage=storage)
        wallet = uuid4()
        first.categories.add_category("Coffee", "☕")
        txn = first.ledger.create_transaction(wallet, "Coffee", 120, Currency.PHP, now).value
        first.budgets.add_budget(wallet, "Coffee", 2000)

        second = create_ledger_core(storage=storage)

        assert second.categories.find_category("Coffee") is not None
        assert second.ledger.get_transaction(txn.id).amount == -120
        assert second.budgets.budget_for("Coffee", wallet).amount == 2000
