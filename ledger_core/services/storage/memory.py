"""
In-Memory Storage Implementation

Keeps everything in dictionaries. Models are deep-copied on the way in and
out, so callers can never mutate stored state by accident. This is what the
test suite and local experiments run against.
"""

from uuid import UUID

from ledger_core.models.budget import Budget
from ledger_core.models.category import Category
from ledger_core.models.transaction import Transaction
from ledger_core.services.storage.interface import (
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dictionary-backed implementation of the storage interface."""

    def __init__(self):
        self._categories: list[Category] = []
        self._transactions: dict[UUID, Transaction] = {}
        self._budgets: dict[UUID, Budget] = {}

    def load_categories(self) -> list[Category]:
        return [category.model_copy(deep=True) for category in self._categories]

    def save_categories(self, categories: list[Category]) -> None:
        self._categories = [category.model_copy(deep=True) for category in categories]

    def load_transactions(self) -> list[Transaction]:
        return [txn.model_copy(deep=True) for txn in self._transactions.values()]

    def save_transaction(self, transaction: Transaction) -> None:
        self._transactions[transaction.id] = transaction.model_copy(deep=True)

    def delete_transaction(self, transaction_id: UUID) -> None:
        if transaction_id not in self._transactions:
            raise NotFoundError(f"Transaction not stored: {transaction_id}")
        del self._transactions[transaction_id]

    def load_budgets(self) -> list[Budget]:
        return [budget.model_copy(deep=True) for budget in self._budgets.values()]

    def save_budget(self, budget: Budget) -> None:
        self._budgets[budget.id] = budget.model_copy(deep=True)

    def delete_budget(self, budget_id: UUID) -> None:
        if budget_id not in self._budgets:
            raise NotFoundError(f"Budget not stored: {budget_id}")
        del self._budgets[budget_id]
