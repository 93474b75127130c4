"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for persistence.
This allows us to:
1. Plug the core into whatever store the host application syncs with
2. Use in-memory storage for testing
3. Keep the stores decoupled from any storage technology

The core treats every call as synchronous and total. A failure is raised
as a StorageError; the calling store rolls its in-memory change back and
reports an IO_ERROR result to its own caller.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from ledger_core.models.budget import Budget
from ledger_core.models.category import Category
from ledger_core.models.transaction import Transaction


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation (SQLite, a sync service, etc.)
    must implement these methods.
    """

    @abstractmethod
    def load_categories(self) -> list[Category]:
        """
        Load the full category taxonomy.

        Returns:
            All stored category rows (empty on first launch)
        """

    @abstractmethod
    def save_categories(self, categories: list[Category]) -> None:
        """
        Replace the stored taxonomy with `categories`.

        Raises:
            StorageError: If save fails
        """

    @abstractmethod
    def load_transactions(self) -> list[Transaction]:
        """Load every stored transaction."""

    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> None:
        """
        Insert or replace a transaction by id.

        Raises:
            StorageError: If save fails
        """

    @abstractmethod
    def delete_transaction(self, transaction_id: UUID) -> None:
        """
        Delete a transaction by id.

        Raises:
            StorageError: If delete fails
            NotFoundError: If the transaction is not stored
        """

    @abstractmethod
    def load_budgets(self) -> list[Budget]:
        """Load every stored budget."""

    @abstractmethod
    def save_budget(self, budget: Budget) -> None:
        """
        Insert or replace a budget by id.

        Raises:
            StorageError: If save fails
        """

    @abstractmethod
    def delete_budget(self, budget_id: UUID) -> None:
        """
        Delete a budget by id.

        Raises:
            StorageError: If delete fails
            NotFoundError: If the budget is not stored
        """


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass