"""
Shared fixtures for the ledger core tests.

Everything runs against in-memory collaborators: InMemoryLedgerStorage for
persistence and StaticRateSource for rates. No network, no files.
"""

from datetime import datetime
from uuid import uuid4

import pytest

from ledger_core.budgets.engine import BudgetEngine
from ledger_core.categories.store import CategoryStore
from ledger_core.config.settings import AppSettings, BudgetSettings, CurrencySettings
from ledger_core.currency.converter import CurrencyConverter
from ledger_core.events.bus import ChangeBus
from ledger_core.ledger.transactions import TransactionLedger
from ledger_core.ledger.validator import TransactionValidator
from ledger_core.models.currency import Currency
from ledger_core.services.rates.interface import RateSourceError, RateSourceInterface
from ledger_core.services.rates.static import StaticRateSource
from ledger_core.services.storage.interface import StorageError
from ledger_core.services.storage.memory import InMemoryLedgerStorage


class FailingStorage(InMemoryLedgerStorage):
    """In-memory storage whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_categories = False
        self.fail_transactions = False
        self.fail_budgets = False

    def save_categories(self, categories):
        if self.fail_categories:
            raise StorageError("disk full")
        super().save_categories(categories)

    def save_transaction(self, transaction):
        if self.fail_transactions:
            raise StorageError("disk full")
        super().save_transaction(transaction)

    def delete_transaction(self, transaction_id):
        if self.fail_transactions:
            raise StorageError("disk full")
        super().delete_transaction(transaction_id)

    def save_budget(self, budget):
        if self.fail_budgets:
            raise StorageError("disk full")
        super().save_budget(budget)

    def delete_budget(self, budget_id):
        if self.fail_budgets:
            raise StorageError("disk full")
        super().delete_budget(budget_id)


class FlakyRateSource(RateSourceInterface):
    """Fails a fixed number of times, then serves the given table."""

    def __init__(self, failures: int, rates: dict[str, float]):
        self.failures = failures
        self.rates = rates
        self.calls = 0

    def fetch_rates(self, base_currency: Currency) -> dict[str, float]:
        self.calls += 1
        if self.calls <= self.failures:
            raise RateSourceError("rate API unavailable")
        return dict(self.rates)


@pytest.fixture
def bus():
    return ChangeBus()


@pytest.fixture
def storage():
    return FailingStorage()


@pytest.fixture
def currency_settings():
    return CurrencySettings(
        primary_currency=Currency.PHP,
        secondary_currency=None,
        refresh_max_attempts=3,
        refresh_backoff_min_seconds=0.0,
        refresh_backoff_max_seconds=0.0,
    )


@pytest.fixture
def app_settings():
    return AppSettings(seed_default_categories=False)


@pytest.fixture
def converter(bus, currency_settings):
    return CurrencyConverter(StaticRateSource(), bus, currency_settings)


@pytest.fixture
def store(storage, bus):
    return CategoryStore(storage, bus)


@pytest.fixture
def ledger(storage, bus, store, converter, app_settings):
    return TransactionLedger(storage, bus, store, converter, TransactionValidator(app_settings))


@pytest.fixture
def engine(storage, bus, store, ledger, converter):
    return BudgetEngine(storage, bus, store, ledger, converter, BudgetSettings(warning_threshold=0.5))


@pytest.fixture
def wallet_id():
    return uuid4()


@pytest.fixture
def coffee(store):
    """An expense category 'Coffee' attached to the expense container."""
    return store.add_category("Coffee", "☕").value


@pytest.fixture
def salary(store):
    return store.add_category("Salary", "💼", target_type=None, parent_category="No Parent (Income)").value


@pytest.fixture
def october_day():
    """Wednesday, 14 October 2026."""
    return datetime(2026, 10, 14, 9, 30)
