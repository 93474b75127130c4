"""
Ledger Core Orchestrator

Wires the components together in dependency order:

    ChangeBus
      -> CurrencyConverter, CategoryStore       (leaves)
      -> TransactionLedger                      (categories + converter)
      -> BudgetEngine                           (all of the above)

DESIGN DECISION: Subscription order follows construction order, so the
ledger reacts to a category change before the budget engine does. A ledger
persistence failure therefore stops the broadcast before any budget state
is touched, and the category store rolls the whole change back.
"""

from typing import Optional

import structlog

from ledger_core.budgets.engine import BudgetEngine
from ledger_core.categories.store import CategoryStore
from ledger_core.config.settings import Settings, get_settings
from ledger_core.currency.converter import CurrencyConverter
from ledger_core.currency.refresher import RateRefresher
from ledger_core.events.bus import ChangeBus, configure_logging
from ledger_core.ledger.transactions import TransactionLedger
from ledger_core.ledger.validator import TransactionValidator
from ledger_core.models.results import OperationResult
from ledger_core.services.rates.interface import RateSourceInterface
from ledger_core.services.rates.static import StaticRateSource
from ledger_core.services.storage.interface import LedgerStorageInterface
from ledger_core.services.storage.memory import InMemoryLedgerStorage


class LedgerCore:
    """
    The assembled ledger core.

    Usage:
        core = LedgerCore(storage=my_storage, rate_source=my_rates)
        core.load()
        core.categories.add_category("Coffee", "☕")
        core.ledger.create_transaction(wallet_id, "Coffee", 500, Currency.PHP, now)
    """

    def __init__(
        self,
        storage: Optional[LedgerStorageInterface] = None,
        rate_source: Optional[RateSourceInterface] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        app_settings = settings.app
        currency_settings = settings.currency

        configure_logging(json_logs=app_settings.log_json, level=app_settings.log_level)
        self._logger = structlog.get_logger(__name__)

        self.bus = ChangeBus()
        self.storage = storage or InMemoryLedgerStorage()
        self.rate_source = rate_source or StaticRateSource()

        self.converter = CurrencyConverter(self.rate_source, self.bus, currency_settings)
        self.categories = CategoryStore(
            self.storage,
            self.bus,
            seed_defaults=app_settings.seed_default_categories,
        )
        self.ledger = TransactionLedger(
            self.storage,
            self.bus,
            self.categories,
            self.converter,
            TransactionValidator(app_settings),
        )
        self.budgets = BudgetEngine(
            self.storage,
            self.bus,
            self.categories,
            self.ledger,
            self.converter,
            settings.budget,
        )
        self.refresher = RateRefresher(self.converter, self.rate_source, currency_settings)

        self._logger.info(
            "ledger_core_initialized",
            environment=app_settings.app_environment,
            primary_currency=self.converter.primary_currency.value,
            storage=type(self.storage).__name__,
        )

    def load(self) -> dict[str, OperationResult]:
        """
        Load categories, then transactions, then budgets.

        Stops at the first failure; later components keep their empty state.
        """
        results: dict[str, OperationResult] = {}
        for name, component in (
            ("categories", self.categories),
            ("transactions", self.ledger),
            ("budgets", self.budgets),
        ):
            result = component.load()
            results[name] = result
            if not result:
                self._logger.error("ledger_core_load_failed", component=name, reason=result.message)
                break
        return results


def create_ledger_core(
    storage: Optional[LedgerStorageInterface] = None,
    rate_source: Optional[RateSourceInterface] = None,
) -> LedgerCore:
    """
    Factory function: build the core and load it from storage.

    Args:
        storage: Persistence collaborator. Defaults to in-memory storage.
        rate_source: Rate collaborator. Defaults to the static table.
    """
    core = LedgerCore(storage=storage, rate_source=rate_source)
    core.load()
    return core
