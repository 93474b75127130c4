"""
Budget Engine

Answers "how much has been spent against this budget, in its currency, for
this calendar period".

PERIOD MATH:
- Calendar ranges are half-open [start, end): the day, the Monday-based
  week, the month or the year containing the reference date.
- Amounts move between periods by a fixed day-count ratio, so a budget's
  (amount, currency, period) is one rate of spend and every other period's
  figure is projected from it on demand.

SPENT AMOUNTS:
Expenses only, booked to the budget's category, one of its subcategories
or one of its child categories, converted from each transaction's primary
currency into the budget currency. Results are memoised and the memo is
dropped on every change event, so a stale figure is never served.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Union
from uuid import UUID

import structlog

from ledger_core.categories.store import CategoryRef, CategoryStore
from ledger_core.config.settings import BudgetSettings, get_settings
from ledger_core.currency.converter import CurrencyConverter
from ledger_core.errors import (
    BudgetNotFoundError,
    CategoryNotFoundError,
    InvalidOperationError,
    LedgerError,
    PersistenceError,
)
from ledger_core.events.bus import ChangeBus
from ledger_core.ledger.transactions import TransactionLedger
from ledger_core.models.budget import (
    Budget,
    BudgetPeriod,
    BudgetState,
    BudgetStatus,
    PeriodRange,
)
from ledger_core.models.category import CategoryType
from ledger_core.models.currency import Currency
from ledger_core.models.events import ChangeEvent, ChangeEventBuilder, ChangeEventType
from ledger_core.models.results import OperationResult
from ledger_core.models.transaction import Transaction, to_local_naive
from ledger_core.services.storage.interface import LedgerStorageInterface, StorageError

DAYS_PER_PERIOD: dict[BudgetPeriod, float] = {
    BudgetPeriod.DAILY: 1.0,
    BudgetPeriod.WEEKLY: 7.0,
    BudgetPeriod.MONTHLY: 30.44,
    BudgetPeriod.YEARLY: 365.25,
}


def period_range(period: BudgetPeriod, containing: Union[date, datetime]) -> PeriodRange:
    """The calendar interval of `period` that contains `containing`."""
    if not isinstance(containing, datetime):
        containing = datetime.combine(containing, time.min)
    containing = to_local_naive(containing)
    day = containing.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == BudgetPeriod.DAILY:
        return PeriodRange(start=day, end=day + timedelta(days=1))
    if period == BudgetPeriod.WEEKLY:
        start = day - timedelta(days=day.weekday())
        return PeriodRange(start=start, end=start + timedelta(days=7))
    if period == BudgetPeriod.MONTHLY:
        start = day.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return PeriodRange(start=start, end=end)
    start = day.replace(month=1, day=1)
    return PeriodRange(start=start, end=start.replace(year=start.year + 1))


def convert_amount(amount: float, from_period: BudgetPeriod, to_period: BudgetPeriod) -> float:
    """Scale an amount between periods by their day counts."""
    if from_period == to_period:
        return amount
    return amount / DAYS_PER_PERIOD[from_period] * DAYS_PER_PERIOD[to_period]


def period_label(period: BudgetPeriod, on_date: Union[date, datetime]) -> str:
    """
    Short display label for the period containing `on_date`.

    "Oct 14", "Oct 12 - Oct 18", "October 2026", "2026".
    """
    span = period_range(period, on_date)
    start = span.start
    if period == BudgetPeriod.DAILY:
        return f"{start:%b} {start.day}"
    if period == BudgetPeriod.WEEKLY:
        last = span.end - timedelta(days=1)
        return f"{start:%b} {start.day} - {last:%b} {last.day}"
    if period == BudgetPeriod.MONTHLY:
        return f"{start:%B %Y}"
    return f"{start:%Y}"


class BudgetEngine:
    """
    Budget CRUD plus period-normalised spend tracking.

    Usage:
        engine = BudgetEngine(storage, bus, store, ledger, converter)
        budget = engine.add_budget(wallet_id, "Coffee", 5000, Currency.PHP).value
        engine.spent_amount(budget, BudgetPeriod.MONTHLY)
        engine.budget_status(budget, BudgetPeriod.WEEKLY)
    """

    DAYS_PER_PERIOD = DAYS_PER_PERIOD

    def __init__(
        self,
        storage: LedgerStorageInterface,
        bus: ChangeBus,
        categories: CategoryStore,
        ledger: TransactionLedger,
        converter: CurrencyConverter,
        settings: Optional[BudgetSettings] = None,
    ):
        self._storage = storage
        self._bus = bus
        self._categories = categories
        self._ledger = ledger
        self._converter = converter
        self._settings = settings or get_settings().budget
        self._logger = structlog.get_logger(__name__)

        self._budgets: dict[UUID, Budget] = {}
        self._spent_cache: dict[tuple, float] = {}
        # Types of deleted categories, so orphaned budgets land on the right sentinel
        self._deleted_types: dict[UUID, CategoryType] = {}

        bus.subscribe(self._on_change)

    # =========================================================================
    # Period math
    # =========================================================================

    @staticmethod
    def period_range(period: BudgetPeriod, containing: Union[date, datetime]) -> PeriodRange:
        return period_range(period, containing)

    @staticmethod
    def convert_amount(amount: float, from_period: BudgetPeriod, to_period: BudgetPeriod) -> float:
        return convert_amount(amount, from_period, to_period)

    @staticmethod
    def period_label(period: BudgetPeriod, on_date: Union[date, datetime]) -> str:
        return period_label(period, on_date)

    @staticmethod
    def applies_to(budget: Budget, period: BudgetPeriod) -> bool:
        """A budget can be shown for `period` if it projects to every period or is stored in it."""
        return budget.apply_to_all_periods or budget.period == period

    def period_estimates(self, budget: Budget) -> dict[BudgetPeriod, float]:
        """The budget amount projected to every period."""
        return {period: convert_amount(budget.amount, budget.period, period) for period in BudgetPeriod}

    def equivalent_amount(self, budget: Budget, display_period: BudgetPeriod) -> float:
        return convert_amount(budget.amount, budget.period, display_period)

    # =========================================================================
    # Spend tracking
    # =========================================================================

    def get_transactions_for_budget(self, budget: Budget, span: PeriodRange) -> list[Transaction]:
        """Expenses in `span` booked to the budget's category tree in its wallet."""
        category_id = self._effective(budget).category_id
        matching_ids = self._categories.category_and_descendant_ids(category_id)
        return [
            txn
            for txn in self._ledger.transactions(budget.wallet_id)
            if txn.category_id in matching_ids and txn.date in span and txn.amount < 0
        ]

    def spent_amount(
        self,
        budget: Budget,
        display_period: Optional[BudgetPeriod] = None,
        on_date: Optional[Union[date, datetime]] = None,
    ) -> float:
        """
        Total spent in the budget currency over the display period's range.

        Defaults to the budget's own period around now.
        """
        display_period = display_period or budget.period
        span = period_range(display_period, on_date or datetime.now())
        key = (budget.id, budget.wallet_id, budget.category_id, budget.currency, display_period, span.start)
        if key in self._spent_cache:
            return self._spent_cache[key]

        spent = sum(
            abs(self._converter.convert_amount(txn.amount, txn.primary_currency, budget.currency))
            for txn in self.get_transactions_for_budget(budget, span)
        )
        self._spent_cache[key] = spent
        return spent

    def budget_status(
        self,
        budget: Budget,
        display_period: Optional[BudgetPeriod] = None,
        on_date: Optional[Union[date, datetime]] = None,
    ) -> Optional[BudgetStatus]:
        """
        Spent vs budgeted on the same period basis.

        Returns None when the budget does not apply to `display_period`.
        """
        display_period = display_period or budget.period
        if not self.applies_to(budget, display_period):
            return None

        on_date = on_date or datetime.now()
        spent = self.spent_amount(budget, display_period, on_date)
        budgeted = self.equivalent_amount(budget, display_period)
        progress = spent / budgeted if budgeted > 0 else 0.0

        if spent > budgeted:
            state = BudgetState.OVER
        elif progress >= self._settings.warning_threshold:
            state = BudgetState.WARNING
        else:
            state = BudgetState.ON_TRACK

        return BudgetStatus(
            budget_id=budget.id,
            display_period=display_period,
            range=period_range(display_period, on_date),
            currency=budget.currency,
            spent=spent,
            budgeted=budgeted,
            remaining=budgeted - spent,
            progress=progress,
            state=state,
            label=period_label(display_period, on_date),
        )

    # =========================================================================
    # CRUD
    # =========================================================================

    def load(self) -> OperationResult[int]:
        try:
            rows = self._storage.load_budgets()
        except StorageError as e:
            self._logger.error("budgets_load_failed", error=str(e))
            return PersistenceError(f"Could not load budgets: {e}").to_result()

        self._budgets = {budget.id: budget for budget in rows}
        self._logger.info("budgets_loaded", count=len(rows))
        self._bus.publish(ChangeEventBuilder.budgets_reloaded(len(rows)))
        return OperationResult.ok(len(rows))

    def add_budget(
        self,
        wallet_id: UUID,
        category: CategoryRef,
        amount: float,
        currency: Optional[Currency] = None,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
        apply_to_all_periods: bool = True,
    ) -> OperationResult[Budget]:
        """Create a budget; one per (wallet, category)."""

        def add() -> Budget:
            category_id, category_name = self._resolve_category(category)
            self._require_amount(amount)
            if self.budget_for(category_id, wallet_id) is not None:
                raise InvalidOperationError(f"'{category_name}' already has a budget in this wallet")

            budget = Budget(
                wallet_id=wallet_id,
                category_id=category_id,
                category_name=category_name,
                amount=amount,
                currency=currency or self._converter.primary_currency,
                period=period,
                apply_to_all_periods=apply_to_all_periods,
            )
            self._save(budget)
            return budget

        return self._run("add_budget", add)

    def update_budget(
        self,
        budget_id: UUID,
        *,
        amount: Optional[float] = None,
        currency: Optional[Currency] = None,
        period: Optional[BudgetPeriod] = None,
        apply_to_all_periods: Optional[bool] = None,
        is_active: Optional[bool] = None,
        category: Optional[CategoryRef] = None,
    ) -> OperationResult[Budget]:
        def update() -> Budget:
            existing = self._get(budget_id)
            changes: dict = {"updated_at": datetime.utcnow()}
            if category is not None:
                changes["category_id"], changes["category_name"] = self._resolve_category(category)
            if amount is not None:
                self._require_amount(amount)
                changes["amount"] = amount
            if currency is not None:
                changes["currency"] = currency
            if period is not None:
                changes["period"] = period
            if apply_to_all_periods is not None:
                changes["apply_to_all_periods"] = apply_to_all_periods
            if is_active is not None:
                changes["is_active"] = is_active

            budget = self._effective(existing).model_copy(update=changes)
            self._save(budget)
            return budget

        return self._run("update_budget", update)

    def delete_budget(self, budget_id: UUID) -> OperationResult[Budget]:
        def delete() -> Budget:
            existing = self._get(budget_id)
            try:
                self._storage.delete_budget(budget_id)
            except StorageError as e:
                raise PersistenceError(f"Could not delete budget: {e}") from e
            del self._budgets[budget_id]

            self._logger.info("budget_deleted", budget_id=str(budget_id), category=existing.category_name)
            self._bus.publish(ChangeEventBuilder.budget_deleted(budget_id, existing.category_name))
            return existing

        return self._run("delete_budget", delete)

    def budgets(self, wallet_id: Optional[UUID] = None, active_only: bool = True) -> list[Budget]:
        return [
            self._effective(budget)
            for budget in self._budgets.values()
            if (wallet_id is None or budget.wallet_id == wallet_id)
            and (budget.is_active or not active_only)
        ]

    def budget_for(self, category: CategoryRef, wallet_id: UUID) -> Optional[Budget]:
        """The budget on exactly this category in this wallet, if any."""
        if isinstance(category, UUID):
            category_id = category
        else:
            lookup = self._categories.find_category_or_subcategory(category)
            if not lookup.found:
                return None
            category_id = lookup.id
        for budget in self.budgets(wallet_id, active_only=False):
            if budget.category_id == category_id:
                return budget
        return None

    # =========================================================================
    # Change reactions
    # =========================================================================

    def _on_change(self, event: ChangeEvent) -> None:
        # Every change can move a spent figure: transactions, rates,
        # categories (matching) and budgets themselves.
        self._spent_cache.clear()

        if event.event_type in (ChangeEventType.CATEGORY_DELETED, ChangeEventType.SUBCATEGORY_DELETED):
            self._deleted_types[event.entity_id] = CategoryType(event.details["type"])
            return

        if event.event_type == ChangeEventType.CATEGORIES_RELOADED:
            self._refresh_names(list(self._budgets.values()))
            return

        if event.details.get("renamed") and event.event_type in (
            ChangeEventType.CATEGORY_UPDATED,
            ChangeEventType.SUBCATEGORY_UPDATED,
        ):
            self._refresh_names([b for b in self._budgets.values() if b.category_id == event.entity_id])

    def _refresh_names(self, budgets: list[Budget]) -> None:
        """Update the in-memory name cache; stored rows catch up on next save."""
        for budget in budgets:
            effective = self._effective(budget)
            if effective.category_name != budget.category_name:
                self._budgets[budget.id] = budget.model_copy(update={"category_name": effective.category_name})

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(self, operation: str, func: Callable[[], Budget]) -> OperationResult[Budget]:
        try:
            budget = func()
        except LedgerError as e:
            log = self._logger.error if isinstance(e, PersistenceError) else self._logger.warning
            log("budget_operation_refused", operation=operation, failure=e.failure.value, reason=str(e))
            return e.to_result()
        return OperationResult.ok(self._effective(budget))

    def _save(self, budget: Budget) -> None:
        try:
            self._storage.save_budget(budget)
        except StorageError as e:
            raise PersistenceError(f"Could not save budget: {e}") from e
        self._budgets[budget.id] = budget

        self._logger.info(
            "budget_saved",
            budget_id=str(budget.id),
            category=budget.category_name,
            amount=budget.amount,
            currency=budget.currency.value,
            period=budget.period.value,
        )
        self._bus.publish(ChangeEventBuilder.budget_saved(
            budget.id, budget.category_name, budget.amount, budget.period.value
        ))

    def _effective(self, budget: Budget) -> Budget:
        """A copy pointing at the live category, or at a sentinel if it was deleted."""
        lookup = self._categories.find_category_or_subcategory(budget.category_id)
        if not lookup.found:
            sentinel = self._categories.sentinel_for(
                self._deleted_types.get(budget.category_id, CategoryType.EXPENSE)
            )
            return budget.model_copy(update={"category_id": sentinel.id, "category_name": sentinel.name})
        if lookup.name != budget.category_name:
            return budget.model_copy(update={"category_name": lookup.name})
        return budget.model_copy()

    def _resolve_category(self, ref: CategoryRef) -> tuple[UUID, str]:
        lookup = self._categories.find_category_or_subcategory(ref)
        if not lookup.found:
            raise CategoryNotFoundError(ref)
        if lookup.category is not None and lookup.category.is_container:
            raise InvalidOperationError(f"'{lookup.name}' cannot have a budget")
        return lookup.id, lookup.name

    @staticmethod
    def _require_amount(amount: float) -> None:
        if amount is None or not math.isfinite(amount) or amount < 0:
            raise InvalidOperationError("Budget amount must be zero or positive")

    def _get(self, budget_id: UUID) -> Budget:
        budget = self._budgets.get(budget_id)
        if budget is None:
            raise BudgetNotFoundError(f"Budget not found: {budget_id}")
        return budget
