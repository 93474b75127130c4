"""
Transaction Ledger

ACTUAL vs CONVERTED:
- `original_amount` / `original_currency` are what the user entered, or
  what the receipt analysis returned. Never overwritten except by an edit.
- `amount` is derived from them at save/edit time:

      amount = sign(type) * |original_amount| * exchange_rate

  with `exchange_rate` the original -> primary rate at that moment. Later
  rate refreshes and primary-currency changes do not touch stored rows.

CATEGORY RESOLUTION:
A transaction whose category was deleted is not rewritten. Reads resolve
it to the sentinel matching its own sign (amount >= 0 -> income sentinel,
otherwise expense sentinel). `repair_orphaned_transactions` persists that
reassignment when an eager pass is wanted.

The one case where stored amounts change without an edit is a category
changing type (cross-type reparent or subcategory promotion): the sign is
flipped to match, keeping the magnitude and the locked-in rate.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog

from ledger_core.categories.store import CategoryRef, CategoryStore
from ledger_core.currency.converter import CurrencyConverter
from ledger_core.errors import (
    CategoryNotFoundError,
    InvalidOperationError,
    LedgerError,
    PersistenceError,
    TransactionNotFoundError,
)
from ledger_core.events.bus import ChangeBus
from ledger_core.ledger.validator import TransactionValidator
from ledger_core.models.category import CategoryLookup, CategoryType
from ledger_core.models.currency import Currency
from ledger_core.models.events import (
    CATEGORY_EVENTS,
    ChangeEvent,
    ChangeEventBuilder,
    ChangeEventType,
)
from ledger_core.models.results import OperationResult, ValidationIssue
from ledger_core.models.transaction import (
    ReceiptAnalysis,
    ReceiptItem,
    Transaction,
    TransactionSource,
    to_local_naive,
)
from ledger_core.services.storage.interface import LedgerStorageInterface, StorageError


class TransactionLedger:
    """
    Holds transactions and derives their converted, signed amounts.

    Usage:
        ledger = TransactionLedger(storage, bus, store, converter)
        result = ledger.create_transaction(
            wallet_id, "Coffee", 500, Currency.PHP, datetime(2026, 10, 18)
        )
        result.value.amount   # -500.0 when PHP is primary
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        bus: ChangeBus,
        categories: CategoryStore,
        converter: CurrencyConverter,
        validator: Optional[TransactionValidator] = None,
    ):
        self._storage = storage
        self._bus = bus
        self._categories = categories
        self._converter = converter
        self._validator = validator or TransactionValidator()
        self._logger = structlog.get_logger(__name__)

        self._transactions: dict[UUID, Transaction] = {}
        bus.subscribe(self._on_category_change, *CATEGORY_EVENTS)

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self) -> OperationResult[int]:
        try:
            rows = self._storage.load_transactions()
        except StorageError as e:
            self._logger.error("transactions_load_failed", error=str(e))
            return PersistenceError(f"Could not load transactions: {e}").to_result()

        self._transactions = {txn.id: txn for txn in rows}
        self._logger.info("transactions_loaded", count=len(rows))
        self._bus.publish(ChangeEventBuilder.transactions_reloaded(len(rows)))
        return OperationResult.ok(len(rows))

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_transaction(
        self,
        wallet_id: UUID,
        category: CategoryRef,
        original_amount: float,
        original_currency: Currency,
        date: datetime,
        merchant_name: Optional[str] = None,
        note: Optional[str] = None,
        items: Iterable[ReceiptItem] = (),
        source: TransactionSource = TransactionSource.MANUAL,
    ) -> OperationResult[Transaction]:
        """
        Book a new transaction.

        The sign comes from the category's type, so `original_amount` may be
        given with either sign.
        """

        def create() -> tuple[Transaction, list[ValidationIssue]]:
            lookup = self._resolve_for_entry(category)
            return self._book(
                wallet_id=wallet_id,
                lookup=lookup,
                original_amount=original_amount,
                original_currency=original_currency,
                date=date,
                merchant_name=merchant_name,
                note=note,
                items=list(items),
                source=source,
                confidence=None,
            )

        return self._run("create_transaction", create)

    def create_from_receipt(
        self,
        wallet_id: UUID,
        analysis: ReceiptAnalysis,
        category: Optional[CategoryRef] = None,
    ) -> OperationResult[Transaction]:
        """
        Book a transaction from a receipt analysis.

        `category` overrides the analysis' suggestion. A suggestion that
        matches no category falls back to the expense sentinel.
        """

        def create() -> tuple[Transaction, list[ValidationIssue]]:
            if category is not None:
                lookup = self._resolve_for_entry(category)
            else:
                lookup = self._categories.find_category_or_subcategory(analysis.category or "")
                if not lookup.found or (lookup.category is not None and lookup.category.is_container):
                    self._logger.info(
                        "receipt_category_fallback",
                        suggested=analysis.category,
                        merchant=analysis.merchant_name,
                    )
                    lookup = CategoryLookup(category=self._categories.sentinel_for(CategoryType.EXPENSE))
            return self._book(
                wallet_id=wallet_id,
                lookup=lookup,
                original_amount=analysis.amount,
                original_currency=analysis.currency,
                date=analysis.date,
                merchant_name=analysis.merchant_name,
                note=None,
                items=list(analysis.items),
                source=TransactionSource.RECEIPT,
                confidence=analysis.confidence,
            )

        return self._run("create_from_receipt", create)

    def edit_transaction(
        self,
        transaction_id: UUID,
        *,
        original_amount: Optional[float] = None,
        original_currency: Optional[Currency] = None,
        category: Optional[CategoryRef] = None,
        date: Optional[datetime] = None,
        merchant_name: Optional[str] = None,
        note: Optional[str] = None,
    ) -> OperationResult[Transaction]:
        """
        Edit a transaction and re-derive everything from the original pair.

        The amount is re-converted into the current primary currency at the
        current rate, and the sign re-resolved from the (possibly new)
        category.
        """

        def edit() -> tuple[Transaction, list[ValidationIssue]]:
            existing = self._get(transaction_id)
            lookup = (
                self._resolve_for_entry(category)
                if category is not None
                else self.resolve_category(existing)
            )
            new_amount = existing.original_amount if original_amount is None else original_amount
            new_currency = original_currency or existing.original_currency
            new_date = to_local_naive(date) if date is not None else existing.date
            new_merchant = existing.merchant_name if merchant_name is None else merchant_name

            validation = self._validator.validate(
                new_amount,
                new_date,
                merchant_name=new_merchant,
                wallet_id=existing.wallet_id,
                existing=(t for t in self._transactions.values() if t.id != existing.id),
            )
            if validation.has_errors:
                raise InvalidOperationError("Transaction entry is invalid", issues=validation.issues)

            updated = existing.model_copy(update={
                **self._derive(new_amount, new_currency, lookup),
                "date": new_date,
                "merchant_name": new_merchant,
                "note": existing.note if note is None else note,
                "updated_at": datetime.utcnow(),
            })
            self._persist(updated)
            self._transactions[updated.id] = updated

            self._logger.info(
                "transaction_updated",
                transaction_id=str(updated.id),
                old_amount=existing.amount,
                new_amount=updated.amount,
                exchange_rate=updated.exchange_rate,
            )
            self._bus.publish(ChangeEventBuilder.transaction_updated(
                updated.id, existing.amount, updated.amount
            ))
            return updated, validation.issues

        return self._run("edit_transaction", edit)

    def delete_transaction(self, transaction_id: UUID) -> OperationResult[Transaction]:
        def delete() -> tuple[Transaction, list[ValidationIssue]]:
            existing = self._get(transaction_id)
            try:
                self._storage.delete_transaction(transaction_id)
            except StorageError as e:
                raise PersistenceError(f"Could not delete transaction: {e}") from e
            del self._transactions[transaction_id]

            self._logger.info("transaction_deleted", transaction_id=str(transaction_id), amount=existing.amount)
            self._bus.publish(ChangeEventBuilder.transaction_deleted(transaction_id, existing.amount))
            return existing, []

        return self._run("delete_transaction", delete)

    def repair_orphaned_transactions(self) -> OperationResult[int]:
        """
        Persist the sentinel reassignment of every orphaned transaction.

        Reads already resolve orphans; this makes the stored rows agree.
        """
        orphans = [
            txn for txn in self._transactions.values()
            if not self._categories.find_category_or_subcategory(txn.category_id).found
        ]
        if not orphans:
            return OperationResult.ok(0)

        try:
            self._rewrite(orphans, self._effective, reason="orphan_repair")
        except PersistenceError as e:
            self._logger.error("orphan_repair_failed", error=str(e))
            return e.to_result()

        self._logger.info("orphaned_transactions_repaired", count=len(orphans))
        self._bus.publish(ChangeEventBuilder.transactions_reloaded(len(orphans), reason="orphan_repair"))
        return OperationResult.ok(len(orphans))

    # =========================================================================
    # Reads
    # =========================================================================

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        txn = self._transactions.get(transaction_id)
        return self._effective(txn) if txn is not None else None

    def transactions(self, wallet_id: Optional[UUID] = None) -> list[Transaction]:
        """Transactions (optionally of one wallet), newest first."""
        rows = [
            self._effective(txn)
            for txn in self._transactions.values()
            if wallet_id is None or txn.wallet_id == wallet_id
        ]
        rows.sort(key=lambda txn: (txn.date, txn.created_at), reverse=True)
        return rows

    def resolve_category(self, transaction: Transaction) -> CategoryLookup:
        """The transaction's category, or the sentinel matching its sign."""
        lookup = self._categories.find_category_or_subcategory(transaction.category_id)
        if lookup.found:
            return lookup
        return CategoryLookup(
            category=self._categories.sentinel_for(CategoryType.for_amount(transaction.amount))
        )

    def balance(self, wallet_id: Optional[UUID] = None) -> float:
        """
        Sum of signed amounts in the current primary currency.

        Rows saved under an older primary currency are converted at today's
        rate; their stored amounts are left alone.
        """
        primary = self._converter.primary_currency
        return sum(
            self._converter.convert_amount(txn.amount, txn.primary_currency, primary)
            for txn in self._transactions.values()
            if wallet_id is None or txn.wallet_id == wallet_id
        )

    # =========================================================================
    # Category reactions
    # =========================================================================

    def _on_category_change(self, event: ChangeEvent) -> None:
        if event.event_type == ChangeEventType.CATEGORIES_RELOADED:
            self._refresh_names(self._transactions.values())
            return

        if event.event_type in (ChangeEventType.CATEGORY_DELETED, ChangeEventType.SUBCATEGORY_DELETED):
            orphaned = sum(1 for txn in self._transactions.values() if txn.category_id == event.entity_id)
            if orphaned:
                self._logger.info(
                    "transactions_orphaned",
                    category_id=str(event.entity_id),
                    count=orphaned,
                )
            return

        affected = [txn for txn in self._transactions.values() if txn.category_id == event.entity_id]
        if not affected:
            return

        if event.details.get("renamed"):
            self._refresh_names(affected)
            affected = [self._transactions[txn.id] for txn in affected]

        if event.details.get("type_changed"):
            new_type = CategoryType(event.details["new_type"])
            mismatched = [txn for txn in affected if CategoryType.for_amount(txn.amount) != new_type]
            if mismatched:
                self._rewrite(
                    mismatched,
                    lambda txn: self._resign(txn, new_type),
                    reason="category_type_changed",
                )
                self._logger.info(
                    "transactions_resigned",
                    category_id=str(event.entity_id),
                    new_type=new_type.value,
                    count=len(mismatched),
                )
                self._bus.publish(ChangeEventBuilder.transactions_reloaded(
                    len(mismatched), reason="category_type_changed"
                ))

    def _refresh_names(self, transactions: Iterable[Transaction]) -> None:
        """Update the in-memory display cache; stored rows catch up on next save."""
        for txn in list(transactions):
            lookup = self.resolve_category(txn)
            if txn.category_name != lookup.name:
                self._transactions[txn.id] = txn.model_copy(update={"category_name": lookup.name})

    @staticmethod
    def _resign(transaction: Transaction, category_type: CategoryType) -> Transaction:
        """Flip the sign to match `category_type`, keeping magnitude and rate."""
        sign = category_type.sign
        secondary = transaction.secondary_amount
        return transaction.model_copy(update={
            "amount": sign * abs(transaction.amount),
            "secondary_amount": sign * abs(secondary) if secondary is not None else None,
            "updated_at": datetime.utcnow(),
        })

    def _rewrite(
        self,
        transactions: list[Transaction],
        transform: Callable[[Transaction], Transaction],
        reason: str,
    ) -> None:
        """
        Persist `transform(txn)` for each transaction, all or nothing.

        Raises:
            PersistenceError: After restoring memory and already-saved rows
        """
        written: list[Transaction] = []
        try:
            for txn in transactions:
                updated = transform(txn)
                self._storage.save_transaction(updated)
                self._transactions[updated.id] = updated
                written.append(txn)
        except StorageError as e:
            for original in written:
                self._transactions[original.id] = original
                try:
                    self._storage.save_transaction(original)
                except StorageError as restore_error:
                    self._logger.error(
                        "transaction_restore_failed",
                        transaction_id=str(original.id),
                        error=str(restore_error),
                    )
            raise PersistenceError(f"Could not save transactions ({reason}): {e}") from e

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(
        self,
        operation: str,
        func: Callable[[], tuple[Transaction, list[ValidationIssue]]],
    ) -> OperationResult[Transaction]:
        try:
            transaction, issues = func()
        except LedgerError as e:
            log = self._logger.error if isinstance(e, PersistenceError) else self._logger.warning
            log(
                "transaction_operation_refused",
                operation=operation,
                failure=e.failure.value,
                reason=str(e),
            )
            return e.to_result()
        return OperationResult.ok(self._effective(transaction), issues=issues)

    def _book(
        self,
        wallet_id: UUID,
        lookup: CategoryLookup,
        original_amount: float,
        original_currency: Currency,
        date: datetime,
        merchant_name: Optional[str],
        note: Optional[str],
        items: list[ReceiptItem],
        source: TransactionSource,
        confidence: Optional[float],
    ) -> tuple[Transaction, list[ValidationIssue]]:
        validation = self._validator.validate(
            original_amount,
            date,
            merchant_name=merchant_name,
            confidence=confidence,
            wallet_id=wallet_id,
            existing=self._transactions.values(),
        )
        if validation.has_errors:
            raise InvalidOperationError("Transaction entry is invalid", issues=validation.issues)

        transaction = Transaction(
            wallet_id=wallet_id,
            date=date,
            merchant_name=merchant_name,
            note=note,
            items=items,
            source=source,
            **self._derive(original_amount, original_currency, lookup),
        )
        self._persist(transaction)
        self._transactions[transaction.id] = transaction

        self._logger.info(
            "transaction_added",
            transaction_id=str(transaction.id),
            amount=transaction.amount,
            currency=transaction.primary_currency.value,
            original_amount=transaction.original_amount,
            original_currency=transaction.original_currency.value,
            source=source.value,
            warnings=len(validation.warnings),
        )
        self._bus.publish(ChangeEventBuilder.transaction_added(
            transaction.id,
            transaction.amount,
            transaction.primary_currency.value,
            source.value,
        ))
        return transaction, validation.issues

    def _derive(
        self,
        original_amount: float,
        original_currency: Currency,
        lookup: CategoryLookup,
    ) -> dict:
        """Fields computed from the original pair, the category and current rates."""
        primary = self._converter.primary_currency
        secondary = self._converter.secondary_currency
        magnitude = abs(original_amount)
        rate = self._converter.get_exchange_rate(original_currency, primary)
        sign = lookup.type.sign

        fields = {
            "category_id": lookup.id,
            "category_name": lookup.name,
            "original_amount": magnitude,
            "original_currency": original_currency,
            "primary_currency": primary,
            "exchange_rate": rate,
            "amount": sign * abs(magnitude * rate),
            "secondary_currency": secondary,
            "secondary_amount": None,
            "secondary_exchange_rate": None,
        }
        if secondary is not None:
            fields["secondary_amount"] = sign * abs(
                self._converter.convert_amount(magnitude, original_currency, secondary)
            )
            fields["secondary_exchange_rate"] = self._converter.get_exchange_rate(primary, secondary)
        return fields

    def _resolve_for_entry(self, ref: CategoryRef) -> CategoryLookup:
        lookup = self._categories.find_category_or_subcategory(ref)
        if not lookup.found:
            raise CategoryNotFoundError(ref)
        if lookup.category is not None and lookup.category.is_container:
            raise InvalidOperationError(f"'{lookup.name}' cannot be assigned to a transaction")
        return lookup

    def _effective(self, transaction: Transaction) -> Transaction:
        """A copy carrying the resolved category id and name."""
        lookup = self.resolve_category(transaction)
        return transaction.model_copy(
            deep=True,
            update={"category_id": lookup.id, "category_name": lookup.name},
        )

    def _get(self, transaction_id: UUID) -> Transaction:
        txn = self._transactions.get(transaction_id)
        if txn is None:
            raise TransactionNotFoundError(f"Transaction not found: {transaction_id}")
        return txn

    def _persist(self, transaction: Transaction) -> None:
        try:
            self._storage.save_transaction(transaction)
        except StorageError as e:
            raise PersistenceError(f"Could not save transaction: {e}") from e
