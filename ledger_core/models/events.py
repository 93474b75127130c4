"""
Change Event Models

Every committed mutation produces exactly one ChangeEvent, broadcast on the
ChangeBus before the mutating call returns. Dependents treat an event as
"rebuild now".

DESIGN DECISION: Events describe what changed, not what to do about it.
Each subscriber decides which event types invalidate its own caches.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ChangeEventType(str, Enum):
    """Types of change broadcast by the stores."""
    # Taxonomy
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    SUBCATEGORY_ADDED = "subcategory_added"
    SUBCATEGORY_UPDATED = "subcategory_updated"
    SUBCATEGORY_DELETED = "subcategory_deleted"
    CATEGORIES_RELOADED = "categories_reloaded"

    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTIONS_RELOADED = "transactions_reloaded"

    # Budgets
    BUDGET_SAVED = "budget_saved"
    BUDGET_DELETED = "budget_deleted"
    BUDGETS_RELOADED = "budgets_reloaded"

    # Currency
    PRIMARY_CURRENCY_CHANGED = "primary_currency_changed"
    SECONDARY_CURRENCY_CHANGED = "secondary_currency_changed"
    RATES_UPDATED = "rates_updated"


CATEGORY_EVENTS = frozenset({
    ChangeEventType.CATEGORY_ADDED,
    ChangeEventType.CATEGORY_UPDATED,
    ChangeEventType.CATEGORY_DELETED,
    ChangeEventType.SUBCATEGORY_ADDED,
    ChangeEventType.SUBCATEGORY_UPDATED,
    ChangeEventType.SUBCATEGORY_DELETED,
    ChangeEventType.CATEGORIES_RELOADED,
})


class ChangeEvent(BaseModel):
    """A single committed change."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    event_type: ChangeEventType
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'category', 'transaction', 'budget')"
    )
    entity_id: Optional[UUID] = None
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
        }


class ChangeEventBuilder:
    """
    Helper class to build change events with common patterns.

    Usage:
        event = ChangeEventBuilder.category_added(category_id, "Coffee", "expense")
        event = ChangeEventBuilder.rates_updated("USD", 30)
    """

    @staticmethod
    def category_added(category_id: UUID, name: str, category_type: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category added: {name}",
            details={"name": name, "type": category_type},
        )

    @staticmethod
    def category_updated(
        category_id: UUID,
        old_name: str,
        new_name: str,
        old_type: str,
        new_type: str,
        promoted_from_subcategory: bool = False,
    ) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.CATEGORY_UPDATED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category updated: {old_name} -> {new_name}",
            details={
                "old_name": old_name,
                "new_name": new_name,
                "old_type": old_type,
                "new_type": new_type,
                "renamed": old_name != new_name,
                "type_changed": old_type != new_type,
                "promoted_from_subcategory": promoted_from_subcategory,
            },
        )

    @staticmethod
    def category_deleted(category_id: UUID, name: str, category_type: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.CATEGORY_DELETED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category deleted: {name}",
            details={"name": name, "type": category_type},
        )

    @staticmethod
    def subcategory_added(subcategory_id: UUID, name: str, parent_name: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.SUBCATEGORY_ADDED,
            entity_type="subcategory",
            entity_id=subcategory_id,
            description=f"Subcategory added: {parent_name} / {name}",
            details={"name": name, "parent": parent_name},
        )

    @staticmethod
    def subcategory_updated(subcategory_id: UUID, old_name: str, new_name: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.SUBCATEGORY_UPDATED,
            entity_type="subcategory",
            entity_id=subcategory_id,
            description=f"Subcategory updated: {old_name} -> {new_name}",
            details={
                "old_name": old_name,
                "new_name": new_name,
                "renamed": old_name != new_name,
            },
        )

    @staticmethod
    def subcategory_deleted(
        subcategory_id: UUID,
        name: str,
        parent_name: str,
        subcategory_type: str,
    ) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.SUBCATEGORY_DELETED,
            entity_type="subcategory",
            entity_id=subcategory_id,
            description=f"Subcategory deleted: {parent_name} / {name}",
            details={"name": name, "parent": parent_name, "type": subcategory_type},
        )

    @staticmethod
    def categories_reloaded(count: int) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.CATEGORIES_RELOADED,
            entity_type="category",
            description=f"Category taxonomy reloaded ({count} rows)",
            details={"count": count},
        )

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        amount: float,
        currency: str,
        source: str,
    ) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction added: {amount} {currency}",
            details={"amount": amount, "currency": currency, "source": source},
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        old_amount: float,
        new_amount: float,
        reason: str = "edit",
    ) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction updated ({reason}): {old_amount} -> {new_amount}",
            details={
                "old_amount": old_amount,
                "new_amount": new_amount,
                "reason": reason,
            },
        )

    @staticmethod
    def transaction_deleted(transaction_id: UUID, amount: float) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction deleted: {amount}",
            details={"amount": amount},
        )

    @staticmethod
    def transactions_reloaded(count: int, reason: str = "load") -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.TRANSACTIONS_RELOADED,
            entity_type="transaction",
            description=f"Transactions reloaded ({reason}, {count} affected)",
            details={"count": count, "reason": reason},
        )

    @staticmethod
    def budget_saved(budget_id: UUID, category_name: str, amount: float, period: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.BUDGET_SAVED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget saved: {category_name} {amount} {period}",
            details={"category_name": category_name, "amount": amount, "period": period},
        )

    @staticmethod
    def budget_deleted(budget_id: UUID, category_name: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.BUDGET_DELETED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget deleted: {category_name}",
            details={"category_name": category_name},
        )

    @staticmethod
    def budgets_reloaded(count: int) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.BUDGETS_RELOADED,
            entity_type="budget",
            description=f"Budgets reloaded ({count} rows)",
            details={"count": count},
        )

    @staticmethod
    def primary_currency_changed(old: str, new: str) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.PRIMARY_CURRENCY_CHANGED,
            entity_type="currency",
            description=f"Primary currency changed: {old} -> {new}",
            details={"old": old, "new": new},
        )

    @staticmethod
    def secondary_currency_changed(old: Optional[str], new: Optional[str]) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.SECONDARY_CURRENCY_CHANGED,
            entity_type="currency",
            description=f"Secondary currency changed: {old or 'none'} -> {new or 'none'}",
            details={"old": old, "new": new},
        )

    @staticmethod
    def rates_updated(base: str, count: int) -> ChangeEvent:
        return ChangeEvent(
            event_type=ChangeEventType.RATES_UPDATED,
            entity_type="rates",
            description=f"Exchange rates updated ({count} currencies, base {base})",
            details={"base": base, "count": count},
        )
