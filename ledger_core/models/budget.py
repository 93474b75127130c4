"""
Budget Models

A budget's (amount, currency, period) triple is one rate of spend. Amounts
for other periods are always projected from it on demand and never stored.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ledger_core.models.currency import Currency


class BudgetPeriod(str, Enum):
    """Budget periods, shortest first."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetState(str, Enum):
    """Progress band used for display."""
    ON_TRACK = "on_track"
    WARNING = "warning"
    OVER = "over"


class Budget(BaseModel):
    """Spending limit for a category in one wallet."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    wallet_id: UUID
    category_id: UUID
    category_name: str = Field(
        default="",
        description="Display cache of the category name"
    )
    amount: float = Field(..., ge=0)
    currency: Currency
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    apply_to_all_periods: bool = True
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PeriodRange(BaseModel):
    """Half-open calendar interval [start, end)."""

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_order(self) -> 'PeriodRange':
        if self.end <= self.start:
            raise ValueError("Period end must be after period start")
        return self

    def __contains__(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class BudgetStatus(BaseModel):
    """Spent vs budgeted for one display period."""

    budget_id: UUID
    display_period: BudgetPeriod
    range: PeriodRange
    currency: Currency
    spent: float = Field(ge=0)
    budgeted: float = Field(ge=0, description="Budget amount projected to display_period")
    remaining: float
    progress: float = Field(ge=0, description="spent / budgeted, 0 when budgeted is 0")
    state: BudgetState
    label: Optional[str] = None

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.budgeted
