"""
Transaction Models

ACTUAL vs CONVERTED:
- `original_amount` + `original_currency` are what the user typed (or what
  receipt analysis returned). They are the editable source of truth.
- `amount` is the signed value in `primary_currency`, derived from the
  original pair at edit time with `exchange_rate`. It is frozen until the
  transaction is edited again.

Dates are stored naive, in local time. Timezone-aware input is converted
when the model is built, so every date compares against calendar ranges.

Sign: positive for income, negative for expense, always matching the
resolved category's type.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledger_core.models.currency import Currency


def to_local_naive(moment: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


class TransactionSource(str, Enum):
    """How a transaction entered the ledger."""
    MANUAL = "manual"
    RECEIPT = "receipt"


class ReceiptItem(BaseModel):
    """A single line on a receipt."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(default=1, ge=0)
    unit_price: float = Field(default=0.0, ge=0)
    total_price: float = Field(default=0.0, ge=0)


class ReceiptAnalysis(BaseModel):
    """
    Structured result from the external receipt analysis.

    CRITICAL: This is PROPOSED data. It goes through the same validation and
    derivation as a manual entry before anything is stored.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    merchant_name: Optional[str] = Field(default=None, max_length=200)
    amount: float = Field(..., description="Total as printed on the receipt")
    currency: Currency
    date: datetime
    category: Optional[str] = Field(
        default=None,
        description="Category name suggested by the analysis"
    )
    items: list[ReceiptItem] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class Transaction(BaseModel):
    """A ledger entry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)
    wallet_id: UUID
    category_id: UUID
    category_name: str = Field(
        default="",
        description="Denormalized display cache of the category name"
    )

    # Timestamps
    date: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Source of truth
    original_amount: float = Field(..., ge=0)
    original_currency: Currency

    # Derived at edit time
    amount: float
    primary_currency: Currency
    exchange_rate: float = Field(default=1.0, gt=0)
    secondary_currency: Optional[Currency] = None
    secondary_amount: Optional[float] = None
    secondary_exchange_rate: Optional[float] = None

    # Context
    merchant_name: Optional[str] = Field(default=None, max_length=200)
    note: Optional[str] = Field(default=None, max_length=1000)
    items: list[ReceiptItem] = Field(default_factory=list)
    source: TransactionSource = TransactionSource.MANUAL

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        """Aware dates become naive local time."""
        return to_local_naive(v)

    @property
    def is_income(self) -> bool:
        return self.amount >= 0

    @property
    def is_expense(self) -> bool:
        return self.amount < 0
