"""Budget engine package."""

from ledger_core.budgets.engine import (
    DAYS_PER_PERIOD,
    BudgetEngine,
    convert_amount,
    period_label,
    period_range,
)

__all__ = [
    "DAYS_PER_PERIOD",
    "BudgetEngine",
    "convert_amount",
    "period_label",
    "period_range",
]
