"""Configuration package."""

from ledger_core.config.settings import (
    AppSettings,
    BudgetSettings,
    CurrencySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BudgetSettings",
    "CurrencySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
