"""
Configuration Management for Ledger Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Components receive their settings section explicitly, so tests can pass
their own instances without touching the environment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledger_core.models.currency import Currency


class CurrencySettings(BaseSettings):
    """Display currencies and exchange-rate refresh policy."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_CURRENCY_",
        extra="ignore"
    )

    primary_currency: Currency = Field(
        default=Currency.PHP,
        description="Currency all converted amounts are shown in"
    )
    secondary_currency: Optional[Currency] = Field(
        default=None,
        description="Optional second always-displayed currency"
    )
    base_currency: Currency = Field(
        default=Currency.USD,
        description="Base of the rate table (rates are units per 1 base)"
    )

    # Refresh schedule
    refresh_interval_seconds: int = Field(
        default=3600,
        ge=60,
        description="How often the background refresher fetches rates"
    )
    refresh_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per refresh before keeping the stale table"
    )
    refresh_backoff_min_seconds: float = Field(default=1.0, ge=0.0)
    refresh_backoff_max_seconds: float = Field(default=30.0, ge=0.0)
    cache_validity_hours: float = Field(
        default=1.0,
        gt=0,
        description="Age after which the rate table is reported stale"
    )

    @model_validator(mode='after')
    def validate_backoff(self) -> 'CurrencySettings':
        if self.refresh_backoff_max_seconds < self.refresh_backoff_min_seconds:
            raise ValueError("refresh_backoff_max_seconds must be >= refresh_backoff_min_seconds")
        return self


class BudgetSettings(BaseSettings):
    """Budget display thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_BUDGET_",
        extra="ignore"
    )

    warning_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Progress at which a budget is shown as a warning"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False: console renderer)"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )

    # Taxonomy
    seed_default_categories: bool = Field(
        default=True,
        description="Populate built-in categories when storage is empty"
    )

    # Entry validation thresholds
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a transaction date can be"
    )
    max_transaction_amount: float = Field(
        default=10_000_000.0,
        gt=0,
        description="Amounts above this are flagged for review"
    )
    min_receipt_confidence: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Receipt analyses below this confidence are flagged"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def currency(self) -> CurrencySettings:
        return CurrencySettings()

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing each failure. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("currency", "budget", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
