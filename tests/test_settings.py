"""
Tests for configuration
"""

import pytest

from ledger_core.config.settings import CurrencySettings, get_settings, validate_all_settings
from ledger_core.models.currency import Currency


class TestSettings:

    def test_currency_from_environment(self, monkeypatch):
        monkeypatch.setenv("LEDGER_CURRENCY_PRIMARY_CURRENCY", "EUR")
        monkeypatch.setenv("LEDGER_CURRENCY_SECONDARY_CURRENCY", "JPY")

        settings = CurrencySettings()

        assert settings.primary_currency == Currency.EUR
        assert settings.secondary_currency == Currency.JPY

    def test_backoff_bounds_checked(self):
        with pytest.raises(ValueError):
            CurrencySettings(refresh_backoff_min_seconds=10, refresh_backoff_max_seconds=1)

    def test_validate_all_settings(self):
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["currency"] and results["budget"] and results["app"]

    def test_validate_reports_bad_section(self, monkeypatch):
        monkeypatch.setenv("LEDGER_BUDGET_WARNING_THRESHOLD", "2.5")
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["budget"] is False
        assert "budget_error" in results
