"""
Tests for the CurrencyConverter and rate sources
"""

import pytest
from datetime import datetime, timedelta

from ledger_core.currency.converter import CurrencyConverter
from ledger_core.errors import UnsupportedCurrencyError
from ledger_core.models.currency import Currency
from ledger_core.models.events import ChangeEventType
from ledger_core.services.rates.interface import RateSourceError
from ledger_core.services.rates.static import DEFAULT_RATES, StaticRateSource, rebase

from tests.conftest import FlakyRateSource


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(received.append)
    return received


class TestConversion:
    """Tests for amount conversion."""

    def test_identity(self, converter):
        assert converter.convert_amount(123.45, Currency.PHP, Currency.PHP) == 123.45
        assert converter.get_exchange_rate(Currency.JPY, Currency.JPY) == 1.0

    def test_converts_through_base(self, converter):
        expected = 100 / DEFAULT_RATES["USD"] * DEFAULT_RATES["PHP"]
        assert converter.convert_amount(100, Currency.USD, Currency.PHP) == pytest.approx(expected)

    def test_cross_rate(self, converter):
        expected = 50 / DEFAULT_RATES["EUR"] * DEFAULT_RATES["JPY"]
        assert converter.convert_amount(50, Currency.EUR, Currency.JPY) == pytest.approx(expected)

    def test_round_trip(self, converter):
        there = converter.convert_amount(987.65, Currency.GBP, Currency.KRW)
        back = converter.convert_amount(there, Currency.KRW, Currency.GBP)
        assert back == pytest.approx(987.65)

    def test_exchange_rate_is_unit_conversion(self, converter):
        rate = converter.get_exchange_rate(Currency.USD, Currency.PHP)
        assert rate == pytest.approx(DEFAULT_RATES["PHP"])

    def test_every_currency_is_seeded(self, converter):
        for currency in Currency:
            assert converter.convert_amount(1.0, currency, Currency.USD) > 0

    def test_unknown_currency_raises(self, bus, currency_settings):
        rates = {code: rate for code, rate in DEFAULT_RATES.items() if code != "AED"}
        converter = CurrencyConverter(StaticRateSource(), bus, currency_settings)
        converter._rates = rates

        with pytest.raises(UnsupportedCurrencyError):
            converter.convert_amount(10, Currency.AED, Currency.USD)


class TestDisplayCurrencies:
    """Tests for primary/secondary currency preferences."""

    def test_initial_from_settings(self, converter):
        assert converter.primary_currency == Currency.PHP
        assert converter.secondary_currency is None

    def test_set_primary_broadcasts(self, converter, events):
        converter.set_primary_currency(Currency.USD)

        assert converter.primary_currency == Currency.USD
        assert events[-1].event_type == ChangeEventType.PRIMARY_CURRENCY_CHANGED
        assert events[-1].details == {"old": "PHP", "new": "USD"}

    def test_unchanged_primary_is_silent(self, converter, events):
        converter.set_primary_currency(Currency.PHP)
        assert events == []

    def test_set_and_clear_secondary(self, converter, events):
        converter.set_secondary_currency(Currency.USD)
        converter.set_secondary_currency(None)

        assert converter.secondary_currency is None
        assert [e.event_type for e in events] == [ChangeEventType.SECONDARY_CURRENCY_CHANGED] * 2


class TestFormatting:
    """Tests for smart-decimal formatting."""

    @pytest.mark.parametrize("value, currency, expected", [
        (1234.5, Currency.PHP, "₱1,234.50"),
        (1234.0, Currency.PHP, "₱1,234"),
        (-1234.5, Currency.PHP, "-₱1,234.50"),
        (0.004, Currency.USD, "$0"),
        (1999.999, Currency.EUR, "€2,000"),
        (1000000, Currency.JPY, "¥1,000,000"),
        (12.3, Currency.CHF, "CHF12.30"),
    ])
    def test_format_amount(self, converter, value, currency, expected):
        assert converter.format_amount(value, currency) == expected

    def test_defaults_to_primary(self, converter):
        assert converter.format_amount(500) == "₱500"


class TestRefresh:
    """Tests for refreshing the rate table."""

    def test_successful_refresh(self, bus, currency_settings, events):
        source = FlakyRateSource(failures=0, rates={"USD": 1.0, "PHP": 60.0})
        converter = CurrencyConverter(source, bus, currency_settings)

        assert converter.refresh_rates()

        assert converter.convert_amount(1, Currency.USD, Currency.PHP) == pytest.approx(60.0)
        # Missing currencies keep their previous rate
        assert converter.rates["EUR"] == pytest.approx(DEFAULT_RATES["EUR"])
        assert converter.rates_updated_at is not None
        assert not converter.is_stale
        assert events[-1].event_type == ChangeEventType.RATES_UPDATED

    def test_retries_then_succeeds(self, bus, currency_settings):
        source = FlakyRateSource(failures=2, rates={"USD": 1.0, "PHP": 61.0})
        converter = CurrencyConverter(source, bus, currency_settings)

        assert converter.refresh_rates()
        assert source.calls == 3

    def test_failure_keeps_stale_table(self, bus, currency_settings, events):
        source = FlakyRateSource(failures=10, rates={})
        converter = CurrencyConverter(source, bus, currency_settings)
        before = converter.rates

        assert converter.refresh_rates() is False

        assert source.calls == currency_settings.refresh_max_attempts
        assert converter.rates == before
        assert converter.convert_amount(1, Currency.USD, Currency.PHP) == pytest.approx(DEFAULT_RATES["PHP"])
        assert events == []

    def test_empty_table_from_source_is_rejected(self, bus, currency_settings):
        source = FlakyRateSource(failures=0, rates={})
        converter = CurrencyConverter(source, bus, currency_settings)

        assert converter.refresh_rates() is False
        assert converter.rates_updated_at is None

    def test_subscriber_failure_is_not_a_refresh_failure(self, bus, currency_settings):
        def broken(event):
            raise RuntimeError("cache rebuild failed")

        bus.subscribe(broken, ChangeEventType.RATES_UPDATED)
        source = FlakyRateSource(failures=0, rates={"USD": 1.0, "PHP": 60.0})
        converter = CurrencyConverter(source, bus, currency_settings)

        with pytest.raises(RuntimeError):
            converter.refresh_rates()

        assert source.calls == 1
        assert converter.convert_amount(1, Currency.USD, Currency.PHP) == pytest.approx(60.0)

    def test_apply_rates_in_other_base(self, converter):
        eur_based = rebase(DEFAULT_RATES, Currency.EUR)
        eur_based["PHP"] = 70.0

        converter.apply_rates(eur_based, Currency.EUR)

        assert converter.convert_amount(1, Currency.EUR, Currency.PHP) == pytest.approx(70.0)

    def test_apply_rates_ignores_bad_entries(self, converter):
        converter.apply_rates({"USD": 1.0, "PHP": -3.0, "JPY": float("nan")})
        assert converter.rates["PHP"] == pytest.approx(DEFAULT_RATES["PHP"])
        assert converter.rates["JPY"] == pytest.approx(DEFAULT_RATES["JPY"])

    def test_apply_empty_table_raises(self, converter):
        with pytest.raises(RateSourceError):
            converter.apply_rates({})

    def test_staleness(self, converter):
        assert converter.is_stale
        converter.apply_rates({"USD": 1.0})
        assert not converter.is_stale
        converter._rates_updated_at = datetime.utcnow() - timedelta(hours=2)
        assert converter.is_stale

    def test_existing_transactions_are_not_rerated(self, ledger, converter, coffee, wallet_id, october_day):
        """Rates are locked in when a transaction is saved."""
        txn = ledger.create_transaction(wallet_id, "Coffee", 10, Currency.USD, october_day).value

        converter.apply_rates({"USD": 1.0, "PHP": 99.0})

        assert ledger.get_transaction(txn.id).amount == pytest.approx(txn.amount)


class TestStaticRateSource:

    def test_usd_base(self):
        rates = StaticRateSource().fetch_rates(Currency.USD)
        assert rates["USD"] == 1.0
        assert set(rates) == {c.value for c in Currency}

    def test_rebased(self):
        rates = StaticRateSource().fetch_rates(Currency.PHP)
        assert rates["PHP"] == pytest.approx(1.0)
        assert rates["USD"] == pytest.approx(1 / DEFAULT_RATES["PHP"])
