"""
Currency Converter

Owns the exchange-rate table and the user's display currencies.

DESIGN DECISION: The table is seeded with a complete static table when the
converter is built, so every supported currency converts before the first
refresh and keeps converting when a refresh fails. A failed refresh leaves
the previous table in place (stale but available).

Rates are "units of currency per 1 unit of the base currency". Conversion
goes through the base: amount / rate[from] * rate[to].
"""

import math
from datetime import datetime, timedelta
from typing import Optional

import structlog
from tenacity import Retrying, stop_after_attempt, wait_exponential

from ledger_core.config.settings import CurrencySettings, get_settings
from ledger_core.errors import UnsupportedCurrencyError
from ledger_core.events.bus import ChangeBus
from ledger_core.models.currency import Currency
from ledger_core.models.events import ChangeEventBuilder
from ledger_core.services.rates.interface import RateSourceError, RateSourceInterface
from ledger_core.services.rates.static import DEFAULT_RATES, rebase


def retry_policy(settings: CurrencySettings) -> dict:
    """tenacity arguments shared by the sync and async refresh paths."""
    return {
        "stop": stop_after_attempt(settings.refresh_max_attempts),
        "wait": wait_exponential(
            multiplier=1,
            min=settings.refresh_backoff_min_seconds,
            max=settings.refresh_backoff_max_seconds,
        ),
        "reraise": True,
    }


class CurrencyConverter:
    """
    Converts amounts between currencies and formats them for display.

    Usage:
        converter = CurrencyConverter(StaticRateSource(), bus)
        converter.convert_amount(100.0, Currency.USD, Currency.PHP)
        converter.format_amount(-1234.5, Currency.PHP)   # "-₱1,234.50"
    """

    def __init__(
        self,
        rate_source: RateSourceInterface,
        bus: ChangeBus,
        settings: Optional[CurrencySettings] = None,
    ):
        self._settings = settings or get_settings().currency
        self._rate_source = rate_source
        self._bus = bus
        self._logger = structlog.get_logger(__name__)

        self._base = self._settings.base_currency
        self._rates: dict[str, float] = rebase(DEFAULT_RATES, self._base)
        self._rates_updated_at: Optional[datetime] = None

        self._primary = self._settings.primary_currency
        self._secondary = self._settings.secondary_currency

    # =========================================================================
    # Display currencies
    # =========================================================================

    @property
    def primary_currency(self) -> Currency:
        return self._primary

    @property
    def secondary_currency(self) -> Optional[Currency]:
        return self._secondary

    def set_primary_currency(self, currency: Currency) -> None:
        """
        Change the currency new entries are converted into.

        Stored transactions keep the amount and rate they were saved with.
        """
        if currency == self._primary:
            return
        old = self._primary
        self._primary = currency
        self._logger.info("primary_currency_changed", old=old.value, new=currency.value)
        self._bus.publish(ChangeEventBuilder.primary_currency_changed(old.value, currency.value))

    def set_secondary_currency(self, currency: Optional[Currency]) -> None:
        if currency == self._secondary:
            return
        old = self._secondary
        self._secondary = currency
        self._logger.info(
            "secondary_currency_changed",
            old=old.value if old else None,
            new=currency.value if currency else None,
        )
        self._bus.publish(
            ChangeEventBuilder.secondary_currency_changed(
                old.value if old else None,
                currency.value if currency else None,
            )
        )

    # =========================================================================
    # Conversion
    # =========================================================================

    @property
    def base_currency(self) -> Currency:
        return self._base

    @property
    def rates(self) -> dict[str, float]:
        """A copy of the current table."""
        return dict(self._rates)

    @property
    def rates_updated_at(self) -> Optional[datetime]:
        """When the table was last refreshed; None while only the seed is loaded."""
        return self._rates_updated_at

    @property
    def is_stale(self) -> bool:
        if self._rates_updated_at is None:
            return True
        age = datetime.utcnow() - self._rates_updated_at
        return age > timedelta(hours=self._settings.cache_validity_hours)

    def _rate(self, currency: Currency) -> float:
        rate = self._rates.get(currency.value)
        if rate is None:
            raise UnsupportedCurrencyError(f"No exchange rate for {currency.value}")
        return rate

    def convert_amount(self, amount: float, from_currency: Currency, to_currency: Currency) -> float:
        """
        Convert `amount` from one currency to another.

        Raises:
            UnsupportedCurrencyError: If either currency is missing from the table
        """
        if from_currency == to_currency:
            return amount
        return amount / self._rate(from_currency) * self._rate(to_currency)

    def get_exchange_rate(self, from_currency: Currency, to_currency: Currency) -> float:
        """Units of `to_currency` per 1 unit of `from_currency`."""
        if from_currency == to_currency:
            return 1.0
        return self.convert_amount(1.0, from_currency, to_currency)

    # =========================================================================
    # Refresh
    # =========================================================================

    def refresh_rates(self) -> bool:
        """
        Fetch a new table from the rate source, retrying with backoff.

        Returns:
            True if the table was replaced, False if the previous one was kept
        """
        try:
            for attempt in Retrying(**retry_policy(self._settings)):
                with attempt:
                    rates = self._rate_source.fetch_rates(self._base)
        except Exception as e:
            self._logger.error(
                "rates_refresh_failed",
                base=self._base.value,
                attempts=self._settings.refresh_max_attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        # Subscriber failures propagate; the new table is already installed by then
        try:
            self.apply_rates(rates, self._base)
        except RateSourceError as e:
            self._logger.error("rates_refresh_rejected", base=self._base.value, error=str(e))
            return False
        return True

    def apply_rates(self, rates: dict[str, float], base: Optional[Currency] = None) -> None:
        """
        Merge an already-fetched table into the current one.

        Currencies missing from `rates` keep their previous rate. Non-positive
        or non-finite entries are ignored.

        Raises:
            RateSourceError: If `rates` is expressed in a base it does not contain
        """
        base = base or self._base
        usable = {
            code.upper(): float(rate)
            for code, rate in rates.items()
            if isinstance(rate, (int, float)) and math.isfinite(rate) and rate > 0
        }
        if not usable:
            raise RateSourceError("Rate table is empty")
        if base != self._base:
            usable = rebase(usable, self._base)

        self._rates.update(usable)
        self._rates_updated_at = datetime.utcnow()
        self._logger.info("rates_updated", base=self._base.value, count=len(usable))
        self._bus.publish(ChangeEventBuilder.rates_updated(self._base.value, len(usable)))

    # =========================================================================
    # Formatting
    # =========================================================================

    def format_amount(self, value: float, currency: Optional[Currency] = None) -> str:
        """
        Render `value` with the currency symbol and thousands separators.

        Whole amounts (after rounding to cents) get no decimals, anything
        else gets exactly two.
        """
        currency = currency or self._primary
        cents = round(abs(value), 2)
        if cents == int(cents):
            body = f"{int(cents):,}"
        else:
            body = f"{cents:,.2f}"
        sign = "-" if value < 0 and cents > 0 else ""
        return f"{sign}{currency.symbol}{body}"
