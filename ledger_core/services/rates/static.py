"""
Static Rate Source

Serves a fixed table of USD-based rates. It seeds the converter so that
every supported currency converts before the first refresh, and it is the
rate source used offline and in tests.
"""

from typing import Optional

from ledger_core.models.currency import Currency
from ledger_core.services.rates.interface import RateSourceError, RateSourceInterface

# 1 USD = N units
DEFAULT_RATES: dict[str, float] = {
    "PHP": 58.693,
    "USD": 1.0,
    "EUR": 0.9613,
    "GBP": 0.8113,
    "JPY": 154.00,
    "CAD": 1.4487,
    "AUD": 1.6198,
    "CHF": 0.9045,
    "CNY": 7.3248,
    "INR": 86.234,
    "KRW": 1452.8,
    "SGD": 1.3698,
    "HKD": 7.7695,
    "MXN": 20.487,
    "BRL": 6.1234,
    "THB": 34.125,
    "MYR": 4.4892,
    "IDR": 16284.5,
    "VND": 24687.3,
    "NOK": 11.234,
    "SEK": 11.045,
    "DKK": 7.1789,
    "PLN": 4.1256,
    "CZK": 24.567,
    "HUF": 398.45,
    "TRY": 35.234,
    "ZAR": 18.456,
    "RUB": 97.234,
    "AED": 3.6725,
    "NZD": 1.7834,
}


def rebase(rates: dict[str, float], base_currency: Currency) -> dict[str, float]:
    """Express a table relative to another currency already in it."""
    base_rate = rates.get(base_currency.value)
    if not base_rate:
        raise RateSourceError(f"No rate for base currency {base_currency.value}")
    return {code: rate / base_rate for code, rate in rates.items()}


class StaticRateSource(RateSourceInterface):
    """Rate source backed by a fixed USD-based table."""

    def __init__(self, usd_rates: Optional[dict[str, float]] = None):
        self._usd_rates = dict(usd_rates or DEFAULT_RATES)

    def fetch_rates(self, base_currency: Currency) -> dict[str, float]:
        return rebase(self._usd_rates, base_currency)
