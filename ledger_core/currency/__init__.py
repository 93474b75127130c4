"""Currency conversion and rate refresh."""

from ledger_core.currency.converter import CurrencyConverter, retry_policy
from ledger_core.currency.refresher import RateRefresher

__all__ = ["CurrencyConverter", "RateRefresher", "retry_policy"]
