"""
Abstract Rate Source Interface

The converter never talks to the network itself. A rate source returns a
table of "units of currency per 1 unit of base". The converter calls it on
a schedule; any failure is logged and the previous table is kept.
"""

from abc import ABC, abstractmethod

from ledger_core.models.currency import Currency


class RateSourceInterface(ABC):
    """Provider of exchange-rate tables."""

    @abstractmethod
    def fetch_rates(self, base_currency: Currency) -> dict[str, float]:
        """
        Fetch the latest rates relative to `base_currency`.

        Returns:
            Mapping of currency code -> units per 1 base_currency

        Raises:
            RateSourceError: If the rates could not be fetched
        """


class RateSourceError(Exception):
    """Base exception for rate fetch failures."""
    pass
