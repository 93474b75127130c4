"""Exchange-rate source package."""

from ledger_core.services.rates.interface import RateSourceError, RateSourceInterface
from ledger_core.services.rates.static import DEFAULT_RATES, StaticRateSource, rebase

__all__ = [
    "DEFAULT_RATES",
    "RateSourceError",
    "RateSourceInterface",
    "StaticRateSource",
    "rebase",
]
