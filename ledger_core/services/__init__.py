"""Services package: the external collaborators the core depends on."""

from ledger_core.services.rates import (
    DEFAULT_RATES,
    RateSourceError,
    RateSourceInterface,
    StaticRateSource,
)
from ledger_core.services.storage import (
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Rate sources
    "DEFAULT_RATES",
    "RateSourceError",
    "RateSourceInterface",
    "StaticRateSource",
    # Storage services
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
