"""
Storage Services Package

Provides the abstract persistence interface the core depends on and an
in-memory implementation of it.
"""

from ledger_core.services.storage.interface import (
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from ledger_core.services.storage.memory import InMemoryLedgerStorage

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryLedgerStorage",
]
