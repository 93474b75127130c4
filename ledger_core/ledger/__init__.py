"""Transaction ledger package."""

from ledger_core.ledger.transactions import TransactionLedger
from ledger_core.ledger.validator import TransactionValidator

__all__ = ["TransactionLedger", "TransactionValidator"]
