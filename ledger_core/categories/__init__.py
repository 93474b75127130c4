"""Category taxonomy package."""

from ledger_core.categories.defaults import default_categories
from ledger_core.categories.store import CategoryRef, CategoryStore

__all__ = ["CategoryRef", "CategoryStore", "default_categories"]
