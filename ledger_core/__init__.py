"""
Ledger Core - Source Package

The bookkeeping core of a personal finance tracker: the category taxonomy,
the dual-currency transaction model and the budget engine.

DESIGN PRINCIPLES:
1. What the user entered is never overwritten by what is displayed
2. Refused edits leave the store exactly as it was
3. Every committed change is broadcast before control returns
4. Exchange rates are locked in when a transaction is edited
5. Storage and rate sources are swappable collaborators
"""

__version__ = "1.0.0"
__author__ = "Ledger Core Team"
