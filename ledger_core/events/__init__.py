"""Change notification package."""

from ledger_core.events.bus import ChangeBus, ChangeHandler, configure_logging

__all__ = ["ChangeBus", "ChangeHandler", "configure_logging"]
