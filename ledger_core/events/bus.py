"""
Change Bus

DESIGN DECISION: The ledger is reactive, not transactional. Every mutating
operation applies its change, persists it, then publishes one ChangeEvent
here before returning. Handlers run synchronously, in subscription order,
inside `publish`. There is no queue and no deferred delivery, so once a
mutation returns, every dependent cache has already been invalidated.

The bus also writes each event to the structured log, which doubles as
the change history when debugging.
"""

import logging
import sys
from typing import Callable, Optional

import structlog

from ledger_core.models.events import ChangeEvent, ChangeEventType

ChangeHandler = Callable[[ChangeEvent], None]


def configure_logging(json_logs: bool = True, level: str = "INFO") -> None:
    """
    Configure structlog on top of the standard library.

    Safe to call more than once; the last call wins.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    package_logger = logging.getLogger("ledger_core")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)


configure_logging()


class ChangeBus:
    """
    Synchronous publish/subscribe hub shared by all stores.

    A handler subscribed without event types receives every event.
    """

    def __init__(self):
        self._subscribers: list[tuple[ChangeHandler, Optional[frozenset[ChangeEventType]]]] = []
        self._logger = structlog.get_logger(__name__)

    def subscribe(self, handler: ChangeHandler, *event_types: ChangeEventType) -> None:
        """Register `handler` for the given event types (all types if none given)."""
        types = frozenset(event_types) if event_types else None
        self._subscribers.append((handler, types))

    def unsubscribe(self, handler: ChangeHandler) -> None:
        self._subscribers = [
            (registered, types)
            for registered, types in self._subscribers
            if registered != handler
        ]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> None:
        """
        Deliver `event` to every matching handler before returning.

        A handler exception is logged and re-raised to the publisher, which
        is responsible for rolling back its own change.
        """
        self._logger.info("ledger_change", **event.to_log_dict())

        # Snapshot so handlers may subscribe/unsubscribe while we iterate
        for handler, types in list(self._subscribers):
            if types is not None and event.event_type not in types:
                continue
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    "change_handler_failed",
                    event_type=event.event_type.value,
                    event_id=str(event.event_id),
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                )
                raise
