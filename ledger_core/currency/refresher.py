"""
Background Rate Refresher

Runs on the host's asyncio event loop. The fetch itself happens in a worker
thread; the result is applied back on the loop, so the RATES_UPDATED
broadcast reaches subscribers on the same thread that runs every other
mutation. A slow refresh that lands late simply overwrites the table.
"""

import asyncio
import contextlib
from typing import Optional

import structlog
from tenacity import AsyncRetrying

from ledger_core.config.settings import CurrencySettings, get_settings
from ledger_core.currency.converter import CurrencyConverter, retry_policy
from ledger_core.services.rates.interface import RateSourceInterface


class RateRefresher:
    """Periodically refreshes a converter's rate table."""

    def __init__(
        self,
        converter: CurrencyConverter,
        rate_source: RateSourceInterface,
        settings: Optional[CurrencySettings] = None,
    ):
        self._converter = converter
        self._rate_source = rate_source
        self._settings = settings or get_settings().currency
        self._task: Optional[asyncio.Task] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_now(self) -> bool:
        """Fetch and apply once. Failures are logged and reported as False."""
        base = self._converter.base_currency
        try:
            async for attempt in AsyncRetrying(**retry_policy(self._settings)):
                with attempt:
                    rates = await asyncio.to_thread(self._rate_source.fetch_rates, base)
            self._converter.apply_rates(rates, base)
        except Exception as e:
            self._logger.warning(
                "background_refresh_failed",
                base=base.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True

    async def _run(self) -> None:
        while True:
            await self.refresh_now()
            await asyncio.sleep(self._settings.refresh_interval_seconds)

    def start(self) -> None:
        """Start the loop on the running event loop. No-op if already running."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._logger.info(
            "rate_refresher_started",
            interval_seconds=self._settings.refresh_interval_seconds,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._logger.info("rate_refresher_stopped")
