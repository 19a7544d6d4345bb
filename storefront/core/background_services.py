"""
Background services management for the application.

Runs the pending-order expiry sweep in-process when
ORDER_EXPIRY_SWEEP_ENABLED is set. Deployments that trigger the sweep
externally through the cron endpoint leave it disabled.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any

from storefront.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class BackgroundServiceManager:
    """
    Manages background services lifecycle.

    Handles starting, stopping, and monitoring of background tasks.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._running = False
        self._last_sweep_count: int | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start all background services."""
        if self._running:
            logger.warning("Background services already running")
            return

        logger.info("Starting background services...")

        if self._settings.ORDER_EXPIRY_SWEEP_ENABLED:
            sweep_task = asyncio.create_task(self._run_expiry_sweep_loop(), name="order_expiry_sweep")
            self._background_tasks.add(sweep_task)
            sweep_task.add_done_callback(self._background_tasks.discard)
            logger.info(
                f"[SWEEP] In-process expiry sweep scheduled every "
                f"{self._settings.ORDER_EXPIRY_SWEEP_INTERVAL_SECONDS}s"
            )
        else:
            logger.info("[SWEEP] In-process expiry sweep disabled")

        self._running = True
        logger.info("Background services started")

    async def stop(self) -> None:
        """Stop all background services gracefully."""
        if not self._running:
            logger.warning("Background services not running")
            return

        logger.info("Stopping background services...")

        for task in list(self._background_tasks):
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._background_tasks.clear()
        self._running = False
        logger.info("Background services stopped")

    async def run_expiry_sweep(self) -> int:
        """Run one sweep in its own session; returns the number of expired orders."""
        from storefront.database.async_db import get_async_db_context
        from storefront.domains.checkout.application.use_cases import ExpirePendingOrdersUseCase
        from storefront.domains.checkout.domain.services import OrderLifecycle
        from storefront.domains.checkout.infrastructure.repositories import SQLAlchemyOrderRepository

        lifecycle = OrderLifecycle(expiry_window=timedelta(hours=self._settings.ORDER_EXPIRY_HOURS))
        async with get_async_db_context() as session:
            use_case = ExpirePendingOrdersUseCase(SQLAlchemyOrderRepository(session), lifecycle)
            result = await use_case.execute()
        self._last_sweep_count = result.expired_count
        return result.expired_count

    async def _run_expiry_sweep_loop(self) -> None:
        interval = self._settings.ORDER_EXPIRY_SWEEP_INTERVAL_SECONDS
        try:
            while True:
                try:
                    await self.run_expiry_sweep()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    # Next tick retries; the sweep is idempotent
                    logger.error(f"[SWEEP] Expiry sweep failed: {e}", exc_info=True)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("[SWEEP] Expiry sweep loop cancelled")
            raise

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "active_tasks": len(self._background_tasks),
            "expiry_sweep_enabled": self._settings.ORDER_EXPIRY_SWEEP_ENABLED,
            "last_sweep_expired": self._last_sweep_count,
        }
