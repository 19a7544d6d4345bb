"""
Application lifecycle management using the FastAPI lifespan pattern.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.config.settings import Settings, get_settings
from storefront.core.background_services import BackgroundServiceManager

logger = logging.getLogger(__name__)


class LifecycleManager:
    """
    Manages application lifecycle events.

    Handles startup checks, background services and graceful shutdown.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._background_service_manager = BackgroundServiceManager(self._settings)
        self._initialized = False

    @property
    def background_services(self) -> BackgroundServiceManager:
        return self._background_service_manager

    async def startup(self) -> None:
        if self._initialized:
            logger.warning("Lifecycle already initialized, skipping startup")
            return

        logger.info("Starting application lifecycle...")
        self._verify_configurations()
        await self._initialize_database()
        await self._background_service_manager.start()

        self._initialized = True
        logger.info("Application lifecycle startup completed")

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("Lifecycle not initialized, skipping shutdown")
            return

        logger.info("Stopping application lifecycle...")
        await self._background_service_manager.stop()

        from storefront.database.async_db import close_db

        await close_db()

        self._initialized = False
        logger.info("Application lifecycle shutdown completed")

    async def _initialize_database(self) -> None:
        if not self._settings.DB_CREATE_TABLES:
            return

        from storefront.database.async_db import create_tables

        await create_tables()

    def _verify_configurations(self) -> None:
        """Warn about configuration that will make requests fail later."""
        settings = self._settings
        if settings.RAZORPAY_ENABLED and not (settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET):
            logger.warning("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not configured - order creation will fail")
        if not settings.RAZORPAY_WEBHOOK_SECRET:
            logger.warning("RAZORPAY_WEBHOOK_SECRET not configured - all webhooks will be rejected")
        if not settings.CRON_SECRET:
            logger.warning("CRON_SECRET not configured - the expiry endpoint will reject every trigger")
        if settings.NOTIFICATIONS_ENABLED and not settings.RESEND_API_KEY:
            logger.warning("NOTIFICATIONS_ENABLED without RESEND_API_KEY - emails will be skipped")


# Global lifecycle manager instance
_lifecycle_manager: LifecycleManager | None = None


def get_lifecycle_manager() -> LifecycleManager:
    """Get or create the global lifecycle manager instance."""
    global _lifecycle_manager
    if _lifecycle_manager is None:
        _lifecycle_manager = LifecycleManager()
    return _lifecycle_manager


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Uses the settings the application factory stored on ``app.state``;
    falls back to the global manager for apps built without the factory.

    Usage:
        app = FastAPI(lifespan=lifespan)
    """
    settings: Settings | None = getattr(app.state, "settings", None)
    lifecycle = LifecycleManager(settings) if settings is not None else get_lifecycle_manager()
    app.state.lifecycle = lifecycle

    await lifecycle.startup()

    yield

    await lifecycle.shutdown()
