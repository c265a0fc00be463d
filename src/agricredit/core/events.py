"""
Application lifecycle event handlers.

Manages startup and shutdown tasks: logging setup and, when a database is
configured, table creation and connection pool disposal.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from agricredit.core.config import settings
from agricredit.core.logging import configure_logging
from agricredit.repositories.provider import is_database_enabled

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        configure_logging()
        logger.info("app_starting", app=settings.APP_NAME, env=settings.APP_ENV)

        if is_database_enabled():
            from agricredit.db.session import init_db

            await init_db()
        else:
            logger.warning("database_not_configured", history_backend="in_memory")

        if not settings.SARVAM_API_KEY:
            logger.warning("speech_to_text_not_configured")
        if not settings.GROQ_API_KEY:
            logger.warning("extraction_not_configured", fallback="other")

        logger.info("app_started")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("app_stopping")

        if is_database_enabled():
            from agricredit.db.session import close_db

            await close_db()

        logger.info("app_stopped")

    return stop_app
