"""
Application lifecycle event handlers.

Manages startup and shutdown of the outbound clients: the realtime database,
the vote ledger and the identity service.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from core.logging_config import configure_logging

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        configure_logging()
        logger.info("Starting E-Vote Gateway...", env=settings.APP_ENV)

        from db.realtime import get_realtime_database
        from services.eligibility import get_eligibility_gate
        from services.ledger_client import get_ledger_client
        from services.session_service import get_session_service

        get_realtime_database()
        get_ledger_client()
        get_eligibility_gate()
        get_session_service()

        logger.info("E-Vote Gateway started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down E-Vote Gateway...")

        from db.realtime import close_realtime_database
        from services.eligibility import reset_eligibility_gate
        from services.ledger_client import close_ledger_client
        from services.session_service import close_session_service

        await close_session_service()
        reset_eligibility_gate()
        await close_ledger_client()
        await close_realtime_database()

        logger.info("E-Vote Gateway shutdown complete")

    return stop_app
