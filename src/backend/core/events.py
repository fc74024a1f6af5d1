"""
Application lifecycle event handlers.

Builds the process-wide resources at startup (database, clock, audit trail,
delivery channels, dispatcher, background scheduler), stores them on
app.state for dependency injection, and tears them down at shutdown.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.clock import SystemClock
from core.config import settings
from db.session import close_db, get_session_maker, init_db
from services.audit_service import AuditTrail
from services.email_service import EmailService
from services.notification_service import NotificationDispatcher
from services.sms_service import SMSService

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("app_starting", app=settings.APP_NAME, env=settings.APP_ENV)

        await init_db()

        clock = SystemClock()
        audit_trail = AuditTrail(get_session_maker())
        email_channel = EmailService()
        sms_channel = SMSService()
        email_channel.initialize()
        sms_channel.initialize()

        app.state.clock = clock
        app.state.audit_trail = audit_trail
        app.state.dispatcher = NotificationDispatcher([email_channel, sms_channel], audit_trail)

        if settings.ENABLE_BACKGROUND_JOBS:
            try:
                from services.background_scheduler import start_scheduler

                await start_scheduler(clock=clock)
            except Exception as e:
                logger.exception("scheduler_start_failed", error=str(e))

        logger.info("app_started")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("app_stopping")

        try:
            from services.background_scheduler import stop_scheduler

            await stop_scheduler()
        except Exception as e:
            logger.warning("scheduler_stop_failed", error=str(e))

        dispatcher = getattr(app.state, "dispatcher", None)
        if dispatcher is not None:
            await dispatcher.aclose()

        await close_db()

        logger.info("app_stopped")

    return stop_app
