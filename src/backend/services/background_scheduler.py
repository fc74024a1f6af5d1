"""
Background Scheduler Service

Manages scheduled background tasks using APScheduler:
- Verification sweep (persists ISSUED -> EXPIRED for stale one-time codes)

This runs in-process with the FastAPI application.
"""

from datetime import timezone
from typing import Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import Clock, SystemClock
from core.config import settings
from db.session import get_session_maker
from repositories.verification_repository import VerificationRepository

logger = structlog.get_logger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def verification_sweep_job(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    clock: Optional[Clock] = None,
) -> int:
    """
    Expire every ISSUED verification past its expiry.

    Returns:
        Number of records moved to EXPIRED (0 on failure)
    """
    factory = session_factory or get_session_maker()
    now = (clock or SystemClock()).now()

    try:
        async with factory() as db:
            expired = await VerificationRepository(db).expire_stale(now)
            await db.commit()
    except Exception as e:
        logger.error("verification_sweep_failed", error=str(e), exc_info=True)
        return 0

    if expired:
        logger.info("verification_sweep_completed", expired=expired)
    return expired


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=timezone.utc)
    return _scheduler


async def start_scheduler(clock: Optional[Clock] = None) -> None:
    """Start the background scheduler with all jobs."""
    scheduler = get_scheduler()

    if scheduler.running:
        logger.info("scheduler_already_running")
        return

    scheduler.add_job(
        verification_sweep_job,
        trigger=IntervalTrigger(minutes=settings.VERIFICATION_SWEEP_MINUTES),
        kwargs={"clock": clock},
        id="verification_sweep",
        name="Verification Sweep",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("scheduler_started", sweep_minutes=settings.VERIFICATION_SWEEP_MINUTES)


async def stop_scheduler() -> None:
    """Stop the background scheduler gracefully."""
    global _scheduler

    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")

    _scheduler = None
