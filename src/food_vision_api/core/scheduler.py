"""Background task scheduler for telemetry retention."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from food_vision_api.core.config import Settings
from food_vision_api.services.telemetry import GapTelemetryLogger

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "telemetry_purge"


async def run_telemetry_purge(telemetry: GapTelemetryLogger) -> None:
    """
    Purge exported telemetry past the retention window.

    This is called by APScheduler on the configured schedule.
    """
    logger.info("Starting scheduled telemetry purge...")

    try:
        deleted = await telemetry.purge_expired()
        logger.info(f"Scheduled purge completed: {deleted} entries removed")
    except Exception as e:
        logger.exception(f"Scheduled purge error: {e}")


def start_scheduler(settings: Settings, telemetry: GapTelemetryLogger) -> AsyncIOScheduler | None:
    """
    Start the background scheduler if configured.

    Returns:
        Scheduler instance if started, None otherwise
    """
    if not settings.telemetry_purge_enabled:
        logger.info("Scheduled telemetry purge is disabled")
        return None

    scheduler = AsyncIOScheduler(timezone="UTC")

    trigger = CronTrigger(hour=settings.telemetry_purge_hour, minute=0, timezone="UTC")

    scheduler.add_job(
        run_telemetry_purge,
        trigger=trigger,
        args=[telemetry],
        id=PURGE_JOB_ID,
        name="Daily Telemetry Purge",
        replace_existing=True,
    )

    scheduler.start()

    logger.info(
        f"Scheduler started: telemetry purge daily at {settings.telemetry_purge_hour:02d}:00 UTC "
        f"(retention {settings.telemetry_retention_days} days)"
    )

    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    """Stop the background scheduler if running."""
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
