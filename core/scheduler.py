# core/scheduler.py
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core import rate_limiter
from core.cache import get_cache
from core.config import settings
from core.logging_config import logger


_scheduler: Optional[BackgroundScheduler] = None


def run_cleanup():
    """Prune expired rate-limit windows and cache entries."""
    try:
        windows = rate_limiter.cleanup_expired()
        entries = get_cache().cleanup_expired()
        if windows or entries:
            logger.info(f"[SCHEDULER] Pruned {windows} rate-limit windows, {entries} cache entries")
    except Exception as e:
        logger.error(f"[SCHEDULER] Cleanup failed: {e}", exc_info=True)


def start_scheduler() -> BackgroundScheduler:
    """
    Initialize the APScheduler background process.
    Runs the cleanup job every CLEANUP_INTERVAL_MINUTES.
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        return _scheduler

    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_cleanup,
        trigger=IntervalTrigger(minutes=settings.CLEANUP_INTERVAL_MINUTES),
        id="memory_cleanup_job",
        replace_existing=True,
    )

    scheduler.start()
    _scheduler = scheduler
    logger.info(f"Scheduler started. Cleanup every {settings.CLEANUP_INTERVAL_MINUTES} minutes.")
    return scheduler


def stop_scheduler():
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped.")
    _scheduler = None
