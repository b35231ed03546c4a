"""Background scheduler for the link shortener.

This module provides a scheduler service that periodically removes
expired links using APScheduler.
"""

import logging
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from shortlink.core.config import Settings, settings as default_settings
from shortlink.db.session import SessionManager
from shortlink.repositories.url_repository import URLRepository
from shortlink.services.cleanup import CleanupService

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "cleanup_expired_urls"


class SchedulerService:
    """
    Scheduler service for background tasks.

    Wraps an AsyncIOScheduler running on the application's event loop.
    Jobs live in memory only and are registered again on every start.
    """

    def __init__(self, session_factory: async_sessionmaker, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.session_manager = SessionManager(session_factory)
        self.cleanup_service = CleanupService(URLRepository())
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.is_running = False
        self.jobs: List[Dict[str, Any]] = []

    def initialize(self) -> None:
        """Create the APScheduler instance without starting it."""
        if self.scheduler:
            logger.warning("Scheduler already initialized")
            return

        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": self.settings.SCHEDULER_JOB_COALESCE,
                "max_instances": self.settings.SCHEDULER_JOB_MAX_INSTANCES,
                "misfire_grace_time": self.settings.SCHEDULER_MISFIRE_GRACE_TIME,
            },
            timezone="UTC",
        )
        logger.info("Scheduler initialized")

    async def run_cleanup_job(self) -> Dict[str, Any]:
        """
        Delete expired links in a transaction of its own.

        Failures are logged and reported in the result; the next run
        simply tries again.
        """
        logger.info("Starting scheduled cleanup of expired URLs")
        try:
            async with self.session_manager.transaction_context() as session:
                result = await self.cleanup_service.cleanup_expired_urls(session)
        except Exception as e:
            logger.error(f"Error in scheduled URL cleanup job: {e}", exc_info=True)
            return {"status": "error", "error": str(e)}

        logger.info(f"Scheduled cleanup completed: Deleted={result['deleted']}")
        return {"status": "ok", **result}

    def start(self) -> None:
        """Start the scheduler and register the cleanup job."""
        if not self.scheduler:
            self.initialize()

        if self.is_running:
            logger.warning("Scheduler already running")
            return

        interval = self.settings.CLEANUP_INTERVAL_MINUTES
        self.scheduler.add_job(
            self.run_cleanup_job,
            trigger=IntervalTrigger(minutes=interval, timezone="UTC"),
            id=CLEANUP_JOB_ID,
            name="Cleanup Expired URLs",
            replace_existing=True,
        )
        self.jobs = [{
            "id": CLEANUP_JOB_ID,
            "name": "Cleanup Expired URLs",
            "interval": f"{interval} minutes",
        }]

        if self.settings.CLEANUP_START_ON_STARTUP:
            logger.info("Running cleanup job on startup")
            self.scheduler.add_job(
                self.run_cleanup_job,
                id="cleanup_startup",
                name="Startup Cleanup",
                replace_existing=True,
            )

        self.scheduler.start()
        self.is_running = True
        logger.info(f"Scheduler started with {len(self.jobs)} jobs")

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler; a running job is not interrupted."""
        if not self.scheduler or not self.is_running:
            logger.warning("Scheduler not running, nothing to shut down")
            return

        self.scheduler.shutdown(wait=wait)
        self.is_running = False
        self.scheduler = None
        logger.info("Scheduler shut down successfully")

    def get_status(self) -> Dict[str, Any]:
        """Report whether the scheduler runs and when each job fires next."""
        job_details = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                job_details.append({
                    "job_id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                })

        return {
            "running": self.is_running,
            "jobs": self.jobs,
            "scheduler_jobs_status": job_details,
        }
