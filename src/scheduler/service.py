"""APScheduler-based scheduler for periodic sync and deployment housekeeping.

Uses APScheduler 3.x with AsyncIOScheduler. Three interval jobs:

- ``sync:periodic``: reconcile execution stats of every deployed workflow
- ``deployments:janitor``: fail deployments stuck in ``deploying``
- ``deployments:retry``: bounded redeploy of transport failures
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class SchedulerService:
    """Runs the periodic jobs inside the API process.

    Lifecycle:
        scheduler = SchedulerService()
        await scheduler.start()    # Called in lifespan startup
        ...
        await scheduler.stop()     # Called in lifespan shutdown
    """

    _instance: SchedulerService | None = None

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._scheduler = AsyncIOScheduler(timezone=self.settings.scheduler_timezone)
        self._running = False

    @classmethod
    def get_instance(cls) -> SchedulerService | None:
        """Get the singleton scheduler instance (None if not started)."""
        return cls._instance

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Register jobs and start the scheduler."""
        if not self.settings.scheduler_enabled:
            logger.info("Scheduler disabled via settings")
            return

        self._schedule_sync()
        self._schedule_janitor()
        self._schedule_retry_sweep()

        self._scheduler.start()
        self._running = True
        SchedulerService._instance = self
        logger.info("Scheduler started")

    async def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            SchedulerService._instance = None
            logger.info("Scheduler stopped")

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def _schedule_sync(self) -> None:
        if not self.settings.sync_enabled:
            logger.info("Periodic sync disabled via settings")
            return

        interval = self.settings.sync_interval_minutes
        self._scheduler.add_job(
            _execute_sync,
            trigger=IntervalTrigger(minutes=interval),
            id="sync:periodic",
            replace_existing=True,
            name="sync:reconcile_all",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )
        logger.info("Periodic sync scheduled every %d minutes", interval)

    def _schedule_janitor(self) -> None:
        interval = self.settings.deployment_stale_after_minutes
        self._scheduler.add_job(
            _execute_janitor,
            trigger=IntervalTrigger(minutes=interval),
            id="deployments:janitor",
            replace_existing=True,
            name="deployments:fail_stale",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )
        logger.info("Stale deployment janitor scheduled every %d minutes", interval)

    def _schedule_retry_sweep(self) -> None:
        if self.settings.deployment_max_retries <= 0:
            logger.info("Automatic deployment retry disabled (deployment_max_retries=0)")
            return

        interval = self.settings.deployment_retry_interval_minutes
        self._scheduler.add_job(
            _execute_retry_sweep,
            trigger=IntervalTrigger(minutes=interval),
            id="deployments:retry",
            replace_existing=True,
            name="deployments:retry_failed",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )
        logger.info("Deployment retry sweep scheduled every %d minutes", interval)


async def _execute_sync() -> None:
    """Run a batch reconciliation. Called by APScheduler."""
    from src.dal.sync import WorkflowSyncService
    from src.engine import get_engine_client
    from src.storage import get_session

    try:
        async with get_session() as session:
            service = WorkflowSyncService(session, get_engine_client())
            summary = await service.reconcile_all()
        logger.info(
            "Periodic sync: %d processed, %d executions updated",
            summary.workflows_processed,
            summary.executions_updated,
        )
    except Exception:
        logger.exception("Periodic sync failed")


async def _execute_janitor() -> None:
    """Fail stale ``deploying`` rows. Called by APScheduler."""
    from src.deployment.maintenance import fail_stale_deployments
    from src.storage import get_session

    try:
        async with get_session() as session:
            await fail_stale_deployments(session)
    except Exception:
        logger.exception("Stale deployment janitor failed")


async def _execute_retry_sweep() -> None:
    """Retry transport-failed deployments. Called by APScheduler."""
    from src.deployment.maintenance import retry_failed_deployments
    from src.engine import get_engine_client
    from src.storage import get_session

    try:
        async with get_session() as session:
            await retry_failed_deployments(session, get_engine_client())
    except Exception:
        logger.exception("Deployment retry sweep failed")
