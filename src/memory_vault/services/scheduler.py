import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from memory_vault.core.base import ErrorLevel
from memory_vault.core.config import MaintenanceConfig, settings
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.logging import get_logger
from memory_vault.services.maintenance import MaintenanceService
from memory_vault.services.session_cache import SessionCache

logger = get_logger(__name__)


class MaintenanceScheduler:
    """Periodic relevance decay and session cache sweeping."""

    def __init__(
        self,
        maintenance: MaintenanceService,
        session_cache: SessionCache,
        config: MaintenanceConfig | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.maintenance = maintenance
        self.session_cache = session_cache
        self.config = config or settings.maintenance
        self.scheduler = scheduler or AsyncIOScheduler()
        self._setup_jobs()

    def _setup_jobs(self):
        self.scheduler.add_job(
            self.decay_relevance,
            "interval",
            hours=self.config.decay_interval_hours,
            id="relevance_decay",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.sweep_sessions,
            "interval",
            minutes=self.config.session_sweep_interval_minutes,
            id="session_sweep",
            max_instances=1,
            coalesce=True,
        )

    async def start(self):
        self.scheduler.start()
        logger.info("MaintenanceScheduler started", jobs=[job.id for job in self.scheduler.get_jobs()])

    async def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler defers its shutdown to the next loop iteration
            await asyncio.sleep(0)
        logger.info("MaintenanceScheduler shutdown complete")

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def decay_relevance(self) -> int:
        updated = await self.maintenance.decay_all()
        logger.info(f"Applied relevance decay to {updated} memories")
        return updated

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def sweep_sessions(self) -> int:
        return self.session_cache.sweep()

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs."""
        return {
            "scheduler_running": self.scheduler.running,
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
                    "func": job.func.__name__,
                }
                for job in self.scheduler.get_jobs()
            ],
        }
