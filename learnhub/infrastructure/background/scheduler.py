# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic maintenance jobs.

Uses APScheduler interval triggers on the application's event loop. Both
jobs are optional (interval 0 disables them); nothing in the enrollment
core depends on them having run.

Jobs:
    reconcile_enrollment_counts: recompute every course's aggregates
    expire_stale_invitations: persist the expired status of old invitations

Example:
    from learnhub.infrastructure.background import MaintenanceScheduler

    scheduler = MaintenanceScheduler(settings, sessionmaker, event_bus)
    await scheduler.start()
    ...
    await scheduler.stop()
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnhub.core.config.settings import Settings
from learnhub.infrastructure.events import EventBus
from learnhub.utils.datetime import utc_now

logger = logging.getLogger(__name__)

RECONCILE_JOB_ID = "reconcile_enrollment_counts"
EXPIRE_JOB_ID = "expire_stale_invitations"


@dataclass
class ScheduledJob:
    """Bookkeeping for one maintenance job.

    Attributes:
        id: Job identifier, also used as the APScheduler job id.
        name: Human-readable job name.
        interval_minutes: Run interval.
        last_run: Last completed run.
        last_result: Summary returned by the last run.
        run_count: Total number of runs.
        error_count: Number of failed runs.
    """

    id: str
    name: str
    interval_minutes: int
    func: Callable[[AsyncSession], Awaitable[dict[str, Any]]] = field(repr=False)
    last_run: datetime | None = None
    last_result: dict[str, Any] | None = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "interval_minutes": self.interval_minutes,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": self.last_result,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class MaintenanceScheduler:
    """Runs reconciliation and expiry sweeps on an interval.

    Attributes:
        _scheduler: APScheduler instance while running.
        _jobs: Registered jobs by id.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        event_bus: EventBus,
    ) -> None:
        """Initialize the scheduler.

        Args:
            settings: Application settings.
            session_factory: Creates a fresh session per job run.
            event_bus: Bus used by the jobs to announce results.
        """
        self._settings = settings
        self._session_factory = session_factory
        self._event_bus = event_bus
        self._scheduler: AsyncIOScheduler | None = None
        self._jobs: dict[str, ScheduledJob] = {}

        maintenance = settings.maintenance
        if maintenance.reconcile_interval_minutes > 0:
            self._register(
                RECONCILE_JOB_ID,
                "Reconcile enrollment counts",
                maintenance.reconcile_interval_minutes,
                self._reconcile_counts,
            )
        if maintenance.expire_interval_minutes > 0:
            self._register(
                EXPIRE_JOB_ID,
                "Expire stale invitations",
                maintenance.expire_interval_minutes,
                self._expire_invitations,
            )

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._scheduler is not None

    @property
    def jobs(self) -> list[ScheduledJob]:
        """Registered jobs."""
        return list(self._jobs.values())

    def _register(
        self,
        job_id: str,
        name: str,
        interval_minutes: int,
        func: Callable[[AsyncSession], Awaitable[dict[str, Any]]],
    ) -> None:
        self._jobs[job_id] = ScheduledJob(
            id=job_id,
            name=name,
            interval_minutes=interval_minutes,
            func=func,
        )

    async def start(self) -> None:
        """Start the scheduler if any job is enabled."""
        if self.is_running:
            return
        if not self._jobs:
            logger.info("No maintenance jobs enabled, scheduler not started")
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        for job in self._jobs.values():
            self._scheduler.add_job(
                self.run_job,
                trigger=IntervalTrigger(minutes=job.interval_minutes),
                args=[job.id],
                id=job.id,
                name=job.name,
                max_instances=1,
                coalesce=True,
            )
            logger.info(
                "Added interval job: %s (every %dm)",
                job.name,
                job.interval_minutes,
            )

        self._scheduler.start()
        logger.info("Maintenance scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is None:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Maintenance scheduler stopped")

    async def run_job(self, job_id: str) -> dict[str, Any] | None:
        """Execute one job in a fresh session.

        Errors are logged and counted, never raised, so a failing run does
        not unschedule the job.

        Returns:
            The job's summary, or None if it failed or is unknown.
        """
        job = self._jobs.get(job_id)
        if job is None:
            logger.warning("Unknown maintenance job: %s", job_id)
            return None

        logger.debug("Executing maintenance job: %s", job.name)

        try:
            async with self._session_factory() as session:
                result = await job.func(session)
        except Exception as e:
            job.error_count += 1
            logger.error("Maintenance job %s failed: %s", job.name, str(e), exc_info=True)
            return None

        job.last_run = utc_now()
        job.last_result = result
        job.run_count += 1
        return result

    async def _reconcile_counts(self, session: AsyncSession) -> dict[str, Any]:
        from learnhub.domains.enrollment.reconciler import EnrollmentReconciler

        summary = await EnrollmentReconciler(session, self._event_bus).reconcile_all()
        return {"processed": summary.processed, "fixed": summary.fixed}

    async def _expire_invitations(self, session: AsyncSession) -> dict[str, Any]:
        from learnhub.domains.invitation.service import InvitationService

        service = InvitationService(session, self._event_bus, self._settings.invitation)
        return {"expired": await service.expire_stale()}

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "is_running": self.is_running,
            "job_count": len(self._jobs),
            "total_runs": sum(j.run_count for j in self._jobs.values()),
            "total_errors": sum(j.error_count for j in self._jobs.values()),
            "jobs": [j.to_dict() for j in self._jobs.values()],
        }
