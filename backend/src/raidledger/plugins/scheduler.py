"""Live in-process cron scheduler.

Jobs are keyed by unique name. Each registered job gets its own asyncio task
that sleeps until the next croniter fire time, runs the handler and
reschedules. The job table is the source of truth the Cron Manager queries
before adding or removing plugin jobs.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import zoneinfo
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from croniter import croniter

from ..core.exceptions import CronJobAlreadyExistsError, CronJobNotFoundError, InvalidCronExpressionError

logger = logging.getLogger(__name__)

JobHandler = Callable[[], Awaitable[Any] | Any]


@dataclass
class ScheduledJob:
    name: str
    cron_expression: str
    handler: JobHandler
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    task: asyncio.Task | None = field(default=None, repr=False, compare=False)


class CronScheduler:
    def __init__(self, timezone: str = "UTC"):
        self._tz = zoneinfo.ZoneInfo(timezone)
        self._jobs: dict[str, ScheduledJob] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def _now(self) -> datetime:
        return datetime.now(self._tz)

    def _next_fire(self, expression: str, after: datetime | None = None) -> datetime:
        return croniter(expression, after or self._now()).get_next(datetime)

    def add_cron_job(self, name: str, cron_expression: str, handler: JobHandler) -> ScheduledJob:
        """Register a job. Raises when the name is taken or the expression does not parse."""
        if name in self._jobs:
            raise CronJobAlreadyExistsError(name)
        if not croniter.is_valid(cron_expression):
            raise InvalidCronExpressionError(name, cron_expression)

        job = ScheduledJob(
            name=name,
            cron_expression=cron_expression,
            handler=handler,
            next_run_at=self._next_fire(cron_expression),
        )
        self._jobs[name] = job
        if self._running:
            self._start_job(job)
        logger.debug("Cron job added", extra={"job": name, "cron": cron_expression})
        return job

    def get_cron_job(self, name: str) -> ScheduledJob:
        job = self._jobs.get(name)
        if job is None:
            raise CronJobNotFoundError(name)
        return job

    def has_cron_job(self, name: str) -> bool:
        return name in self._jobs

    def get_cron_jobs(self) -> dict[str, ScheduledJob]:
        return dict(self._jobs)

    def delete_cron_job(self, name: str) -> None:
        job = self._jobs.pop(name, None)
        if job is None:
            raise CronJobNotFoundError(name)
        if job.task is not None and not job.task.done():
            job.task.cancel()
        logger.debug("Cron job deleted", extra={"job": name})

    def start(self) -> None:
        """Start firing jobs. Must be called from within the running event loop."""
        if self._running:
            return
        self._running = True
        for job in self._jobs.values():
            self._start_job(job)
        logger.info("Cron scheduler started | jobs=%d tz=%s", len(self._jobs), self._tz.key)

    async def shutdown(self) -> None:
        self._running = False
        tasks = [job.task for job in self._jobs.values() if job.task is not None and not job.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for job in self._jobs.values():
            job.task = None
        logger.info("Cron scheduler stopped")

    async def run_job_now(self, name: str) -> None:
        """Run a job's handler immediately, outside its schedule."""
        await self._execute(self.get_cron_job(name))

    def _start_job(self, job: ScheduledJob) -> None:
        job.task = asyncio.create_task(self._run_loop(job), name=f"cron:{job.name}")

    async def _execute(self, job: ScheduledJob) -> None:
        job.last_run_at = self._now()
        try:
            result = job.handler()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.error("Cron job failed", extra={"job": job.name}, exc_info=True)

    async def _run_loop(self, job: ScheduledJob) -> None:
        while self._jobs.get(job.name) is job:
            if job.next_run_at is None:
                job.next_run_at = self._next_fire(job.cron_expression)
            delay = (job.next_run_at - self._now()).total_seconds()
            try:
                await asyncio.sleep(max(0.0, delay))
            except asyncio.CancelledError:
                logger.debug("Cron job loop cancelled", extra={"job": job.name})
                break
            fired_for = job.next_run_at
            await self._execute(job)
            # Never reschedule into the slot that just fired, even if sleep woke early
            job.next_run_at = self._next_fire(job.cron_expression, max(fired_for, self._now()))
