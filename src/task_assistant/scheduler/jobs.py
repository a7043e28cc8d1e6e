"""
Named periodic jobs and the asyncio loop that drives them.

Schedules are standard five-field cron expressions evaluated by croniter in
the configured timezone.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from croniter import croniter

from ..config import Config, config
from ..logging import get_logger, logging_context
from ..models.work_item import utcnow
from .reminders import ReminderScheduler

logger = get_logger(__name__)


@dataclass(frozen=True)
class CronSchedule:
    expression: str

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        """
        Validate a five-field cron expression.

        Raises:
            ValueError: If croniter rejects the expression or it has a
                seconds / year field
        """
        if len(expression.split()) != 5 or not croniter.is_valid(expression):
            raise ValueError(f'Invalid cron expression: {expression!r}')
        return cls(expression=expression)

    def next_fire_time(self, after: datetime, tz: ZoneInfo) -> datetime:
        """First matching minute strictly after ``after``, as an aware datetime in ``tz``."""
        start = after.astimezone(tz).replace(second=0, microsecond=0)
        return croniter(self.expression, start).get_next(datetime)


@dataclass
class ScheduledJob:
    name: str
    schedule: CronSchedule
    action: Callable[[], Awaitable[Any]]


def default_jobs(scheduler: ReminderScheduler, cfg: Config = config) -> list[ScheduledJob]:
    """
    The four work item sweeps, plus the due-reminder sweep when the scheduler
    has a reminder store.
    """
    jobs = [
        ScheduledJob(
            name='morning_upcoming',
            schedule=CronSchedule.parse(cfg.MORNING_UPCOMING_SCHEDULE),
            action=lambda: scheduler.run_upcoming_sweep(
                cfg.MORNING_UPCOMING_HOURS, name='morning_upcoming'
            ),
        ),
        ScheduledJob(
            name='hourly_upcoming',
            schedule=CronSchedule.parse(cfg.HOURLY_UPCOMING_SCHEDULE),
            action=lambda: scheduler.run_upcoming_sweep(
                cfg.HOURLY_UPCOMING_HOURS, name='hourly_upcoming'
            ),
        ),
        ScheduledJob(
            name='daily_overdue',
            schedule=CronSchedule.parse(cfg.DAILY_OVERDUE_SCHEDULE),
            action=lambda: scheduler.run_overdue_sweep(name='daily_overdue'),
        ),
        ScheduledJob(
            name='daily_escalation',
            schedule=CronSchedule.parse(cfg.DAILY_ESCALATION_SCHEDULE),
            action=lambda: scheduler.run_escalation_sweep(
                cfg.ESCALATION_THRESHOLD_HOURS, name='daily_escalation'
            ),
        ),
    ]
    if scheduler.reminders is not None:
        jobs.append(
            ScheduledJob(
                name='due_reminders',
                schedule=CronSchedule.parse(cfg.DUE_REMINDERS_SCHEDULE),
                action=lambda: scheduler.run_due_reminders_sweep(name='due_reminders'),
            )
        )
    return jobs


class JobRunner:
    """
    Runs scheduled jobs from a single asyncio task.

    Jobs due at the same minute run one after another. A failing job is
    logged and does not stop the loop.

    Usage:
        runner = JobRunner(default_jobs(scheduler))
        runner.start()
        ...
        await runner.stop()
    """

    def __init__(
        self,
        jobs: list[ScheduledJob],
        timezone: str | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.jobs = {job.name: job for job in jobs}
        self.tz = ZoneInfo(timezone or config.TIMEZONE)
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    def next_due(self, after: datetime) -> tuple[datetime, list[ScheduledJob]]:
        """Earliest fire time after ``after`` and every job due at that time."""
        fire_times = {
            name: job.schedule.next_fire_time(after, self.tz) for name, job in self.jobs.items()
        }
        earliest = min(fire_times.values())
        return earliest, [self.jobs[name] for name, t in fire_times.items() if t == earliest]

    async def run_job(self, job: ScheduledJob) -> Any:
        """Run one job; exceptions are logged and yield None."""
        with logging_context(job=job.name):
            logger.info('jobs.started')
            try:
                outcome = await job.action()
            except Exception:
                logger.exception('jobs.failed')
                return None
            logger.info('jobs.finished')
        return outcome

    async def trigger(self, name: str) -> Any:
        """
        Run a named job immediately.

        Raises:
            KeyError: If no job has that name
        """
        return await self.run_job(self.jobs[name])

    async def run_once(self) -> list[str]:
        """Sleep until the next due minute, run the jobs due then, return their names."""
        due_at, due_jobs = self.next_due(self._clock())
        delay = (due_at - self._clock()).total_seconds()
        if delay > 0:
            await self._sleep(delay)
        for job in due_jobs:
            await self.run_job(job)
        return [job.name for job in due_jobs]

    async def run_forever(self) -> None:
        logger.info('jobs.runner_started', jobs=sorted(self.jobs))
        try:
            while True:
                await self.run_once()
        except asyncio.CancelledError:
            logger.info('jobs.runner_stopped')
            raise

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name='reminder-jobs')
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
