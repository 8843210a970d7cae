# src/sampleapp/tasks/job_scheduler.py

from __future__ import annotations

"""
Periodic job scheduler.

Each PeriodicJob gets its own small loop that, on every tick of its cron
expression (or every interval_seconds when no cron is given):
- enqueues the job body as a ScopedWorkItem on the background task queue,
- logs start/skip lines,
- keeps its schedule if enqueueing fails (queue full/closed).

The job body itself runs on the BackgroundTaskService, so it gets a fresh
dependency scope and the same failure isolation as any other work item.

To stop the scheduler, call stop(); it cancels every job loop.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from croniter import croniter

from ..core.cancellation import CancellationToken, OperationCancelledError, wait_or_cancel
from .task_queue import BackgroundTaskQueue, QueueClosedError, QueueFullError
from .work_items import ScopedWorkAction, ScopedWorkItem

logger = logging.getLogger(__name__)

_MIN_INTERVAL_SECONDS = 0.01


@dataclass(slots=True, frozen=True)
class PeriodicJob:
    """
    A recurring piece of scoped background work.

    `cron` is a standard five-field expression ("*/15 * * * *") evaluated in
    local time; `interval_seconds` is used when no cron is set. One of the two
    is required. run_on_start=True fires the first run immediately.
    """

    name: str
    dependency: type[Any]
    action: ScopedWorkAction[Any]
    interval_seconds: float | None = None
    cron: str | None = None
    run_on_start: bool = False

    def __post_init__(self) -> None:
        if self.cron is not None:
            if not croniter.is_valid(self.cron):
                raise ValueError(f"{self.name}: invalid cron expression {self.cron!r}")
        elif self.interval_seconds is None or self.interval_seconds <= 0:
            raise ValueError(f"{self.name}: needs a cron expression or a positive interval")


def next_delay(job: PeriodicJob, now: datetime, *, after: datetime | None = None) -> float:
    """
    Seconds from `now` until the job's next run.

    For cron jobs that is the first tick strictly after max(now, after); pass the
    last tick fired as `after` so a timer that wakes early cannot repeat it.
    """
    if job.cron is None:
        return max(_MIN_INTERVAL_SECONDS, float(job.interval_seconds or 0.0))
    base = now if after is None else max(now, after)
    fire_at = croniter(job.cron, base).get_next(datetime)
    return max(0.0, (fire_at - now).total_seconds())


def _now() -> datetime:
    return datetime.now().astimezone()


def _describe(job: PeriodicJob) -> str:
    return f"cron '{job.cron}'" if job.cron is not None else f"every {job.interval_seconds:g}s"


async def run_periodic_job(
        job: PeriodicJob,
        queue: BackgroundTaskQueue,
        stop: CancellationToken,
) -> int:
    """
    Drive one job until `stop` is cancelled or the queue closes.
    Returns how many runs were queued.
    """
    queued = 0
    first = True
    last_tick: datetime | None = None

    while not stop.is_cancelled:
        if not (first and job.run_on_start):
            now = _now()
            delay = next_delay(job, now, after=last_tick)
            last_tick = now + timedelta(seconds=delay)
            try:
                await wait_or_cancel(asyncio.sleep(delay), stop)
            except OperationCancelledError:
                break
        first = False

        item: ScopedWorkItem[Any] = ScopedWorkItem(
            dependency=job.dependency,
            action=job.action,
            name=f"job:{job.name}",
        )
        try:
            await queue.enqueue(item, token=stop)
        except OperationCancelledError:
            break
        except QueueClosedError:
            logger.info("%s - task queue closed, scheduler loop exiting", job.name)
            break
        except QueueFullError:
            logger.warning("%s - task queue full, skipping this run", job.name)
            continue
        except Exception:
            logger.exception("%s - failed to queue scheduled background work", job.name)
            continue

        queued += 1
        logger.info("%s - queued scheduled background work (run #%d)", job.name, queued)

    logger.debug("%s - scheduler loop finished after %d run(s)", job.name, queued)
    return queued


class JobSchedulerService:
    def __init__(self, queue: BackgroundTaskQueue, jobs: list[PeriodicJob] | None = None) -> None:
        self._queue = queue
        self._jobs: list[PeriodicJob] = list(jobs or [])
        self._stop: CancellationToken | None = None
        self._tasks: list[asyncio.Task[int]] = []

    @property
    def jobs(self) -> list[PeriodicJob]:
        return list(self._jobs)

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not all(t.done() for t in self._tasks)

    def add_job(self, job: PeriodicJob) -> None:
        if self._tasks:
            raise RuntimeError("Cannot add jobs to a running scheduler")
        self._jobs.append(job)

    async def start(self) -> None:
        if self._tasks:
            raise RuntimeError("JobSchedulerService is already started")
        if not self._jobs:
            logger.info("No periodic jobs configured, scheduler idle.")
            return

        self._stop = CancellationToken()
        for job in self._jobs:
            self._tasks.append(
                asyncio.create_task(run_periodic_job(job, self._queue, self._stop), name=f"job:{job.name}")
            )
        logger.info("Job scheduler started: %s", ", ".join(f"{j.name} ({_describe(j)})" for j in self._jobs))

    async def stop(self) -> None:
        if not self._tasks:
            return
        assert self._stop is not None
        self._stop.cancel()

        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for job, res in zip(self._jobs, results):
            if isinstance(res, BaseException):
                logger.error("%s - scheduler loop crashed", job.name, exc_info=res)

        self._tasks = []
        logger.info("Job scheduler stopped.")

    async def __aenter__(self) -> JobSchedulerService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
