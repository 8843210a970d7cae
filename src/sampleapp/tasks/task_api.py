# src/sampleapp/tasks/task_api.py

from __future__ import annotations

import asyncio
import logging

from ..core.cancellation import CancellationToken, OperationCancelledError, wait_or_cancel
from ..core.ports import Notifier
from .job_scheduler import PeriodicJob
from .task_queue import BackgroundTaskQueue

logger = logging.getLogger(__name__)


async def queue_sleep(queue: BackgroundTaskQueue, seconds: float) -> None:
    """
    Convenience helper: queue work that just waits `seconds` (honouring its token).
    Handy to see backpressure and graceful drain from the console.
    """
    delay = max(0.0, float(seconds))

    async def sleeper(token: CancellationToken) -> None:
        try:
            await wait_or_cancel(asyncio.sleep(delay), token)
        except OperationCancelledError:
            logger.info("Sleep %.1fs cancelled early.", delay)
            raise
        logger.info("Slept %.1fs.", delay)

    await queue.queue_work(sleeper, name=f"sleep:{delay:g}s")


async def queue_failure(queue: BackgroundTaskQueue, message: str = "boom") -> None:
    """Queue scoped work that raises, to show the loop survives it."""

    async def fail(_notifier: Notifier, _token: CancellationToken) -> None:
        raise RuntimeError(message)

    await queue.queue_scoped_work(Notifier, fail, name="fail")


def heartbeat_job(
        queue: BackgroundTaskQueue,
        *,
        interval_seconds: float | None = None,
        cron: str | None = None,
) -> PeriodicJob:
    """Periodic job that reports the queue depth through the scoped Notifier (cron wins over interval)."""

    async def beat(notifier: Notifier, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        await notifier.notify(
            "heartbeat",
            {"pending": queue.pending, "capacity": queue.capacity, "closed": queue.closed},
        )

    return PeriodicJob(
        name="heartbeat",
        dependency=Notifier,
        action=beat,
        interval_seconds=interval_seconds,
        cron=cron,
    )
