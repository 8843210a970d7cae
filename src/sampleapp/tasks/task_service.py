# src/sampleapp/tasks/task_service.py

from __future__ import annotations

"""
Background task service.

A single long-running loop that:
- dequeues one WorkItem at a time (FIFO),
- runs it in its own task with a fresh CancellationToken,
- opens a dependency scope for scoped items and always releases it,
- logs failures and moves on (one bad item never stops the loop).

Lifecycle: idle -> running -> draining -> stopped.
stop() refuses further items, lets the in-flight one finish within the
shutdown timeout and force-cancels it otherwise. Items still buffered at that
point are discarded (and logged): delivery is in-process and best-effort.
"""

import asyncio
import logging
import time
from enum import StrEnum

from ..core.cancellation import CancellationToken
from ..core.ports import ScopeFactory
from .task_queue import BackgroundTaskQueue
from .work_items import ScopedWorkItem, UnscopedWorkItem, WorkItem

logger = logging.getLogger(__name__)

# Share of the shutdown budget kept back for a force-cancelled item to unwind (capped).
_CANCEL_GRACE_SHARE = 0.2
_CANCEL_GRACE_MAX_SECONDS = 5.0


class WorkerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class BackgroundTaskService:
    def __init__(
            self,
            queue: BackgroundTaskQueue,
            scopes: ScopeFactory,
            *,
            shutdown_timeout_seconds: float = 30.0,
            item_timeout_seconds: float | None = None,
    ) -> None:
        self._queue = queue
        self._scopes = scopes
        self._shutdown_timeout = max(0.0, float(shutdown_timeout_seconds))
        self._item_timeout = float(item_timeout_seconds) if item_timeout_seconds else None

        self._state = WorkerState.IDLE
        self._stopping: CancellationToken | None = None
        self._runner: asyncio.Task[None] | None = None

        self._current: WorkItem | None = None
        self._current_token: CancellationToken | None = None

        self.completed = 0
        self.failed = 0

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def current_item(self) -> str | None:
        return self._current.name if self._current is not None else None

    async def start(self) -> None:
        if self._runner is not None:
            raise RuntimeError("BackgroundTaskService is already started")

        self._stopping = CancellationToken()
        self._state = WorkerState.RUNNING
        self._runner = asyncio.create_task(self._run(self._stopping), name="background-task-service")
        logger.info(
            "Background task service is running (capacity=%d, overflow=%s, item_timeout=%s).",
            self._queue.capacity,
            self._queue.overflow.value,
            self._item_timeout,
        )

    async def _run(self, stopping: CancellationToken) -> None:
        while True:
            item = await self._queue.dequeue(stopping)
            if item is None:
                break
            await self._execute(item)

        logger.debug("Background task service loop exited.")

    async def _execute(self, item: WorkItem) -> None:
        token = CancellationToken()
        self._current = item
        self._current_token = token
        started = time.monotonic()

        # Own task per item: an item that cancels itself must not look like a loop cancellation.
        job = asyncio.create_task(self._invoke(item, token), name=f"work:{item.name}")
        try:
            await asyncio.wait_for(job, timeout=self._item_timeout)
        except TimeoutError:
            token.cancel()
            self.failed += 1
            logger.error(
                "Background work %s (%s) timed out after %.1fs.", item.name, item.kind, self._item_timeout
            )
        except asyncio.CancelledError:
            me = asyncio.current_task()
            if me is not None and me.cancelling():
                token.cancel()
                raise
            self.failed += 1
            logger.warning("Background work %s (%s) was cancelled.", item.name, item.kind)
        except Exception:
            self.failed += 1
            logger.exception("Error occurred executing background work %s (%s).", item.name, item.kind)
        else:
            self.completed += 1
            logger.debug(
                "Background work %s (%s) done in %.3fs.", item.name, item.kind, time.monotonic() - started
            )
        finally:
            self._current = None
            self._current_token = None

    async def _invoke(self, item: WorkItem, token: CancellationToken) -> None:
        match item:
            case UnscopedWorkItem(action=action):
                await action(token)
            case ScopedWorkItem(dependency=dependency, action=action):
                async with self._scopes.create_scope() as scope:
                    instance = scope.resolve(dependency)
                    await action(instance, token)
            case _:
                raise TypeError(f"Unsupported work item: {item!r}")

    async def stop(self, timeout: float | None = None) -> bool:
        """
        Drain and stop. Returns True if the in-flight item finished in time,
        False if it had to be force-cancelled.
        """
        runner = self._runner
        if runner is None or self._state is WorkerState.STOPPED:
            self._state = WorkerState.STOPPED
            return True

        wait_s = self._shutdown_timeout if timeout is None else max(0.0, float(timeout))
        # drain + grace never exceeds wait_s.
        grace_s = min(_CANCEL_GRACE_MAX_SECONDS, wait_s * _CANCEL_GRACE_SHARE)
        drain_s = wait_s - grace_s

        self._state = WorkerState.DRAINING
        logger.info(
            "Background task service is stopping (in_flight=%s, pending=%d).",
            self.current_item,
            self._queue.pending,
        )
        self._queue.close()
        assert self._stopping is not None
        self._stopping.cancel()

        graceful = True
        done, _ = await asyncio.wait({runner}, timeout=drain_s)
        if not done:
            graceful = False
            logger.warning(
                "Forced stop: background work %s did not finish within %.2fs.", self.current_item, drain_s
            )
            if self._current_token is not None:
                self._current_token.cancel()
            runner.cancel()
            done, _ = await asyncio.wait({runner}, timeout=grace_s)
            if not done:
                logger.error(
                    "Background work %s ignored cancellation; shutdown budget of %.2fs spent, leaving it behind.",
                    self.current_item,
                    wait_s,
                )

        if runner.done() and not runner.cancelled() and runner.exception() is not None:
            logger.error("Background task service loop crashed.", exc_info=runner.exception())

        dropped = self._queue.discard_pending()
        if dropped:
            logger.warning(
                "Discarded %d pending work item(s) at shutdown: %s",
                len(dropped),
                ", ".join(i.name for i in dropped[:10]),
            )

        self._state = WorkerState.STOPPED
        logger.info(
            "Background task service stopped (completed=%d, failed=%d, graceful=%s).",
            self.completed,
            self.failed,
            graceful,
        )
        return graceful
