# src/sampleapp/tasks/task_queue.py

"""
Bounded background task queue.

Producers (services, scheduled jobs, console commands) put WorkItems in; exactly
one consumer, the BackgroundTaskService, takes them out in FIFO order.

The queue is always bounded. When it is full:
- OverflowPolicy.WAIT suspends the producer until the worker frees a slot
- OverflowPolicy.REJECT raises QueueFullError right away

Enqueueing is fire-and-forget: the producer learns nothing about the outcome
of the work, only whether the item got into the buffer.

All methods must be called on the event loop that owns the queue. Other
threads go through HostBackgroundRunner.queue_work().
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any, TypeVar

from ..core.cancellation import CancellationToken, OperationCancelledError, wait_or_cancel
from .work_items import ScopedWorkAction, ScopedWorkItem, UnscopedWorkItem, WorkAction, WorkItem, action_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueueFullError(RuntimeError):
    """The queue is at capacity and the producer asked not to wait."""


class QueueClosedError(RuntimeError):
    """The queue no longer accepts work (host is shutting down)."""


class OverflowPolicy(StrEnum):
    WAIT = "wait"
    REJECT = "reject"


class BackgroundTaskQueue:
    def __init__(self, capacity: int = 100, *, overflow: OverflowPolicy | str = OverflowPolicy.WAIT) -> None:
        if capacity <= 0:
            raise ValueError(f"Task queue must be bounded, got capacity={capacity}")
        self._capacity = int(capacity)
        self._overflow = OverflowPolicy(overflow)
        self._items: asyncio.Queue[WorkItem] = asyncio.Queue(maxsize=self._capacity)
        self._closing = CancellationToken()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def overflow(self) -> OverflowPolicy:
        return self._overflow

    @property
    def pending(self) -> int:
        return self._items.qsize()

    @property
    def closed(self) -> bool:
        return self._closing.is_cancelled

    async def queue_work(
            self,
            action: WorkAction,
            *,
            name: str | None = None,
            token: CancellationToken | None = None,
    ) -> None:
        """Queue unscoped work: `await action(token)` runs later on the worker."""
        await self.enqueue(UnscopedWorkItem(action=action, name=name or action_name(action)), token=token)

    async def queue_scoped_work(
            self,
            dependency: type[T],
            action: ScopedWorkAction[T],
            *,
            name: str | None = None,
            token: CancellationToken | None = None,
    ) -> None:
        """Queue work that receives a freshly resolved `dependency` instance at execution time."""
        item: ScopedWorkItem[T] = ScopedWorkItem(
            dependency=dependency,
            action=action,
            name=name or action_name(action),
        )
        await self.enqueue(item, token=token)

    async def enqueue(self, item: WorkItem, *, token: CancellationToken | None = None) -> None:
        """
        Add `item` to the tail of the queue.

        Raises:
        - QueueClosedError if the queue is closed (also wakes producers blocked on a full queue)
        - QueueFullError under OverflowPolicy.REJECT when full
        - OperationCancelledError if `token` is cancelled while waiting for space
        """
        if self.closed:
            raise QueueClosedError(f"Task queue is closed, rejected {item.name!r}")

        if self._overflow is OverflowPolicy.REJECT:
            self.try_enqueue(item)
            return

        tokens = [self._closing] if token is None else [self._closing, token]
        try:
            await wait_or_cancel(self._items.put(item), *tokens)
        except OperationCancelledError:
            if self.closed:
                raise QueueClosedError(f"Task queue closed while {item.name!r} was waiting") from None
            raise

        logger.debug("Queued %s (%s), pending=%d", item.name, item.kind, self.pending)

    def try_enqueue(self, item: WorkItem) -> None:
        """Non-suspending enqueue for synchronous call sites on the loop thread."""
        if self.closed:
            raise QueueClosedError(f"Task queue is closed, rejected {item.name!r}")
        try:
            self._items.put_nowait(item)
        except asyncio.QueueFull:
            raise QueueFullError(
                f"Task queue is full (capacity={self._capacity}), rejected {item.name!r}"
            ) from None
        logger.debug("Queued %s (%s), pending=%d", item.name, item.kind, self.pending)

    async def dequeue(self, token: CancellationToken) -> WorkItem | None:
        """
        Wait for the next item.

        Returns None once `token` is cancelled, so the worker can leave its loop
        without handling an exception. Items still buffered stay in the queue.
        """
        try:
            return await wait_or_cancel(self._items.get(), token)
        except OperationCancelledError:
            return None

    def close(self) -> None:
        """Stop accepting work. Items already buffered are left for the worker or discard_pending()."""
        if self.closed:
            return
        self._closing.cancel()
        logger.info("Task queue closed (pending=%d).", self.pending)

    def discard_pending(self) -> list[WorkItem]:
        """Remove and return everything still buffered."""
        dropped: list[WorkItem] = []
        while True:
            try:
                dropped.append(self._items.get_nowait())
            except asyncio.QueueEmpty:
                break
        return dropped

    def __repr__(self) -> str:
        return (
            f"BackgroundTaskQueue(capacity={self._capacity}, overflow={self._overflow.value}, "
            f"pending={self.pending}, closed={self.closed})"
        )


def queue_from_settings(settings: Any) -> BackgroundTaskQueue:
    return BackgroundTaskQueue(
        int(getattr(settings, "task_queue_capacity", 100)),
        overflow=str(getattr(settings, "task_queue_overflow", OverflowPolicy.WAIT.value)),
    )
